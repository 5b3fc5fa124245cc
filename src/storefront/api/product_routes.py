"""FastAPI routes for the catalog"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from storefront.config import settings
from storefront.db.database import get_db
from storefront.errors import NotFoundError, ValidationError
from storefront.services.catalog_service import CatalogService, split_search_terms
from storefront.models.schemas import CategoryResponse, ProductRatingResponse, ProductResponse
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["products"])


@router.get("/products", response_model=List[ProductResponse])
def list_products(db: Session = Depends(get_db)):
    """List all products with rating and stock"""
    return CatalogService.list_products(db)


@router.get("/products/category/{category}", response_model=List[ProductResponse])
def list_products_by_category(category: str, db: Session = Depends(get_db)):
    """List products of one category"""
    logger.info(f"Fetching products for category: {category}")
    return CatalogService.list_by_category(db, category)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    """Get a specific product by ID"""
    product = CatalogService.get_product(db, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


@router.get("/products/{product_id}/ratings", response_model=List[ProductRatingResponse])
def list_product_ratings(product_id: int, db: Session = Depends(get_db)):
    """Individual ratings left for a product"""
    if not CatalogService.get_product(db, product_id):
        raise NotFoundError("Product not found")
    return CatalogService.list_ratings(db, product_id)


@router.get("/limited-items", response_model=List[ProductResponse])
def list_limited_items(db: Session = Depends(get_db)):
    """Products of the limited-items category"""
    return CatalogService.list_by_category(db, settings.limited_category)


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    """Browsable categories (the limited-items category is listed separately)"""
    categories = CatalogService.list_categories(db, exclude=settings.limited_category)
    return [CategoryResponse(id=category, name=category) for category in categories]


@router.get("/search", response_model=List[ProductResponse])
def search_products(query: Optional[str] = Query(None, max_length=200), db: Session = Depends(get_db)):
    """Products whose name or category contains every search term"""
    terms = split_search_terms(query)
    if not terms:
        raise ValidationError("Search query is required")
    
    logger.info(f"Searching products with {len(terms)} terms")
    return CatalogService.search(db, terms)
