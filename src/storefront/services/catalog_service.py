"""Catalog read queries"""
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session
from storefront.models.product import Product, ProductRating, ProductStock
from typing import Dict, List, Optional
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_RATING = 5

_LIKE_ESCAPE = "\\"


def split_search_terms(query: str) -> List[str]:
    """Whitespace-split a raw search string, dropping empty terms"""
    return [term for term in (query or "").split() if term]


def _contains_pattern(term: str) -> str:
    escaped = (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def build_search_filter(terms: List[str]):
    """
    Build a parameterized predicate for a multi-term search

    Every term is required; each may match either the product name or its
    category, case-insensitively. User input is only ever bound as a
    parameter.
    """
    clauses = []
    for term in terms:
        pattern = _contains_pattern(term)
        clauses.append(or_(
            Product.name.ilike(pattern, escape=_LIKE_ESCAPE),
            Product.category.ilike(pattern, escape=_LIKE_ESCAPE),
        ))
    return and_(*clauses)


class CatalogService:
    """Read-only access to products with their ratings and stock"""

    @staticmethod
    def _base_query(db: Session) -> Query:
        avg_rating = func.coalesce(func.avg(ProductRating.rating), DEFAULT_RATING)
        rating_count = func.count(ProductRating.id)
        stock_quantity = func.coalesce(func.max(ProductStock.quantity), 0)

        return (
            db.query(
                Product,
                avg_rating.label("avg_rating"),
                rating_count.label("rating_count"),
                stock_quantity.label("stock_quantity"),
            )
            .outerjoin(ProductRating, ProductRating.product_id == Product.id)
            .outerjoin(ProductStock, ProductStock.product_id == Product.id)
            .filter(Product.deleted.is_(False))
            .group_by(Product.id)
            .order_by(Product.id)
        )

    @staticmethod
    def _to_dict(row) -> Dict:
        product, avg_rating, rating_count, stock_quantity = row
        return {
            "id": product.id,
            "name": product.name,
            "description": product.description,
            "price": product.price,
            "image_url": product.image_url,
            "category": product.category,
            "avg_rating": round(float(avg_rating), 2),
            "rating_count": int(rating_count),
            "stock_quantity": int(stock_quantity),
        }

    @staticmethod
    def list_products(db: Session) -> List[Dict]:
        """All products that are not soft-deleted"""
        with tracer.start_as_current_span("catalog_service.list_products"):
            rows = CatalogService._base_query(db).all()
            return [CatalogService._to_dict(row) for row in rows]

    @staticmethod
    def list_by_category(db: Session, category: str) -> List[Dict]:
        with tracer.start_as_current_span("catalog_service.list_by_category") as span:
            span.set_attribute("product.category", category)
            rows = CatalogService._base_query(db).filter(Product.category == category).all()
            logger.info(f"Fetched {len(rows)} products for category: {category}")
            return [CatalogService._to_dict(row) for row in rows]

    @staticmethod
    def get_product(db: Session, product_id: int) -> Optional[Dict]:
        with tracer.start_as_current_span("catalog_service.get_product") as span:
            span.set_attribute("product.id", product_id)
            row = CatalogService._base_query(db).filter(Product.id == product_id).first()
            return CatalogService._to_dict(row) if row else None

    @staticmethod
    def list_categories(db: Session, exclude: Optional[str] = None) -> List[str]:
        """Distinct categories of live products"""
        query = db.query(Product.category).filter(Product.deleted.is_(False)).distinct()
        if exclude:
            query = query.filter(Product.category != exclude)
        return sorted(category for (category,) in query.all())

    @staticmethod
    def search(db: Session, terms: List[str]) -> List[Dict]:
        """Products matching every search term in name or category"""
        with tracer.start_as_current_span("catalog_service.search") as span:
            span.set_attribute("search.terms", len(terms))
            rows = CatalogService._base_query(db).filter(build_search_filter(terms)).all()
            return [CatalogService._to_dict(row) for row in rows]

    @staticmethod
    def list_ratings(db: Session, product_id: int) -> List[ProductRating]:
        """Individual ratings of a product, newest first"""
        return (
            db.query(ProductRating)
            .filter(ProductRating.product_id == product_id)
            .order_by(ProductRating.id.desc())
            .all()
        )
