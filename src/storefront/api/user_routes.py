"""FastAPI routes for sign-up, sign-in and session checks"""
from fastapi import APIRouter, Depends, Response
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from storefront.api.dependencies import bearer_scheme, get_current_user_id
from storefront.config import settings
from storefront.db.database import get_db
from storefront.errors import AuthError, NotFoundError, ValidationError
from storefront.services.auth import create_access_token, decode_access_token
from storefront.services.user_service import UserService
from storefront.models.schemas import (
    AuthResponse, CheckAuthResponse, MessageResponse, SigninRequest,
    SignupRequest, UserProfileResponse
)
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    """Register a new account and return a bearer token"""
    result = UserService.register(db, data)
    if not result.success:
        raise ValidationError(result.error)
    
    token = create_access_token(data={"sub": str(result.user_id), "user_id": result.user_id})
    return AuthResponse(message="Signup successful", token=token, first_name=result.first_name)


@router.post("/signin", response_model=AuthResponse)
def signin(credentials: SigninRequest, response: Response, db: Session = Depends(get_db)):
    """Sign in, returning a bearer token and setting the auth cookie"""
    result = UserService.authenticate(db, credentials.email, credentials.password)
    if not result.success:
        raise AuthError(result.error)
    
    token = create_access_token(data={"sub": str(result.user_id), "user_id": result.user_id})
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.auth_cookie_max_age,
        httponly=True,
        samesite="strict",
        secure=settings.environment == "production",
        path="/"
    )
    
    return AuthResponse(message="Signin successful", token=token, first_name=result.first_name)


@router.get("/check", response_model=CheckAuthResponse)
def check_auth(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)):
    """Report whether the request carries a valid token; never fails"""
    if credentials is None:
        return CheckAuthResponse(is_authenticated=False)
    try:
        user_id = decode_access_token(credentials.credentials)
    except AuthError:
        return CheckAuthResponse(is_authenticated=False)
    return CheckAuthResponse(is_authenticated=True, user={"id": user_id})


@router.get("/user", response_model=UserProfileResponse)
def get_user(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Profile of the signed-in user"""
    user = UserService.get_user(db, user_id)
    if not user:
        logger.info(f"User not found for id: {user_id}")
        raise NotFoundError("User not found")
    return UserProfileResponse(first_name=user.first_name, email=user.email)


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Record the logout time and clear the auth cookie"""
    UserService.record_logout(db, user_id)
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return MessageResponse(message="Logout successful")
