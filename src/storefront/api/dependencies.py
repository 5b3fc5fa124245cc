"""Request dependencies shared by the routers"""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from storefront.db.database import get_db
from storefront.errors import AuthError, PermissionDeniedError
from storefront.models.user import User
from storefront.services.auth import decode_access_token
from storefront.services.user_service import UserService
from typing import Optional
import logging

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> int:
    """Resolve the caller from the Authorization bearer token"""
    if credentials is None or not credentials.credentials:
        raise AuthError("No token provided")
    return decode_access_token(credentials.credentials)


def get_active_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> User:
    """
    Load the caller and require an active account

    Tokens stay valid after an account is deactivated; the order routes
    resolve their caller here.
    """
    user = UserService.get_user(db, user_id)
    if not user or not user.is_active:
        logger.warning(f"Rejected token for missing or inactive user {user_id}")
        raise AuthError("Account is not active")
    return user


def get_active_user_id(user: User = Depends(get_active_user)) -> int:
    return user.id


def get_current_admin(user: User = Depends(get_active_user)) -> User:
    if not user.is_admin:
        raise PermissionDeniedError("Admin privileges required")
    return user
