"""Bearer token utilities (JWT)"""
from jose import ExpiredSignatureError, JWTError, jwt
from datetime import datetime, timedelta
from typing import Optional
from storefront.config import settings
from storefront.errors import AuthError
import logging

logger = logging.getLogger(__name__)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token"""
    to_encode = data.copy()
    
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    
    return encoded_jwt


def decode_access_token(token: str) -> int:
    """Verify a token and return the user id it was issued for"""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError("Token expired")
    except JWTError as e:
        logger.warning(f"Token verification error: {e}")
        raise AuthError("Invalid token")
    
    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise AuthError("Invalid token")
    return user_id
