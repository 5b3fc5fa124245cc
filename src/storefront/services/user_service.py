"""User registration and authentication"""
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from storefront.errors import InternalError
from storefront.models.user import User
from storefront.models.schemas import SignupRequest
from typing import Optional
from passlib.context import CryptContext
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a registration or sign-in attempt"""
    success: bool
    user_id: Optional[int] = None
    first_name: Optional[str] = None
    error: Optional[str] = None


class UserService:
    """User service for business logic"""
    
    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password"""
        return pwd_context.hash(password)
    
    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password"""
        return pwd_context.verify(plain_password, hashed_password)
    
    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        with tracer.start_as_current_span("user_service.get_user") as span:
            span.set_attribute("user.id", user_id)
            return db.query(User).filter(User.id == user_id).first()
    
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email.lower()).first()
    
    @staticmethod
    def register(db: Session, data: SignupRequest) -> AuthResult:
        """
        Create an account in one transaction
        
        A duplicate email is reported as a failed result, not raised.
        """
        with tracer.start_as_current_span("user_service.register") as span:
            if UserService.get_user_by_email(db, data.email):
                logger.warning("Signup rejected: email already registered")
                return AuthResult(success=False, error="Email is already in use")
            
            user = User(
                first_name=data.first_name,
                last_name=data.last_name,
                address=data.address,
                mobile=data.mobile,
                email=data.email.lower(),
                hashed_password=UserService.hash_password(data.password)
            )
            
            try:
                db.add(user)
                db.commit()
            except IntegrityError:
                # Lost a race with a concurrent signup for the same email
                db.rollback()
                return AuthResult(success=False, error="Email is already in use")
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Signup failed: {e}", exc_info=True)
                raise InternalError("An error occurred during signup") from e
            
            db.refresh(user)
            span.set_attribute("user.id", user.id)
            logger.info(f"Registered user {user.id}")
            
            return AuthResult(success=True, user_id=user.id, first_name=user.first_name)
    
    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> AuthResult:
        """Check credentials and record the login time"""
        with tracer.start_as_current_span("user_service.authenticate"):
            failure = AuthResult(success=False, error="Invalid email or password")
            
            user = UserService.get_user_by_email(db, email)
            if not user:
                logger.warning("Signin failed: unknown email")
                return failure
            
            if not user.is_active:
                logger.warning(f"User {user.id} is inactive")
                return failure
            
            if not UserService.verify_password(password, user.hashed_password):
                logger.warning(f"Invalid password for user {user.id}")
                return failure
            
            user.last_login = datetime.utcnow()
            user.logout_time = None
            db.commit()
            
            logger.info(f"User {user.id} authenticated successfully")
            return AuthResult(success=True, user_id=user.id, first_name=user.first_name)
    
    @staticmethod
    def record_logout(db: Session, user_id: int) -> bool:
        """Stamp the logout time; False when the user is unknown or already logged out"""
        updated = (
            db.query(User)
            .filter(User.id == user_id, User.logout_time.is_(None))
            .update({User.logout_time: datetime.utcnow()}, synchronize_session=False)
        )
        db.commit()
        if not updated:
            logger.info(f"No logout recorded for user {user_id}")
        return updated > 0
