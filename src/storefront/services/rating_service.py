"""Product ratings and order feedback"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from storefront.db.database import atomic
from storefront.errors import ConflictError, PermissionDeniedError, ValidationError
from storefront.models.order import Order, OrderFeedback, OrderItem, OrderStatus
from storefront.models.product import ProductRating
from storefront.models.schemas import RatingsSubmission
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class RatingService:
    """Records ratings once per received order"""
    
    @staticmethod
    def submit_ratings(db: Session, order_id: int, user_id: int, submission: RatingsSubmission) -> None:
        """
        Store one rating per product and optional feedback, then flag the order as rated
        
        Ownership is checked before anything else, so a foreign order is
        rejected whatever its state. The is_rated flag is flipped with a
        conditional update, which makes a second submission fail.
        """
        with tracer.start_as_current_span("rating_service.submit_ratings") as span:
            span.set_attribute("order.id", order_id)
            span.set_attribute("ratings.count", len(submission.ratings))
            
            order = db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
            if not order:
                logger.warning(f"User {user_id} attempted to rate order {order_id}")
                raise PermissionDeniedError("Unauthorized to rate this order")
            
            if order.is_rated:
                raise ConflictError("Order has already been rated")
            
            if order.status != OrderStatus.RECEIVED:
                raise ConflictError("Only received orders can be rated")
            
            ordered = {
                product_id
                for (product_id,) in db.query(OrderItem.product_id).filter(OrderItem.order_id == order_id)
            }
            unknown = sorted(set(submission.ratings) - ordered)
            if unknown:
                raise ValidationError(
                    f"Products {', '.join(map(str, unknown))} are not part of order {order_id}"
                )
            
            with atomic(db, "the ratings"):
                flagged = (
                    db.query(Order)
                    .filter(Order.id == order_id, Order.is_rated.is_(False))
                    .update({Order.is_rated: True}, synchronize_session=False)
                )
                if not flagged:
                    raise ConflictError("Order has already been rated")
                
                for product_id, rating in submission.ratings.items():
                    db.add(ProductRating(order_id=order_id, product_id=product_id, rating=rating))
                
                feedback = (submission.feedback or "").strip()
                if feedback:
                    db.add(OrderFeedback(order_id=order_id, feedback=feedback))
                
                try:
                    db.flush()
                except IntegrityError as e:
                    raise ConflictError("Order has already been rated") from e
            
            logger.info(f"Ratings submitted for order {order_id}")
