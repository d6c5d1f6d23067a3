"""
Product reviews. Only approved reviews count toward public averages and totals.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from shopapi.database import Transaction
from shopapi.models import Customer, Product, Review
from shopapi.utils.exceptions import (
    CustomerNotFound,
    DuplicateReview,
    InvalidInput,
    NotFoundError,
    ProductNotFound,
)
from shopapi.utils.logging import get_logger

log = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _check_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        log.warning("Invalid rating value: %s", rating)
        raise InvalidInput(f"Rating must be between {MIN_RATING} and {MAX_RATING}", rating=rating)
    return rating


def _load(tx: Transaction, review_id: int) -> Review:
    review = Review.find(tx, review_id)
    if review is None:
        log.warning("Review %s not found", review_id)
        raise NotFoundError("Review not found", review_id=review_id)
    return review


def _clean(comment: Optional[str]) -> Optional[str]:
    return comment.strip() if comment is not None else None


def add_review(
    tx: Transaction,
    product_id: int,
    customer_id: int,
    rating: int,
    comment: Optional[str] = None,
) -> Review:
    """New reviews start unapproved. One review per (product, customer)."""
    _check_rating(rating)
    if Product.find(tx, product_id) is None:
        raise ProductNotFound(product_id=product_id)
    if Customer.find(tx, customer_id) is None:
        raise CustomerNotFound(customer_id=customer_id)
    if Review.first(tx, product_id=product_id, customer_id=customer_id):
        log.info("Customer %s already reviewed product %s", customer_id, product_id)
        raise DuplicateReview(product_id=product_id, customer_id=customer_id)

    review = Review.new(
        tx,
        product_id=product_id,
        customer_id=customer_id,
        rating=rating,
        comment=_clean(comment),
        approved=False,
    )
    log.info("Review added for product %s by customer %s", product_id, customer_id)
    return review


def approve_review(tx: Transaction, review_id: int) -> Review:
    review = _load(tx, review_id)
    review.approved = True
    review.update(tx, "approved")
    log.info("Review %s approved", review_id)
    return review


def update_review(tx: Transaction, review_id: int, rating: int, comment: Optional[str] = None) -> Review:
    """Edits send the review back for approval."""
    _check_rating(rating)
    review = _load(tx, review_id)
    review.rating = rating
    review.comment = _clean(comment)
    review.approved = False
    review.update(tx, "rating", "comment", "approved")
    log.info("Review %s updated", review_id)
    return review


def delete_review(tx: Transaction, review_id: int) -> None:
    _load(tx, review_id).delete(tx)
    log.info("Review %s deleted", review_id)


def get_review(tx: Transaction, review_id: int) -> Review:
    return _load(tx, review_id)


def list_reviews(tx: Transaction, approved: Optional[bool] = None) -> List[Review]:
    """Every review, newest first; `approved` narrows to one approval state."""
    if approved is None:
        return Review.get(tx, order_by="created_at DESC, id DESC")
    return Review.get(tx, order_by="created_at DESC, id DESC", approved=approved)


def product_reviews(tx: Transaction, product_id: int, approved_only: bool = True) -> List[Review]:
    """Most recent first."""
    if approved_only:
        return Review.get(tx, order_by="created_at DESC, id DESC", product_id=product_id, approved=True)
    return Review.get(tx, order_by="created_at DESC, id DESC", product_id=product_id)


def pending_reviews(tx: Transaction) -> List[Review]:
    return Review.get(tx, order_by="created_at, id", approved=False)


def average_rating(tx: Transaction, product_id: int) -> float:
    row = tx.execute(
        "SELECT AVG(rating) AS average FROM review_table WHERE product_id = ? AND approved = ?",
        (product_id, True),
        fetch="one",
    )
    if not row or row["average"] is None:
        return 0.0
    return float(Decimal(str(row["average"])).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def review_count(tx: Transaction, product_id: int, approved_only: bool = True) -> int:
    if approved_only:
        return Review.count(tx, "product_id = ? AND approved = ?", (product_id, True))
    return Review.count(tx, "product_id = ?", (product_id,))
