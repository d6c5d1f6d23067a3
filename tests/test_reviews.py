import pytest

from shopapi.database import db
from shopapi.services import catalog, reviews
from shopapi.utils.exceptions import (
    CustomerNotFound,
    DuplicateReview,
    InvalidInput,
    NotFoundError,
    ProductNotFound,
)


def _review(product_id, customer_id, rating, comment=None, approve=True):
    with db.transaction() as tx:
        review = reviews.add_review(tx, product_id, customer_id, rating, comment)
        if approve:
            review = reviews.approve_review(tx, review.id)
        return review


def test_new_reviews_wait_for_approval(make_product, make_customer):
    product = make_product()
    customer = make_customer()
    review = _review(product.id, customer.id, 5, " Great ", approve=False)
    assert review.approved is False
    assert review.comment == "Great"

    with db.transaction() as tx:
        assert reviews.product_reviews(tx, product.id) == []
        assert [r.id for r in reviews.pending_reviews(tx)] == [review.id]
        assert reviews.average_rating(tx, product.id) == 0.0


def test_average_uses_approved_reviews_only(make_product, make_customer):
    product = make_product()
    _review(product.id, make_customer().id, 5)
    _review(product.id, make_customer().id, 4)
    _review(product.id, make_customer().id, 4)
    _review(product.id, make_customer().id, 1, approve=False)

    with db.transaction() as tx:
        assert reviews.average_rating(tx, product.id) == 4.33
        assert reviews.review_count(tx, product.id) == 3
        assert reviews.review_count(tx, product.id, approved_only=False) == 4
        detail = catalog.get_product(tx, product.id, include_reviews=True)
    assert detail.average_rating == 4.33
    assert len(detail.reviews) == 3


def test_one_review_per_customer_and_product(make_product, make_customer):
    product = make_product()
    customer = make_customer()
    _review(product.id, customer.id, 3)
    with pytest.raises(DuplicateReview):
        _review(product.id, customer.id, 4)


@pytest.mark.parametrize("rating", [0, 6, 2.5, "5", True])
def test_rating_bounds(make_product, make_customer, rating):
    product = make_product()
    customer = make_customer()
    with pytest.raises(InvalidInput):
        _review(product.id, customer.id, rating)


def test_review_needs_existing_product_and_customer(make_product, make_customer):
    product = make_product()
    customer = make_customer()
    with pytest.raises(ProductNotFound):
        _review(999, customer.id, 3)
    with pytest.raises(CustomerNotFound):
        _review(product.id, 999, 3)


def test_editing_resets_approval(make_product, make_customer):
    product = make_product()
    review = _review(product.id, make_customer().id, 2)
    with db.transaction() as tx:
        updated = reviews.update_review(tx, review.id, 5, "Changed my mind")
    assert updated.approved is False
    with db.transaction() as tx:
        assert reviews.average_rating(tx, product.id) == 0.0


def test_delete_review(make_product, make_customer):
    product = make_product()
    review = _review(product.id, make_customer().id, 2)
    with db.transaction() as tx:
        reviews.delete_review(tx, review.id)
    with pytest.raises(NotFoundError):
        with db.transaction() as tx:
            reviews.approve_review(tx, review.id)
