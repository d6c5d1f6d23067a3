from flask import Response, jsonify

from . import bp
from shopapi.blueprints import json_body
from shopapi.database import db
from shopapi.services import reviews
from shopapi.utils.auth import role_required, token_required

ADMIN_ROLE = "Admin"


@bp.route("", methods=["GET"])
@token_required
def list_reviews() -> Response:
    with db.transaction() as tx:
        payload = [review.data() for review in reviews.list_reviews(tx)]
    return jsonify(success=True, data=payload)


@bp.route("/pending", methods=["GET"])
@role_required(ADMIN_ROLE)
def pending_reviews() -> Response:
    with db.transaction() as tx:
        payload = [review.data() for review in reviews.pending_reviews(tx)]
    return jsonify(success=True, data=payload)


@bp.route("/<int:review_id>", methods=["GET"])
@token_required
def get_review(review_id: int) -> Response:
    with db.transaction() as tx:
        payload = reviews.get_review(tx, review_id).data()
    return jsonify(success=True, data=payload)


@bp.route("/product/<int:product_id>", methods=["GET"])
def product_reviews(product_id: int) -> Response:
    """Approved reviews only, with the product's average rating and count."""
    with db.transaction() as tx:
        found = reviews.product_reviews(tx, product_id)
        average = reviews.average_rating(tx, product_id)
    return jsonify(
        success=True,
        data={
            "product_id": product_id,
            "average_rating": average,
            "review_count": len(found),
            "reviews": [review.data() for review in found],
        },
    )


@bp.route("", methods=["POST"])
@token_required
def add_review() -> tuple[Response, int]:
    data = json_body("product_id", "customer_id", "rating", allowed=("product_id", "customer_id", "rating", "comment"))
    with db.transaction() as tx:
        payload = reviews.add_review(
            tx, data["product_id"], data["customer_id"], data["rating"], data.get("comment")
        ).data()
    return jsonify(success=True, message="Review submitted for approval", data=payload), 201


@bp.route("/<int:review_id>", methods=["PUT"])
@token_required
def update_review(review_id: int) -> Response:
    data = json_body("rating", allowed=("rating", "comment"))
    with db.transaction() as tx:
        payload = reviews.update_review(tx, review_id, data["rating"], data.get("comment")).data()
    return jsonify(success=True, message="Review updated", data=payload)


@bp.route("/approve/<int:review_id>", methods=["PUT"])
@role_required(ADMIN_ROLE)
def approve_review(review_id: int) -> Response:
    with db.transaction() as tx:
        payload = reviews.approve_review(tx, review_id).data()
    return jsonify(success=True, message="Review approved", data=payload)


@bp.route("/<int:review_id>", methods=["DELETE"])
@token_required
def delete_review(review_id: int) -> Response:
    with db.transaction() as tx:
        reviews.delete_review(tx, review_id)
    return jsonify(success=True, message="Review deleted")
