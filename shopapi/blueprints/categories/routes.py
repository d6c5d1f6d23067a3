from flask import Response, jsonify

from . import bp
from shopapi.blueprints import json_body
from shopapi.database import db
from shopapi.services import catalog
from shopapi.utils.auth import token_required


@bp.route("", methods=["GET"])
def list_categories() -> Response:
    with db.transaction() as tx:
        payload = [category.data() for category in catalog.list_categories(tx)]
    return jsonify(success=True, data=payload)


@bp.route("/<int:category_id>", methods=["GET"])
def get_category(category_id: int) -> Response:
    with db.transaction() as tx:
        payload = catalog.get_category(tx, category_id).data()
    return jsonify(success=True, data=payload)


@bp.route("/<int:category_id>/products", methods=["GET"])
def category_products(category_id: int) -> Response:
    with db.transaction() as tx:
        catalog.get_category(tx, category_id)
        payload = [product.data() for product in catalog.products_by_category(tx, category_id)]
    return jsonify(success=True, data=payload)


@bp.route("", methods=["POST"])
@token_required
def create_category() -> tuple[Response, int]:
    data = json_body("name", allowed=catalog.CATEGORY_FIELDS)
    with db.transaction() as tx:
        payload = catalog.create_category(tx, data["name"], data.get("description")).data()
    return jsonify(success=True, message="Category created", data=payload), 201


@bp.route("/<int:category_id>", methods=["PUT"])
@token_required
def update_category(category_id: int) -> Response:
    data = json_body(allowed=catalog.CATEGORY_FIELDS)
    with db.transaction() as tx:
        payload = catalog.update_category(tx, category_id, **data).data()
    return jsonify(success=True, message="Category updated", data=payload)


@bp.route("/<int:category_id>", methods=["DELETE"])
@token_required
def delete_category(category_id: int) -> Response:
    with db.transaction() as tx:
        catalog.delete_category(tx, category_id)
    return jsonify(success=True, message="Category deleted")
