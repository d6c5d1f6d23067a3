from flask import Response, jsonify, request

from . import bp
from shopapi.blueprints import json_body, query_flag
from shopapi.database import db
from shopapi.services import catalog
from shopapi.utils.auth import token_required

PRODUCT_BODY = catalog.PRODUCT_FIELDS + ("category_ids",)


@bp.route("", methods=["GET"])
def list_products() -> Response:
    """?q= searches, ?category_id= narrows to one category, ?active_only=true hides inactive."""
    term = request.args.get("q")
    category_id = request.args.get("category_id", type=int)
    with db.transaction() as tx:
        if term:
            found = catalog.search_products(tx, term)
        elif category_id is not None:
            found = catalog.products_by_category(tx, category_id)
        else:
            found = catalog.list_products(tx, active_only=query_flag("active_only"))
        payload = [product.data() for product in found]
    return jsonify(success=True, data=payload)


@bp.route("/<int:product_id>", methods=["GET"])
def get_product(product_id: int) -> Response:
    with db.transaction() as tx:
        payload = catalog.get_product(tx, product_id, include_reviews=query_flag("include_reviews")).data()
    return jsonify(success=True, data=payload)


@bp.route("", methods=["POST"])
@token_required
def create_product() -> tuple[Response, int]:
    data = json_body("name", "supplier_id", allowed=PRODUCT_BODY)
    category_ids = data.pop("category_ids", None)
    with db.transaction() as tx:
        product = catalog.create_product(tx, category_ids=category_ids, **data)
        payload = catalog.get_product(tx, product.id).data()
    return jsonify(success=True, message="Product created", data=payload), 201


@bp.route("/<int:product_id>", methods=["PUT"])
@token_required
def update_product(product_id: int) -> Response:
    data = json_body(allowed=PRODUCT_BODY)
    category_ids = data.pop("category_ids", None)
    with db.transaction() as tx:
        catalog.update_product(tx, product_id, category_ids=category_ids, **data)
        payload = catalog.get_product(tx, product_id).data()
    return jsonify(success=True, message="Product updated", data=payload)


@bp.route("/<int:product_id>", methods=["DELETE"])
@token_required
def delete_product(product_id: int) -> Response:
    with db.transaction() as tx:
        catalog.delete_product(tx, product_id)
    return jsonify(success=True, message="Product deleted")
