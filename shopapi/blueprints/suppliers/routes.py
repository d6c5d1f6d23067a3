from flask import Response, jsonify

from . import bp
from shopapi.blueprints import json_body
from shopapi.database import db
from shopapi.services import catalog
from shopapi.utils.auth import token_required


@bp.route("", methods=["GET"])
def list_suppliers() -> Response:
    with db.transaction() as tx:
        payload = [supplier.data() for supplier in catalog.list_suppliers(tx)]
    return jsonify(success=True, data=payload)


@bp.route("/<int:supplier_id>", methods=["GET"])
def get_supplier(supplier_id: int) -> Response:
    with db.transaction() as tx:
        supplier = catalog.get_supplier(tx, supplier_id)
        supplier.products = supplier.get_products(tx)
        payload = supplier.data()
    return jsonify(success=True, data=payload)


@bp.route("", methods=["POST"])
@token_required
def create_supplier() -> tuple[Response, int]:
    data = json_body("company_name", allowed=catalog.SUPPLIER_FIELDS)
    with db.transaction() as tx:
        payload = catalog.create_supplier(tx, **data).data()
    return jsonify(success=True, message="Supplier created", data=payload), 201


@bp.route("/<int:supplier_id>", methods=["PUT"])
@token_required
def update_supplier(supplier_id: int) -> Response:
    data = json_body(allowed=catalog.SUPPLIER_FIELDS)
    with db.transaction() as tx:
        payload = catalog.update_supplier(tx, supplier_id, **data).data()
    return jsonify(success=True, message="Supplier updated", data=payload)


@bp.route("/<int:supplier_id>", methods=["DELETE"])
@token_required
def delete_supplier(supplier_id: int) -> Response:
    with db.transaction() as tx:
        catalog.delete_supplier(tx, supplier_id)
    return jsonify(success=True, message="Supplier deleted")
