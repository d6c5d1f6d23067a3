from flask import Response, jsonify

from . import bp
from shopapi.blueprints import json_body
from shopapi.database import db
from shopapi.services import customers
from shopapi.utils.auth import token_required


@bp.route("", methods=["GET"])
@token_required
def list_customers() -> Response:
    with db.transaction() as tx:
        payload = [customer.data() for customer in customers.list_customers(tx)]
    return jsonify(success=True, data=payload)


@bp.route("/<int:customer_id>", methods=["GET"])
@token_required
def get_customer(customer_id: int) -> Response:
    with db.transaction() as tx:
        payload = customers.get_customer(tx, customer_id).data()
    return jsonify(success=True, data=payload)


@bp.route("", methods=["POST"])
@token_required
def create_customer() -> tuple[Response, int]:
    data = json_body("first_name", "email", allowed=customers.CUSTOMER_FIELDS)
    with db.transaction() as tx:
        payload = customers.create_customer(tx, **data).data()
    return jsonify(success=True, message="Customer created", data=payload), 201


@bp.route("/<int:customer_id>", methods=["PUT"])
@token_required
def update_customer(customer_id: int) -> Response:
    data = json_body(allowed=customers.CUSTOMER_FIELDS)
    with db.transaction() as tx:
        payload = customers.update_customer(tx, customer_id, **data).data()
    return jsonify(success=True, message="Customer updated", data=payload)


@bp.route("/<int:customer_id>", methods=["DELETE"])
@token_required
def delete_customer(customer_id: int) -> Response:
    with db.transaction() as tx:
        customers.delete_customer(tx, customer_id)
    return jsonify(success=True, message="Customer deleted")
