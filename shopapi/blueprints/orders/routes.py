from flask import Response, jsonify, request

from . import bp
from shopapi.blueprints import json_body
from shopapi.database import db
from shopapi.services import orders
from shopapi.utils.auth import token_required
from shopapi.utils.exceptions import ValidationError


@bp.route("", methods=["GET"])
@token_required
def list_orders() -> Response:
    customer_id = request.args.get("customer_id", type=int)
    status = request.args.get("status")
    with db.transaction() as tx:
        found = orders.list_orders(tx, customer_id=customer_id, status=status)
        payload = [order.data() for order in found]
    return jsonify(success=True, data=payload)


@bp.route("", methods=["POST"])
@token_required
def create_order() -> tuple[Response, int]:
    data = json_body("customer_id", "items")
    if not isinstance(data["items"], list):
        raise ValidationError("items must be a list")
    with db.transaction() as tx:
        order = orders.create_order(
            tx,
            customer_id=data["customer_id"],
            items=data["items"],
            shipping_cost=data.get("shipping_cost", 0),
            shipping_address=data.get("shipping_address"),
            notes=data.get("notes"),
        )
        payload = order.data()
    return jsonify(success=True, message="Order created", data=payload), 201


@bp.route("/<int:order_id>", methods=["GET"])
@token_required
def get_order(order_id: int) -> Response:
    with db.transaction() as tx:
        payload = orders.get_order(tx, order_id).data()
    return jsonify(success=True, data=payload)


@bp.route("/<int:order_id>", methods=["PUT"])
@token_required
def update_order(order_id: int) -> Response:
    data = json_body()
    with db.transaction() as tx:
        payload = orders.update_order(tx, order_id, data).data()
    return jsonify(success=True, message="Order updated", data=payload)


@bp.route("/<int:order_id>/status", methods=["PUT"])
@token_required
def update_order_status(order_id: int) -> Response:
    data = json_body("status")
    with db.transaction() as tx:
        payload = orders.update_order_status(tx, order_id, data["status"]).data()
    return jsonify(success=True, message="Order status updated", data=payload)


@bp.route("/<int:order_id>/cancel", methods=["POST"])
@token_required
def cancel_order(order_id: int) -> Response:
    with db.transaction() as tx:
        payload = orders.cancel_order(tx, order_id).data()
    return jsonify(success=True, message="Order cancelled", data=payload)


@bp.route("/<int:order_id>", methods=["DELETE"])
@token_required
def delete_order(order_id: int) -> Response:
    with db.transaction() as tx:
        orders.delete_order(tx, order_id)
    return jsonify(success=True, message="Order deleted")
