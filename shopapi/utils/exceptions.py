# shopapi/utils/exceptions.py
"""
Central place for all application-specific exceptions.
Services raise these; the Flask error handlers turn them into JSON responses.
"""
from __future__ import annotations


class ShopError(Exception):
    """Base exception for all app errors; never raised directly."""
    status_code = 500
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, **payload):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.payload = payload


class ValidationError(ShopError):
    status_code = 400
    message = "Invalid input"

class InvalidInput(ValidationError):
    message = "Invalid input values"

class EmptyOrder(ValidationError):
    message = "Order must contain at least one item"


class UnauthorizedError(ShopError):
    status_code = 401
    message = "Authentication required"

class InvalidCredentials(UnauthorizedError):
    message = "Invalid username/email or password"

class InvalidOrExpiredToken(UnauthorizedError):
    message = "Token is invalid or has expired"


class AuthorizationError(ShopError):
    status_code = 403
    message = "You do not have permission to perform this action"


class NotFoundError(ShopError):
    status_code = 404
    message = "The requested resource was not found"

class CustomerNotFound(NotFoundError):
    message = "Customer not found"

class ProductNotFound(NotFoundError):
    message = "Product not found"

class OrderNotFound(NotFoundError):
    message = "Order not found"


class ConflictError(ShopError):
    status_code = 409
    message = "The request conflicts with existing data"

class DuplicateUser(ConflictError):
    message = "Username or email is already registered"

class DuplicateReview(ConflictError):
    message = "Customer has already reviewed this product"

class AlreadyTerminal(ConflictError):
    message = "Order is already delivered or cancelled"

class InsufficientStock(ConflictError):
    message = "Insufficient stock for product"


class TransactionFailure(ShopError):
    status_code = 500
    message = "The operation failed and was rolled back"

    def __init__(self, cause: BaseException, message: str | None = None):
        super().__init__(message, cause=f"{type(cause).__name__}: {cause}")
        self.cause = cause
