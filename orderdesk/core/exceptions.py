"""
Custom exceptions for the order desk.
Handles HTTP exceptions, validation errors, and order workflow errors.
"""
from typing import Any, Dict, Optional, List
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Standard error detail structure"""
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class BaseCustomException(HTTPException):
    """Base class for all custom exceptions"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.field = field
        self.details = details


class NotFoundError(BaseCustomException):
    """Resource not found exception"""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with identifier '{identifier}' not found",
            error_code="RESOURCE_NOT_FOUND"
        )


class UnauthorizedError(BaseCustomException):
    """Unauthorized access exception"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(BaseCustomException):
    """Forbidden access exception"""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=message,
            error_code="FORBIDDEN"
        )


class ValidationError(BaseCustomException):
    """Rejected input, raised before anything is written"""

    def __init__(self, message: str, field: str = None, errors: List[ErrorDetail] = None,
                 error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=message,
            error_code=error_code,
            field=field
        )
        self.errors = errors or []


class EmptyOrderError(ValidationError):
    """Order has no active line items"""

    def __init__(self, order_id: str = None):
        message = "Order has no active items"
        if order_id:
            message = f"Order {order_id} has no active items"
        super().__init__(message=message, field="order_items", error_code="EMPTY_ORDER")


class BusinessLogicError(BaseCustomException):
    """Base business logic error"""

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None,
                 status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY):
        super().__init__(
            status_code=status_code,
            detail=message,
            error_code=error_code,
            details=details
        )


class InsufficientStockError(BusinessLogicError):
    """Insufficient stock to deliver an order line"""

    def __init__(self, product_id: str, requested_qty: int, available_qty: int, product_name: str = None):
        label = product_name or product_id
        super().__init__(
            message=f"Insufficient stock for {label}. Requested: {requested_qty}, Available: {available_qty}",
            error_code="INSUFFICIENT_STOCK",
            details={
                "product_id": product_id,
                "requested": requested_qty,
                "available": available_qty
            }
        )
        self.product_id = product_id
        self.requested_qty = requested_qty
        self.available_qty = available_qty


class BalanceConfirmationRequired(BusinessLogicError):
    """Pending balances exceed the order total and were not confirmed"""

    def __init__(self, order_id: str, outstanding: Any, total: Any):
        super().__init__(
            message=(
                f"Cheque and credit balances ({outstanding}) exceed the order total ({total}) "
                f"for order {order_id}. Resubmit with confirm=true to save anyway."
            ),
            error_code="BALANCE_CONFIRMATION_REQUIRED",
            details={"outstanding": str(outstanding), "total": str(total)},
            status_code=status.HTTP_409_CONFLICT
        )


class PersistenceError(BaseCustomException):
    """A database write failed; the operation was aborted"""

    def __init__(self, operation: str = "database operation", reason: str = None):
        message = f"Failed to complete {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=message,
            error_code="PERSISTENCE_ERROR"
        )
        self.operation = operation


class PartialFailureWarning(BaseCustomException):
    """Some writes of a multi-step operation stayed committed after a failure"""

    def __init__(self, order_id: str, failed_step: str, inconsistent_steps: List[str]):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=(
                f"Order {order_id} may be inconsistent: '{failed_step}' failed and "
                f"{', '.join(inconsistent_steps)} could not be undone. Please check the record manually."
            ),
            error_code="PARTIAL_FAILURE",
            details={"failed_step": failed_step, "inconsistent_steps": inconsistent_steps}
        )
        self.order_id = order_id
        self.failed_step = failed_step
        self.inconsistent_steps = inconsistent_steps


def format_error_response(error: HTTPException) -> Dict[str, Any]:
    """Format error response for consistent API responses"""
    response = {
        "error": True,
        "error_code": getattr(error, 'error_code', None) or 'HTTP_ERROR',
        "message": error.detail,
        "status_code": error.status_code
    }

    if getattr(error, 'field', None):
        response["field"] = error.field

    if getattr(error, 'details', None):
        response["details"] = error.details

    if getattr(error, 'errors', None):
        response["errors"] = [
            {
                "code": err.code,
                "message": err.message,
                "field": err.field,
                "details": err.details
            } for err in error.errors
        ]

    return response


async def custom_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render every HTTPException in the common error envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(exc),
        headers=getattr(exc, 'headers', None)
    )


def _loc_to_field(loc) -> str:
    return ".".join(str(part) for part in loc if part not in ("body", "query", "path"))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request parsing failures in the same envelope as ValidationError"""
    errors = [
        ErrorDetail(code=err.get("type", "invalid"), message=err.get("msg", ""),
                    field=_loc_to_field(err.get("loc", ())) or None)
        for err in exc.errors()
    ]
    error = ValidationError(
        errors[0].message if len(errors) == 1 else "Invalid request",
        field=errors[0].field if errors else None,
        errors=errors
    )
    return await custom_exception_handler(request, error)
