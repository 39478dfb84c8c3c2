"""Typed failures raised by the task store and mapped to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class TaskflowError(Exception):
    """Base error for store operations."""

    status_code = 500
    detail = "error"

    def __init__(self, message: str | None = None):
        self.message = message or self.detail
        super().__init__(self.message)


class Unauthorized(TaskflowError):
    """A policy predicate rejected the operation."""

    status_code = 403
    detail = "forbidden"


class NotFound(TaskflowError):
    """Target row does not exist or is not visible to the caller."""

    status_code = 404
    detail = "not found"


class ConstraintViolation(TaskflowError):
    """A column-level rule was violated."""

    status_code = 422
    detail = "constraint_violation"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"invalid value for {field}")


class TransactionFailure(TaskflowError):
    """Storage could not commit; the unit of work was rolled back."""

    status_code = 503
    detail = "transaction_failed"


def _body(exc: TaskflowError) -> dict:
    body: dict = {"detail": exc.detail}
    if isinstance(exc, ConstraintViolation):
        body["field"] = exc.field
        body["message"] = exc.message
    return body


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskflowError)
    async def _taskflow_error(request: Request, exc: TaskflowError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_body(exc))
