"""
Problem Details (RFC 9457) errors and the FastAPI handlers that render them.

Every problem carries a stable ``code`` next to the human-readable detail:

    INVALID_INPUT    400  malformed or inconsistent input
    UNAUTHENTICATED  401  session token missing or invalid
    UNAUTHORIZED     403  admin rights required
    NOT_FOUND        404  referenced record does not exist
    CONFLICT         409  duplicate or conflicting state (SOLD_OUT for availability)
    UPSTREAM         502  storage or currency-rate collaborator failed, retryable
    INTERNAL         500  anything unexpected
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

PROBLEM_TYPE_BASE = "https://travel-booking.example/problems"


class ProblemDetailsException(HTTPException):
    """
    Base class for errors rendered as ``application/problem+json``.

    Subclasses set the class attributes; ``extensions`` adds members such as
    ``errors`` or ``resource_type`` to the response body.
    """

    status: int = 500
    title: str = "Internal Server Error"
    code: str = "INTERNAL"
    problem_type: str = "internal-server-error"
    retryable: bool = False

    def __init__(
        self,
        detail: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        code: Optional[str] = None,
    ):
        if code is not None:
            self.code = code
        self.extensions = extensions or {}
        super().__init__(status_code=self.status, detail=detail or self.title, headers=headers)

    @property
    def problem_details(self) -> Dict[str, Any]:
        body = {
            "type": f"{PROBLEM_TYPE_BASE}/{self.problem_type}",
            "title": self.title,
            "status": self.status_code,
            "code": self.code,
            "retryable": self.retryable,
            "detail": self.detail,
        }
        body.update(self.extensions)
        return body

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class ValidationError(ProblemDetailsException):
    """Malformed or inconsistent input, optionally with per-field messages."""

    status = 400
    title = "Validation Error"
    code = "INVALID_INPUT"
    problem_type = "validation-error"

    def __init__(self, detail: str = "The request data failed validation", errors: Optional[Dict[str, Any]] = None):
        super().__init__(detail, extensions={"errors": errors} if errors else None)


class AuthenticationError(ProblemDetailsException):
    status = 401
    title = "Authentication Required"
    code = "UNAUTHENTICATED"
    problem_type = "authentication-required"

    def __init__(self, detail: str = "A valid session token is required"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ProblemDetailsException):
    """An admin-only operation was called without admin rights."""

    status = 403
    title = "Access Forbidden"
    code = "UNAUTHORIZED"
    problem_type = "access-forbidden"

    def __init__(self, detail: str = "Admin rights are required", required_permissions: Optional[list] = None):
        extensions = {"required_permissions": required_permissions} if required_permissions else None
        super().__init__(detail, extensions=extensions)


class NotFoundError(ProblemDetailsException):
    status = 404
    title = "Resource Not Found"
    code = "NOT_FOUND"
    problem_type = "resource-not-found"

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        if not detail:
            described = f"{resource_type} '{resource_id}'" if resource_id else resource_type
            detail = f"The requested {described} could not be found"

        extensions: Dict[str, Any] = {"resource_type": resource_type}
        if resource_id:
            extensions["resource_id"] = resource_id
        super().__init__(detail, extensions=extensions)


class ConflictError(ProblemDetailsException):
    """The request conflicts with current state. ``code`` narrows the kind, e.g. SOLD_OUT."""

    status = 409
    title = "Resource Conflict"
    code = "CONFLICT"
    problem_type = "resource-conflict"

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        extensions = {"conflicting_resource": conflicting_resource} if conflicting_resource else None
        super().__init__(detail, extensions=extensions, code=code)


class UpstreamError(ProblemDetailsException):
    """The storage or currency-rate collaborator failed. Nothing was applied."""

    status = 502
    title = "Upstream Failure"
    code = "UPSTREAM"
    problem_type = "upstream-failure"
    retryable = True

    def __init__(self, collaborator: str, detail: Optional[str] = None):
        super().__init__(
            detail or f"The {collaborator} collaborator failed to complete the request",
            extensions={"collaborator": collaborator},
        )


class InternalServerError(ProblemDetailsException):
    def __init__(self, detail: str = "An unexpected error occurred while processing the request"):
        super().__init__(detail, extensions=_incident())


def _incident() -> Dict[str, str]:
    return {
        "error_id": str(uuid.uuid4()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _problem_response(request: Request, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    body.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=body["status"],
        content=body,
        headers=headers,
        media_type="application/problem+json",
    )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """Render a raised problem as its response."""
    return _problem_response(request, exc.problem_details, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body validation failures as a 422 problem with one violation per field."""
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]

    body = {
        "type": f"{PROBLEM_TYPE_BASE}/validation-error",
        "title": "Validation Error",
        "status": 422,
        "code": "INVALID_INPUT",
        "retryable": False,
        "detail": "The request body failed schema validation",
        "violations": violations,
    }
    return _problem_response(request, body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: unexpected exceptions become an INTERNAL problem."""
    return _problem_response(request, InternalServerError().problem_details)
