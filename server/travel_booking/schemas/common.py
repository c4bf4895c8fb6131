"""Problem Details shapes shared by every router's OpenAPI documentation."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Violation(BaseModel):
    path: str = Field(..., description="Dotted location of the offending field, e.g. body.date")
    message: str


class Problem(BaseModel):
    """Body of an ``application/problem+json`` error response."""

    type: str
    title: str
    status: int
    code: str = Field(..., description="NOT_FOUND, INVALID_INPUT, CONFLICT, SOLD_OUT, UNAUTHORIZED, UPSTREAM ...")
    retryable: bool = False
    detail: str
    instance: Optional[str] = Field(None, description="Path of the RPC that failed")

    # Kind-specific members
    errors: Optional[Dict[str, Any]] = Field(None, description="Per-field messages for INVALID_INPUT")
    violations: Optional[List[Violation]] = Field(None, description="Schema violations (422 only)")
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    collaborator: Optional[str] = Field(None, description="storage or currency")
    error_id: Optional[str] = None


PROBLEM_RESPONSES = {
    400: {"model": Problem, "description": "Invalid input"},
    401: {"model": Problem, "description": "Invalid session token"},
    403: {"model": Problem, "description": "Admin rights required"},
    404: {"model": Problem, "description": "Referenced resource not found"},
    409: {"model": Problem, "description": "Conflict with current state"},
    422: {"model": Problem, "description": "Request body failed schema validation"},
    502: {"model": Problem, "description": "Storage or currency-rate collaborator failed"},
}
