"""Shared error translation for RPC endpoints."""

import logging
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from ..core.exceptions import InternalServerError, ProblemDetailsException, UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_operation(name: str, operation: Callable[[], Awaitable[T]], **context: Any) -> T:
    """
    Run an endpoint operation, translating unexpected failures to Problem Details.

    Problem Details exceptions pass through unchanged, storage errors become
    ``UpstreamError`` and anything else becomes ``InternalServerError``.
    """
    try:
        return await operation()

    except ProblemDetailsException:
        raise

    except SQLAlchemyError as e:
        logger.error(
            f"Storage error in {name}",
            extra={**context, "error": str(e)},
            exc_info=True
        )
        raise UpstreamError(collaborator="storage", detail=f"Storage failure during {name}") from e

    except Exception as e:
        logger.error(
            f"Unexpected error in {name}",
            extra={**context, "error": str(e)},
            exc_info=True
        )
        raise InternalServerError() from e


def json_response(data: BaseModel | Sequence[BaseModel]) -> JSONResponse:
    """Serialize a schema or a list of schemas into a 200 JSON response."""
    if isinstance(data, BaseModel):
        content = data.model_dump(mode="json")
    else:
        content = [item.model_dump(mode="json") for item in data]
    return JSONResponse(status_code=200, content=content)
