"""Helpers for the opaque identifiers exposed by the API."""

from uuid import UUID

from .exceptions import NotFoundError


def parse_id(value: str, resource_type: str) -> UUID:
    """
    Parse an opaque id string.

    A malformed id can never match a stored record, so it is reported the
    same way as a missing one.

    Raises:
        NotFoundError: If the value is not a valid identifier
    """
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as e:
        raise NotFoundError(resource_type=resource_type, resource_id=str(value)) from e
