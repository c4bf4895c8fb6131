"""Pydantic schemas for request/response validation."""

from .analytics import *  # noqa: F403
from .booking import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .package import *  # noqa: F403
from .user import *  # noqa: F403
from .wishlist import *  # noqa: F403
