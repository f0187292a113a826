# API v1 routers
# This file ensures all routers are properly exported

from . import (
    pricing,
    memberships
)

__all__ = [
    "pricing",
    "memberships"
]
