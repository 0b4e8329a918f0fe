"""Role key registry: the only role keys the application knows about."""

from __future__ import annotations

ADMIN = "admin"
USER = "user"

# key -> label; seeded into the roles table at startup
DEFAULT_ROLES: dict[str, str] = {
    ADMIN: "Administrator",
    USER: "User",
}

ALL_ROLE_KEYS: frozenset[str] = frozenset(DEFAULT_ROLES)
