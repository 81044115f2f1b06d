"""Center-scoped and admin-only authorization checks."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from period_engine.config import get_settings
from period_engine.exceptions import PermissionDeniedError


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf an operation runs."""

    user_id: UUID | None
    role: str
    center_id: UUID | None = None

    @property
    def is_elevated(self) -> bool:
        return self.role == get_settings().admin_role


def authorize_center(actor: Actor, center_id: UUID, action: str) -> None:
    """Admins may act on any center; everyone else only on their own."""
    if actor.is_elevated:
        return
    if actor.center_id is None or actor.center_id != center_id:
        raise PermissionDeniedError(
            "You do not have permission to manage this center",
            action=action,
            center_id=str(center_id),
            user_id=str(actor.user_id) if actor.user_id else None,
        )


def authorize_admin(actor: Actor, action: str) -> None:
    """Band tables, rates, splits and period generation are admin-managed."""
    if not actor.is_elevated:
        raise PermissionDeniedError(
            "Only administrators may perform this action",
            action=action,
            user_id=str(actor.user_id) if actor.user_id else None,
        )
