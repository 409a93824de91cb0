"""Role and verification-status checks shared by services and route dependencies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import AuthorizationError
from ..models import AccountStatus, Role

if TYPE_CHECKING:
    from .. import models

logger = logging.getLogger(__name__)

MODERATION_ROLES = {Role.MODERATOR.value, Role.ADMIN.value}
BLOCKED_STATUSES = {AccountStatus.SUSPENDED.value, AccountStatus.BANNED.value}


def is_moderator(member: "models.Profile") -> bool:
    """Moderators and admins share moderation rights."""
    return member.role in MODERATION_ROLES


def is_admin(member: "models.Profile") -> bool:
    return member.role == Role.ADMIN.value


def is_approved(member: "models.Profile") -> bool:
    return member.account_status == AccountStatus.APPROVED.value


def ensure_active_member(member: "models.Profile") -> None:
    """Suspended and banned members may not use the core at all."""
    if member.account_status in BLOCKED_STATUSES:
        logger.warning(f"Blocked member {member.id} ({member.account_status}) denied")
        raise AuthorizationError(f"account {member.account_status}")


def ensure_moderator(member: "models.Profile") -> None:
    if not is_moderator(member):
        logger.warning(f"Member {member.id} denied moderator action")
        raise AuthorizationError("moderator role required")


def ensure_admin(member: "models.Profile") -> None:
    if not is_admin(member):
        logger.warning(f"Member {member.id} denied admin action")
        raise AuthorizationError("admin role required")


def ensure_approved(member: "models.Profile") -> None:
    if not is_approved(member):
        raise AuthorizationError("approved account required")
