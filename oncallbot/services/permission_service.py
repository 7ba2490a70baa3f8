# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Permission resolver.

Three tiers, each including the one below:
    base      anyone (list, update)
    manager   listed as a manager of the team (add, remove, swap, flush)
    exempt    configured superuser or Slack admin (register, unregister)

Pure computed gate: reads the rotation store and identity cache, never
writes to either beyond the one-time superuser preload.
"""

import threading
from enum import IntEnum
from typing import Iterable

from oncallbot.core.exceptions import ExternalError
from oncallbot.core.logging import get_logger
from oncallbot.services.identity_cache import IdentityCache
from oncallbot.services.rotation_store import RotationStore

logger = get_logger(__name__)


class Tier(IntEnum):
    BASE = 0
    MANAGER = 1
    EXEMPT = 2


class PermissionResolver:
    """Decides whether a Slack user may run an operation on a team."""

    def __init__(
        self,
        store: RotationStore,
        identities: IdentityCache,
        superusers: Iterable[str] = (),
        demote_admins: bool = False,
    ) -> None:
        self._store = store
        self._identities = identities
        self._pending_superusers = [name for name in superusers if name]
        # Never allow a total lockout: admins stay exempt unless a superuser exists.
        self._admin_exempt = not (demote_admins and self._pending_superusers)
        self._preloaded = not self._pending_superusers
        self._preload_lock = threading.Lock()

    @property
    def admin_exempt(self) -> bool:
        return self._admin_exempt

    @property
    def pending_superusers(self) -> list[str]:
        return list(self._pending_superusers)

    def initialize(self) -> bool:
        """
        Resolve configured superuser names to Slack ids. Runs the Slack
        listing at most once successfully; later calls are no-ops.
        Returns False if Slack could not be reached (retried on next call).
        """
        if self._preloaded:
            return True
        with self._preload_lock:
            if self._preloaded:
                return True
            try:
                unmatched = self._identities.preload_configured_exempt(self._pending_superusers)
            except ExternalError as exc:
                logger.warning("error loading superusers - %s", exc)
                return False
            if unmatched:
                logger.warning("configured superusers not found in Slack: %s", ", ".join(unmatched))
            self._pending_superusers = unmatched
            self._preloaded = True
        return True

    def is_exempt(self, user_id: str) -> bool:
        if not self.initialize():
            return False
        try:
            user = self._identities.resolve(user_id)
        except ExternalError as exc:
            logger.warning("error getting user detail (%s) - %s", user_id, exc)
            return False
        if user is None:
            logger.warning("inactive or unknown Slack user %s asked for exempt access", user_id)
            return False
        if user.is_superuser:
            return True
        return self._admin_exempt and user.is_admin

    def is_manager(self, user_id: str, team: str) -> bool:
        current = self._store.get_team(team)
        return current is not None and current.has_manager(user_id)

    def has_permission(self, user_id: str, team: str) -> bool:
        return self.is_exempt(user_id) or self.is_manager(user_id, team)

    def allows(self, tier: Tier, user_id: str, team: str) -> bool:
        if tier is Tier.BASE:
            return True
        if tier is Tier.MANAGER:
            return self.has_permission(user_id, team)
        return self.is_exempt(user_id)
