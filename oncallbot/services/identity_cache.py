# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Slack identity cache.

Records are kept for USER_CACHE_TIMEOUT seconds. Stale records are
refreshed on the next non-forced lookup; if Slack cannot be reached the
stale record is served instead. Accounts Slack reports as gone,
deactivated or bots are evicted and reported as not found.

Slack is never called while the map lock is held.
"""

import time
from typing import Callable, Iterable, Optional

from oncallbot.core.exceptions import ExternalError, IdentityNotFoundError
from oncallbot.core.locks import ReadWriteLock
from oncallbot.core.logging import get_logger
from oncallbot.metrics.prometheus import IDENTITY_CACHE_LOOKUPS, IDENTITY_CACHE_SIZE
from oncallbot.models.domain import IdentityProfile, IdentityRecord
from oncallbot.services.slack_client import SlackClient

logger = get_logger(__name__)


class IdentityCache:
    """TTL-bound map of Slack user id -> IdentityRecord."""

    def __init__(
        self,
        provider: SlackClient,
        ttl: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._ttl = ttl
        self._clock = clock
        self._records: dict[str, IdentityRecord] = {}
        self._lock = ReadWriteLock()

    # ── Read ──

    def get_cached(self, user_id: str) -> Optional[IdentityRecord]:
        """Cached record without any freshness check or Slack call."""
        with self._lock.read():
            return self._records.get(user_id)

    def size(self) -> int:
        with self._lock.read():
            return len(self._records)

    def resolve(self, user_id: str, force: bool = False) -> Optional[IdentityRecord]:
        """
        Return the identity or None if it does not exist in Slack.

        force=True always asks Slack; a transient error propagates and the
        cached record is left as it was.
        """
        if force:
            return self._refresh(user_id)

        cached = self.get_cached(user_id)
        if cached is None:
            IDENTITY_CACHE_LOOKUPS.labels(result="miss").inc()
            return self._refresh(user_id)

        if self._clock() < cached.retrieved_at + self._ttl:
            IDENTITY_CACHE_LOOKUPS.labels(result="hit").inc()
            return cached

        try:
            record = self._refresh(user_id)
        except ExternalError as exc:
            IDENTITY_CACHE_LOOKUPS.labels(result="stale").inc()
            logger.warning(
                "error refreshing user %s, returning cached data (age=%.0fs): %s",
                user_id, self._clock() - cached.retrieved_at, exc,
            )
            return cached
        IDENTITY_CACHE_LOOKUPS.labels(result="refresh").inc()
        return record

    # ── Write ──

    def adjust_manager_count(self, user_id: str, delta: int) -> IdentityRecord:
        """Raises IdentityNotFoundError if the user does not resolve."""
        if self.resolve(user_id) is None:
            raise IdentityNotFoundError(user_id)
        with self._lock.write():
            current = self._records.get(user_id)
            if current is None:
                raise IdentityNotFoundError(user_id)
            updated = current.model_copy(
                update={"manager_count": current.manager_count + delta}
            )
            self._records[user_id] = updated
        return updated

    def preload_configured_exempt(self, names: Iterable[str]) -> list[str]:
        """
        Resolve configured superuser names against the full Slack listing
        and mark the matching accounts as superusers.

        Returns the names no account matched. A name that matches a bot or
        deactivated account is consumed without granting anything.
        """
        pending = [n for n in names if n]
        if not pending:
            return []

        profiles = self._provider.list_users()
        now = self._clock()
        with self._lock.write():
            for profile in profiles:
                if profile.name not in pending:
                    continue
                pending.remove(profile.name)
                if not profile.is_active_human:
                    logger.warning("superuser %s is a bot or deactivated, ignored", profile.name)
                    continue
                previous = self._records.get(profile.id)
                record = IdentityRecord.from_profile(profile, now, previous)
                self._records[profile.id] = record.model_copy(update={"is_superuser": True})
                logger.info("loaded superuser detail - %s (%s)", profile.name, profile.id)
                if not pending:
                    break
            IDENTITY_CACHE_SIZE.set(len(self._records))
        return pending

    # ── Internal ──

    def _fetch(self, user_id: str) -> Optional[IdentityProfile]:
        profile = self._provider.get_user(user_id)
        if profile is None or not profile.is_active_human:
            return None
        return profile

    def _refresh(self, user_id: str) -> Optional[IdentityRecord]:
        profile = self._fetch(user_id)
        if profile is None:
            with self._lock.write():
                existed = self._records.pop(user_id, None) is not None
                IDENTITY_CACHE_SIZE.set(len(self._records))
            if existed:
                IDENTITY_CACHE_LOOKUPS.labels(result="evicted").inc()
                logger.warning("user no longer exists in Slack (%s), evicted", user_id)
            return None

        now = self._clock()
        with self._lock.write():
            record = IdentityRecord.from_profile(profile, now, self._records.get(user_id))
            self._records[user_id] = record
            IDENTITY_CACHE_SIZE.set(len(self._records))
        return record
