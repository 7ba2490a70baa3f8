# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: list rendering with self-healing.

Every manager and on-call entry is re-resolved through the identity
cache while rendering. Entries whose Slack account is confirmed gone are
left out of the reply and pruned from the store; entries that merely
failed to resolve are shown with the phone placeholder.
"""

from datetime import timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from oncallbot.core.exceptions import ExternalError
from oncallbot.core.logging import get_logger
from oncallbot.metrics.prometheus import SELF_HEAL_PRUNES
from oncallbot.models.domain import TeamRotation
from oncallbot.schemas.slack import Attachment
from oncallbot.services.identity_cache import IdentityCache
from oncallbot.services.messages import Messages
from oncallbot.services.rotation_store import RotationStore

logger = get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M"


def load_timezone(name: str) -> tzinfo:
    """IANA zone by name; anything unknown falls back to UTC."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown timezone %r, using UTC", name)
        return timezone.utc


class Renderer:
    def __init__(
        self,
        store: RotationStore,
        identities: IdentityCache,
        messages: Messages,
        tz: tzinfo,
        color: Optional[str] = None,
    ) -> None:
        self._store = store
        self._identities = identities
        self._messages = messages
        self._tz = tz
        self._color = color

    def teams_attachment(self) -> Attachment:
        """One line per manager of every team."""
        lines: list[str] = []
        for team in self._store.list_teams():
            if not team.managers:
                lines.append(f"{team.team}: {self._messages.no_manager}")
                continue
            for manager in team.managers:
                exists, phone = self._lookup(manager.id)
                if not exists:
                    phone = self._messages.no_phone
                lines.append(f"{team.team}: {manager.name} {phone}")
        return Attachment(text="\n".join(lines), color=self._color)

    def team_attachment(self, team: str) -> Attachment:
        """Managers (title), on-call list (text) and last update (footer) of one team."""
        snapshot = self._store.get_team(team)
        if snapshot is None:
            return Attachment(
                text=self._messages.human(f"Team {team} does not exist"), color=self._color
            )

        manager_lines: list[str] = []
        stale_managers: list[str] = []
        for manager in snapshot.managers:
            exists, phone = self._lookup(manager.id)
            if not exists:
                stale_managers.append(manager.id)
                continue
            manager_lines.append(f"Manager: {manager.name} {phone}")

        rotation_lines: list[str] = []
        stale_entries: list[str] = []
        for entry in snapshot.rotations:
            exists, phone = self._lookup(entry.id)
            if not exists:
                stale_entries.append(entry.id)
                continue
            line = f"{len(rotation_lines) + 1}: {entry.name} {phone}"
            if entry.label:
                line += f" ({entry.label})"
            rotation_lines.append(line)

        if stale_managers or stale_entries:
            self._prune(snapshot, stale_managers, stale_entries)

        return Attachment(
            title="\n".join(manager_lines) or self._messages.no_manager,
            text="\n".join(rotation_lines) or self._messages.no_rotation,
            color=self._color,
            footer=self.footer(snapshot),
        )

    def footer(self, team: TeamRotation) -> str:
        stamp = team.updated.astimezone(self._tz).strftime(DATE_FORMAT)
        return f"updated: {stamp} by {team.updated_by}"

    # ── Internal ──

    def _lookup(self, user_id: str) -> tuple[bool, str]:
        """(exists, phone-or-placeholder). Slack errors count as existing."""
        try:
            user = self._identities.resolve(user_id)
        except ExternalError as exc:
            logger.warning("error getting user %s while rendering - %s", user_id, exc)
            return True, self._messages.no_phone
        if user is None:
            return False, ""
        return True, user.phone or self._messages.no_phone

    def _prune(self, snapshot: TeamRotation, managers: list[str], entries: list[str]) -> None:
        try:
            pruned = self._store.prune(snapshot.team, managers, entries)
        except ExternalError as exc:
            logger.warning("error saving pruned list for %s - %s", snapshot.team, exc)
            return
        if pruned is not None:
            SELF_HEAL_PRUNES.labels(kind="manager").inc(len(managers))
            SELF_HEAL_PRUNES.labels(kind="rotation").inc(len(entries))
