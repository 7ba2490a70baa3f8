# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation store, the authoritative in-memory team list.

Every mutation follows the same protocol under one exclusive lock:
build the new TeamRotation value from the live one, persist it, and
only then swap it into the list. Team values are immutable, so a failed
persist simply leaves the old value in place and nothing partial is
ever visible to readers.
"""

import bisect
from datetime import datetime
from typing import Callable, Iterable, Optional

from oncallbot.core.exceptions import DomainError, ExternalError, TeamNotFoundError
from oncallbot.core.locks import ReadWriteLock
from oncallbot.core.logging import get_logger
from oncallbot.metrics.prometheus import PERSIST_FAILURES, TEAMS_REGISTERED
from oncallbot.models.domain import ManagerRef, RotationEntry, TeamRotation, utcnow
from oncallbot.repositories.team_repository import TeamRepository

logger = get_logger(__name__)

Mutation = Callable[[TeamRotation], TeamRotation]


class RotationStore:
    """Owns the team list. Readers share the lock, writers hold it across persistence."""

    def __init__(
        self,
        repository: TeamRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repository
        self._clock = clock
        self._teams: list[TeamRotation] = []
        self._lock = ReadWriteLock()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> int:
        """Read every team from the durable store once. Raises ExternalError."""
        with self._lock.write():
            if self._loaded:
                return len(self._teams)
            teams = self._repo.get_all()
            self._teams = sorted(teams, key=lambda t: t.team)
            self._loaded = True
            TEAMS_REGISTERED.set(len(self._teams))
        logger.info("loaded previous on-call states, %d entries loaded", len(teams))
        return len(teams)

    # ── Read ──

    def list_teams(self) -> list[TeamRotation]:
        with self._lock.read():
            return list(self._teams)

    def get_team(self, team: str) -> Optional[TeamRotation]:
        with self._lock.read():
            index = self._index_locked(team)
            return self._teams[index] if index >= 0 else None

    def count(self) -> int:
        with self._lock.read():
            return len(self._teams)

    # ── Team lifecycle ──

    def register(
        self, team: str, manager: Optional[ManagerRef], actor: str
    ) -> tuple[TeamRotation, bool]:
        """
        Create the team, or add a manager to an existing one.
        Returns (team, created).
        """
        with self._lock.write():
            index = self._index_locked(team)
            if index < 0:
                candidate = TeamRotation(
                    team=team,
                    managers=(manager,) if manager else (),
                    updated=self._clock(),
                    updated_by=actor,
                )
                committed = self._persist_locked(candidate, "register")
                names = [t.team for t in self._teams]
                self._teams.insert(bisect.bisect_left(names, team), committed)
                TEAMS_REGISTERED.set(len(self._teams))
                logger.info("team registered: team=%s, by=%s", team, actor)
                return committed, True

            current = self._teams[index]
            if manager is None:
                raise DomainError(f"Team {team} has already been registered")
            if current.has_manager(manager.id):
                raise DomainError(
                    f"Team {team}, manager <@{manager.id}> has already been registered"
                )
            candidate = self._stamp(
                current.model_copy(update={"managers": current.managers + (manager,)}),
                actor,
            )
            committed = self._persist_locked(candidate, "register")
            self._teams[index] = committed
            logger.info("manager added: team=%s, manager=%s, by=%s", team, manager.id, actor)
            return committed, False

    def unregister(
        self, team: str, manager_id: Optional[str], actor: str
    ) -> Optional[TeamRotation]:
        """
        Without manager_id delete the whole team (returns None);
        otherwise drop that manager (returns the updated team).
        """
        if manager_id is None:
            with self._lock.write():
                index = self._index_locked(team)
                if index < 0:
                    raise TeamNotFoundError(team)
                current = self._teams[index]
                try:
                    self._repo.delete(current.key or current.team)
                except ExternalError as exc:
                    PERSIST_FAILURES.labels(operation="unregister").inc()
                    logger.warning("(unregister) error deleting state for %s - %s", team, exc)
                    raise
                del self._teams[index]
                TEAMS_REGISTERED.set(len(self._teams))
            logger.info("team unregistered: team=%s, by=%s", team, actor)
            return None

        def drop_manager(current: TeamRotation) -> TeamRotation:
            if not current.has_manager(manager_id):
                raise DomainError(f"Sorry, <@{manager_id}> is not a manager of team {team}")
            managers = tuple(m for m in current.managers if m.id != manager_id)
            return current.model_copy(update={"managers": managers})

        return self._mutate(team, actor, "unregister", drop_manager)

    # ── Rotation list ──

    def add(self, team: str, entry: RotationEntry, actor: str) -> tuple[TeamRotation, bool]:
        """
        Append the entry, or update name/label of an existing one in place.
        Returns (team, updated_existing).
        """
        updated_existing = False

        def apply(current: TeamRotation) -> TeamRotation:
            nonlocal updated_existing
            index = current.find_entry(entry.id)
            if index < 0:
                return current.model_copy(update={"rotations": current.rotations + (entry,)})
            existing = current.rotations[index]
            if existing.name == entry.name and existing.label == entry.label:
                raise DomainError(f"<@{entry.id}> already assigned {team} rotation")
            rotations = list(current.rotations)
            rotations[index] = entry
            updated_existing = True
            return current.model_copy(update={"rotations": tuple(rotations)})

        committed = self._mutate(team, actor, "add", apply)
        return committed, updated_existing

    def remove(self, team: str, user_id: str, actor: str) -> TeamRotation:
        def apply(current: TeamRotation) -> TeamRotation:
            if not current.rotations:
                raise DomainError(f"Team {team} doesn't have anyone in list")
            if current.find_entry(user_id) < 0:
                raise DomainError(f"Sorry, <@{user_id}> is not in the on-call list for {team}")
            rotations = tuple(r for r in current.rotations if r.id != user_id)
            return current.model_copy(update={"rotations": rotations})

        return self._mutate(team, actor, "remove", apply)

    def swap(self, team: str, position_a: int, position_b: int, actor: str) -> TeamRotation:
        """Exchange two 1-based positions."""
        if position_a == position_b:
            raise DomainError("position_A and position_B are same, nothing to do!")

        def apply(current: TeamRotation) -> TeamRotation:
            size = len(current.rotations)
            if size < 2 or not (1 <= position_a <= size) or not (1 <= position_b <= size):
                raise DomainError(
                    "Sorry, swap could not be completed! Check _position_a_ and _position_b_"
                )
            rotations = list(current.rotations)
            a, b = position_a - 1, position_b - 1
            rotations[a], rotations[b] = rotations[b], rotations[a]
            return current.model_copy(update={"rotations": tuple(rotations)})

        return self._mutate(team, actor, "swap", apply)

    def flush(self, team: str, actor: str) -> TeamRotation:
        return self._mutate(
            team, actor, "flush", lambda current: current.model_copy(update={"rotations": ()})
        )

    # ── Self-healing ──

    def prune(
        self,
        team: str,
        manager_ids: Iterable[str],
        entry_ids: Iterable[str],
    ) -> Optional[TeamRotation]:
        """
        Drop managers / rotation entries whose Slack account is gone.
        The update timestamp and author are left untouched.
        Returns None when the team vanished or nothing was left to drop.
        """
        stale_managers = set(manager_ids)
        stale_entries = set(entry_ids)
        with self._lock.write():
            index = self._index_locked(team)
            if index < 0:
                return None
            current = self._teams[index]
            managers = tuple(m for m in current.managers if m.id not in stale_managers)
            rotations = tuple(r for r in current.rotations if r.id not in stale_entries)
            if managers == current.managers and rotations == current.rotations:
                return None
            candidate = current.model_copy(update={"managers": managers, "rotations": rotations})
            committed = self._persist_locked(candidate, "prune")
            self._teams[index] = committed
        logger.info(
            "pruned team %s: managers %d->%d, on-call list %d->%d",
            team, len(current.managers), len(managers),
            len(current.rotations), len(rotations),
        )
        return committed

    # ── Internal ──

    def _mutate(self, team: str, actor: str, operation: str, apply: Mutation) -> TeamRotation:
        with self._lock.write():
            index = self._index_locked(team)
            if index < 0:
                raise TeamNotFoundError(team)
            candidate = self._stamp(apply(self._teams[index]), actor)
            committed = self._persist_locked(candidate, operation)
            self._teams[index] = committed
        logger.info("%s committed: team=%s, by=%s", operation, team, actor)
        return committed

    def _stamp(self, candidate: TeamRotation, actor: str) -> TeamRotation:
        return candidate.model_copy(update={"updated": self._clock(), "updated_by": actor})

    def _persist_locked(self, candidate: TeamRotation, operation: str) -> TeamRotation:
        try:
            key = self._repo.put(candidate)
        except ExternalError as exc:
            PERSIST_FAILURES.labels(operation=operation).inc()
            logger.warning("(%s) error saving state for %s - %s", operation, candidate.team, exc)
            raise
        if candidate.key != key:
            candidate = candidate.model_copy(update={"key": key})
        return candidate

    def _index_locked(self, team: str) -> int:
        for index, current in enumerate(self._teams):
            if current.team == team:
                return index
        return -1
