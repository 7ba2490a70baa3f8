# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: On-call command execution.
Parses the command, gates it on the caller's tier, runs it against the
rotation store and turns every outcome (including errors) into a reply.
"""

import time
from typing import Callable

from oncallbot.core.exceptions import (
    DomainError,
    ExternalError,
    IdentityNotFoundError,
    InputError,
    PermissionDeniedError,
)
from oncallbot.core.logging import get_logger
from oncallbot.metrics.prometheus import COMMAND_LATENCY, COMMANDS_TOTAL
from oncallbot.models.domain import ManagerRef, Requestor, RotationEntry
from oncallbot.schemas.slack import SlackResponse
from oncallbot.services.command_parser import Command, Mention, parse_command
from oncallbot.services.identity_cache import IdentityCache
from oncallbot.services.messages import Messages
from oncallbot.services.permission_service import PermissionResolver
from oncallbot.services.renderer import Renderer
from oncallbot.services.rotation_store import RotationStore

logger = get_logger(__name__)

Handler = Callable[[Command, Requestor], SlackResponse]


class OnCallService:
    """Business logic for every slash-command operation."""

    def __init__(
        self,
        store: RotationStore,
        identities: IdentityCache,
        permissions: PermissionResolver,
        renderer: Renderer,
        messages: Messages,
    ) -> None:
        self._store = store
        self._identities = identities
        self._permissions = permissions
        self._renderer = renderer
        self._messages = messages
        self._handlers: dict[str, Handler] = {
            "list": self._list,
            "update": self._update,
            "add": self._add,
            "remove": self._remove,
            "swap": self._swap,
            "flush": self._flush,
            "register": self._register,
            "unregister": self._unregister,
        }

    # ── Lifecycle ──

    def initialize(self) -> None:
        """
        Startup: load stored teams, resolve configured superusers and
        count how many teams each manager manages. Failures are logged;
        state loading is retried on the first command.
        """
        try:
            self.ensure_ready()
        except ExternalError as exc:
            logger.warning("error loading oncall state - %s", exc)
            return
        self._permissions.initialize()
        for team in self._store.list_teams():
            for manager in team.managers:
                self._adjust_manager_count(manager.id, 1)

    def ensure_ready(self) -> None:
        if not self._store.loaded:
            self._store.load()

    # ── Commands ──

    def execute(self, text: str, requestor: Requestor) -> SlackResponse:
        try:
            command = parse_command(text)
        except InputError as exc:
            logger.warning("%s", exc)
            COMMANDS_TOTAL.labels(operation=exc.operation, outcome="input_error").inc()
            return SlackResponse(text=self._messages.usage(exc.operation))

        handler = self._handlers.get(command.operation)
        if handler is None:
            return SlackResponse(text=self._messages.usage())

        start = time.monotonic()
        outcome = "success"
        try:
            self.ensure_ready()
            if not self._permissions.allows(command.tier, requestor.id, command.team):
                raise PermissionDeniedError(command.operation, requestor.id)
            return handler(command, requestor)
        except PermissionDeniedError as exc:
            outcome = "permission_denied"
            logger.warning("%s (%s)", exc, requestor.name)
            return SlackResponse(text=self._messages.no_permission)
        except DomainError as exc:
            outcome = "domain_error"
            return SlackResponse(text=self._messages.human(str(exc)))
        except ExternalError as exc:
            outcome = "external_error"
            logger.warning("(%s) external error - %s", command.operation, exc)
            return SlackResponse(text=self._messages.external)
        finally:
            COMMANDS_TOTAL.labels(operation=command.operation, outcome=outcome).inc()
            COMMAND_LATENCY.labels(operation=command.operation).observe(time.monotonic() - start)

    # ── Handlers ──

    def _list(self, command: Command, requestor: Requestor) -> SlackResponse:
        if not command.team:
            return SlackResponse(
                text="List of Teams and Managers:",
                attachments=[self._renderer.teams_attachment()],
            )
        return SlackResponse(
            text=f"On-call list for: {command.team}",
            attachments=[self._renderer.team_attachment(command.team)],
        )

    def _update(self, command: Command, requestor: Requestor) -> SlackResponse:
        if self._identities.resolve(requestor.id, force=True) is None:
            return SlackResponse(text=self._messages.human("Sorry! You don't exist in Slack"))
        return SlackResponse(text="Success! Your information is now up to date!")

    def _add(self, command: Command, requestor: Requestor) -> SlackResponse:
        user = self._require_identity(command.user)
        _, updated_existing = self._store.add(
            command.team,
            RotationEntry(name=user.name, id=user.id, label=command.label),
            requestor.name,
        )
        if updated_existing:
            text = f"Success! Information updated for <@{user.id}>\nNew list:"
        else:
            text = f"Success! <@{user.id}> added to the on-call list for {command.team}\nNew list:"
        return self._with_list(text, command.team)

    def _remove(self, command: Command, requestor: Requestor) -> SlackResponse:
        user = command.user
        self._store.remove(command.team, user.id, requestor.name)
        return self._with_list(
            f"Success! <@{user.id}> removed from the on-call list for {command.team}\nNew list:",
            command.team,
        )

    def _swap(self, command: Command, requestor: Requestor) -> SlackResponse:
        a, b = command.positions
        self._store.swap(command.team, a, b, requestor.name)
        return self._with_list(
            f"Success! Swapped position {a} and {b} in the on-call list for {command.team}\nNew list:",
            command.team,
        )

    def _flush(self, command: Command, requestor: Requestor) -> SlackResponse:
        self._store.flush(command.team, requestor.name)
        return SlackResponse(text=f"Success! Removed all on-call list from {command.team}")

    def _register(self, command: Command, requestor: Requestor) -> SlackResponse:
        manager = None
        if command.user is not None:
            user = self._require_identity(command.user)
            manager = ManagerRef(name=user.name, id=user.id)

        _, created = self._store.register(command.team, manager, requestor.name)
        if manager is not None:
            self._adjust_manager_count(manager.id, 1)

        if created and manager is None:
            return SlackResponse(text=f"Success! New team {command.team} registered")
        if created:
            return SlackResponse(
                text=f"Success! New team {command.team} registered, with manager <@{manager.id}>"
            )
        return SlackResponse(
            text=f"Success! <@{manager.id}> added as a manager of team {command.team}"
        )

    def _unregister(self, command: Command, requestor: Requestor) -> SlackResponse:
        if command.user is None:
            current = self._store.get_team(command.team)
            self._store.unregister(command.team, None, requestor.name)
            if current is not None:
                for manager in current.managers:
                    self._adjust_manager_count(manager.id, -1)
            return SlackResponse(text=f"Success! Team {command.team} removed from oncall command")

        user = command.user
        self._store.unregister(command.team, user.id, requestor.name)
        self._adjust_manager_count(user.id, -1)
        return SlackResponse(
            text=f"Success! Manager <@{user.id}> removed as a manager from team {command.team}"
        )

    # ── Internal ──

    def _with_list(self, text: str, team: str) -> SlackResponse:
        return SlackResponse(text=text, attachments=[self._renderer.team_attachment(team)])

    def _require_identity(self, mention: Mention) -> Mention:
        """The mentioned user must exist in Slack. Raises IdentityNotFoundError."""
        if self._identities.resolve(mention.id) is None:
            raise IdentityNotFoundError(mention.id)
        return mention

    def _adjust_manager_count(self, user_id: str, delta: int) -> None:
        try:
            self._identities.adjust_manager_count(user_id, delta)
        except (DomainError, ExternalError) as exc:
            logger.warning("error updating manager count for %s - %s", user_id, exc)
