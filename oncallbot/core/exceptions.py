# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy shared by every layer.

InputError and PermissionDeniedError are raised before any state is
touched. DomainError is raised while validating a request against the
current state, before anything is persisted. ExternalError is raised
once a Slack or durable-store call has actually been issued; the
Rotation Store guarantees in-memory state is unchanged when it surfaces
from a mutation.
"""


class OnCallError(Exception):
    """Base exception for the on-call bot."""


class InputError(OnCallError):
    """Malformed or missing command parameters."""

    def __init__(self, operation: str, reason: str = "invalid input") -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"({operation}) {reason}")


class PermissionDeniedError(OnCallError):
    """Caller is below the tier the operation requires."""

    def __init__(self, operation: str, user_id: str) -> None:
        self.operation = operation
        self.user_id = user_id
        super().__init__(f"({operation}) user {user_id} has no permission")


class DomainError(OnCallError):
    """Valid input that cannot proceed against the current state."""


class TeamNotFoundError(DomainError):
    def __init__(self, team: str, message: str | None = None) -> None:
        self.team = team
        super().__init__(message or f"Team {team} is not registered in oncall command")


class IdentityNotFoundError(DomainError):
    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"<@{user_id}> doesn't exist in Slack")


class ExternalError(OnCallError):
    """Slack API or durable-store failure (including deadline expiry)."""
