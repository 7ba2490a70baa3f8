# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.

Every record is frozen. Changing a team or an identity means building a
new value, so the previous value doubles as the revert snapshot.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RotationEntry(BaseModel):
    """One person in a team's on-call list."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Slack display name")
    id: str = Field(..., min_length=1, description="Slack user id")
    label: str = Field(default="", description="Optional area of responsibility")


class ManagerRef(BaseModel):
    """A person allowed to change one team's on-call list."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)


class TeamRotation(BaseModel):
    """Per-team state: managers plus the ordered on-call list."""
    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    team: str = Field(..., min_length=1)
    managers: tuple[ManagerRef, ...] = ()
    rotations: tuple[RotationEntry, ...] = ()
    updated: datetime = Field(default_factory=utcnow)
    updated_by: str = ""

    def find_entry(self, user_id: str) -> int:
        """Index of the rotation entry with this id, or -1."""
        for index, entry in enumerate(self.rotations):
            if entry.id == user_id:
                return index
        return -1

    def has_manager(self, user_id: str) -> bool:
        return any(m.id == user_id for m in self.managers)


class IdentityProfile(BaseModel):
    """A Slack account as reported by the identity provider."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    phone: str = ""
    is_admin: bool = False
    is_bot: bool = False
    deleted: bool = False

    @property
    def is_active_human(self) -> bool:
        return not self.is_bot and not self.deleted


class IdentityRecord(BaseModel):
    """
    Cached identity. is_superuser and manager_count exist only locally
    and survive every refresh of the Slack-sourced fields.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    phone: str = ""
    is_admin: bool = False
    is_superuser: bool = False
    manager_count: int = 0
    retrieved_at: float = 0.0

    @classmethod
    def from_profile(
        cls,
        profile: IdentityProfile,
        retrieved_at: float,
        previous: Optional["IdentityRecord"] = None,
    ) -> "IdentityRecord":
        return cls(
            id=profile.id,
            name=profile.name,
            phone=profile.phone,
            is_admin=profile.is_admin,
            is_superuser=previous.is_superuser if previous else False,
            manager_count=previous.manager_count if previous else 0,
            retrieved_at=retrieved_at,
        )


class Requestor(BaseModel):
    """Who issued the command."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
