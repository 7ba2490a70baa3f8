# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: durable team state.
One row per team, keyed by team name. NO business rules here, pure CRUD.
Every SQLAlchemy failure surfaces as ExternalError.
"""

from datetime import timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, Column, DateTime, MetaData, String, Table, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from oncallbot.core.deadline import remaining_timeout
from oncallbot.core.exceptions import ExternalError
from oncallbot.models.domain import ManagerRef, RotationEntry, TeamRotation

metadata = MetaData()

oncall_list = Table(
    "oncall_list",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("team", String(255), nullable=False, unique=True),
    Column("managers", JSON, nullable=False, default=list),
    Column("users", JSON, nullable=False, default=list),
    Column("updated", DateTime(timezone=True), nullable=False),
    Column("updated_by", String(255), nullable=False, default=""),
)


def _to_row(key: str, rotation: TeamRotation) -> Dict[str, Any]:
    return {
        "key": key,
        "team": rotation.team,
        "managers": [
            {"manager_name": m.name, "manager_id": m.id} for m in rotation.managers
        ],
        "users": [
            {"name": r.name, "id": r.id, "label": r.label} for r in rotation.rotations
        ],
        "updated": rotation.updated,
        "updated_by": rotation.updated_by,
    }


def _bound(conn: Connection, seconds: float) -> None:
    """Cap lock waits / statement time on this connection to the request budget."""
    millis = max(1, int(seconds * 1000))
    dialect = conn.dialect.name
    if dialect == "sqlite":
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {millis}")
    elif dialect == "postgresql":
        conn.exec_driver_sql(f"SET LOCAL statement_timeout = {millis}")
        conn.exec_driver_sql(f"SET LOCAL lock_timeout = {millis}")


def _from_row(row) -> TeamRotation:
    updated = row.updated
    if updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    return TeamRotation(
        key=row.key,
        team=row.team,
        managers=tuple(
            ManagerRef(name=m["manager_name"], id=m["manager_id"])
            for m in (row.managers or [])
        ),
        rotations=tuple(
            RotationEntry(name=u["name"], id=u["id"], label=u.get("label", ""))
            for u in (row.users or [])
        ),
        updated=updated,
        updated_by=row.updated_by or "",
    )


class TeamRepository:
    """SQL-backed team store."""

    def __init__(self, engine: Engine, timeout: float = 3.0) -> None:
        self._engine = engine
        self._timeout = timeout

    def create_schema(self) -> None:
        try:
            metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise ExternalError(f"error creating schema: {exc}") from exc

    # ── Read ──

    def get_all(self) -> List[TeamRotation]:
        timeout = remaining_timeout(self._timeout, "loading teams")
        try:
            with self._engine.connect() as conn:
                _bound(conn, timeout)
                rows = conn.execute(select(oncall_list)).fetchall()
        except SQLAlchemyError as exc:
            raise ExternalError(f"error loading teams: {exc}") from exc
        return [_from_row(row) for row in rows]

    # ── Write ──

    def put(self, rotation: TeamRotation) -> str:
        """Insert or replace a team row. Returns the row key (team name on first save)."""
        key = rotation.key or rotation.team
        timeout = remaining_timeout(self._timeout, f"saving team {rotation.team}")
        row = _to_row(key, rotation)
        try:
            with self._engine.begin() as conn:
                _bound(conn, timeout)
                result = conn.execute(
                    oncall_list.update().where(oncall_list.c.key == key).values(**row)
                )
                if result.rowcount == 0:
                    conn.execute(oncall_list.insert().values(**row))
        except SQLAlchemyError as exc:
            raise ExternalError(f"error saving team {rotation.team}: {exc}") from exc
        return key

    def delete(self, key: str) -> None:
        timeout = remaining_timeout(self._timeout, f"deleting team {key}")
        try:
            with self._engine.begin() as conn:
                _bound(conn, timeout)
                conn.execute(oncall_list.delete().where(oncall_list.c.key == key))
        except SQLAlchemyError as exc:
            raise ExternalError(f"error deleting team {key}: {exc}") from exc
