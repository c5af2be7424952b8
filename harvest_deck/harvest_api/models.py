"""Data models for Harvest API responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class NamedRef:
    """A project, task or client reference embedded in a time entry."""

    id: str
    name: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any] | None) -> NamedRef | None:
        """Construct from a nested API object, or None when it is absent."""
        if not data or data.get("id") is None:
            return None
        return cls(id=_normalize_id(data["id"]), name=data.get("name") or "")


@dataclass(frozen=True)
class TimeEntry:
    """Harvest time entry.

    Ids are kept as strings so they compare equal to the ids stored in
    button settings, which the host always serialises as strings.
    """

    id: str
    spent_date: str  # YYYY-MM-DD
    hours: float = 0.0
    rounded_hours: float = 0.0
    is_running: bool = False
    project: NamedRef | None = None
    task: NamedRef | None = None
    client: NamedRef | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> TimeEntry:
        """Construct from a time entry object of the Harvest v2 API."""
        hours = float(data.get("hours") or 0.0)
        rounded = data.get("rounded_hours")
        return cls(
            id=_normalize_id(data["id"]),
            spent_date=data.get("spent_date") or "",
            hours=hours,
            rounded_hours=float(rounded) if rounded is not None else hours,
            is_running=bool(data.get("is_running", False)),
            project=NamedRef.from_api_response(data.get("project")),
            task=NamedRef.from_api_response(data.get("task")),
            client=NamedRef.from_api_response(data.get("client")),
        )

    @property
    def project_id(self) -> str | None:
        return self.project.id if self.project else None

    @property
    def task_id(self) -> str | None:
        return self.task.id if self.task else None

    @property
    def client_id(self) -> str | None:
        return self.client.id if self.client else None


def _normalize_id(value: Any) -> str:
    """Render an API id (int or str) in its canonical string form."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()
