# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.

Field names are snake_case in Python and camelCase on the wire, matching the
spreadsheet API (``canDoPublicWitnessing``, ``dayOfWeek``...).
"""

import re
from datetime import date as date_type, datetime, timezone
from enum import Enum
from typing import Any, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from fieldservice.core.config import settings

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def normalize_clock_time(value: Any, fallback: str) -> str:
    """Coerce a stored time to ``HH:MM``.

    The spreadsheet sometimes hands back a full ISO timestamp for a time-only
    cell; those are converted to local wall-clock time. Anything unusable
    becomes ``fallback``.
    """
    if not isinstance(value, str) or not value.strip():
        return fallback
    text = value.strip()
    match = _CLOCK_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            return fallback
        return f"{hours:02d}:{minutes:02d}"
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return fallback
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(ZoneInfo(settings.TIMEZONE))
    return parsed.strftime("%H:%M")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(settings.TIMEZONE))
    return parsed


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize in the shape the remote endpoint expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Gender(str, Enum):
    BROTHER = "brother"
    SISTER = "sister"

    @classmethod
    def _missing_(cls, value):
        return _LEGACY_GENDERS.get(value)


class ServiceType(str, Enum):
    DOOR_TO_DOOR = "door-to-door"
    PUBLIC_STAND = "public-stand"
    MIXED = "public-stand&door-to-door"

    @classmethod
    def _missing_(cls, value):
        return _LEGACY_SERVICE_TYPES.get(value)


# Korean labels still found in older sheet rows
_LEGACY_GENDERS = {"형제": Gender.BROTHER, "자매": Gender.SISTER}
_LEGACY_SERVICE_TYPES = {
    "호별": ServiceType.DOOR_TO_DOOR,
    "전시대": ServiceType.PUBLIC_STAND,
    "전시대&호별": ServiceType.MIXED,
}


class Role(str, Enum):
    LEADER = "leader"
    VOLUNTEER = "volunteer"


class Volunteer(CamelModel):
    """A roster member. Identity is ``id``."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    gender: Gender
    can_do_public_witnessing: bool = False

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v


class Comment(CamelModel):
    id: str
    author_id: str
    author_name: str
    text: str
    created_at: str

    @field_validator("id", "author_id", mode="before")
    @classmethod
    def _coerce_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v

    def created_at_dt(self) -> datetime:
        """Sort key; unparseable stamps sort first."""
        try:
            return parse_timestamp(self.created_at)
        except ValueError:
            return datetime.min.replace(tzinfo=timezone.utc)


class ServiceSchedule(CamelModel):
    """Recurring weekly template. ``day_of_week`` is 0 for Sunday."""
    id: Optional[str] = None
    day_of_week: int = Field(..., ge=0, le=6)
    time: str
    leader: str = ""
    phone_number: str = ""
    type: ServiceType
    location: str = ""
    deadline_day_offset: int = Field(default=1, ge=0, le=1)
    deadline_time: str = "18:00"

    @field_validator("id", "time", "leader", "phone_number", "location", mode="before")
    @classmethod
    def _coerce_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v

    @field_validator("deadline_time", mode="before")
    @classmethod
    def _normalize_deadline(cls, v: Any) -> str:
        return normalize_clock_time(v, settings.DEFAULT_DEADLINE_TIME)

    def slot_key(self) -> str:
        return f"{self.time}-{self.location}"


class ServiceInstance(ServiceSchedule):
    """A dated occurrence of a service."""
    id: str
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    applicants: list[Volunteer] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    assignments: Optional[dict[str, list[Volunteer]]] = None
    pairs: Optional[list[list[Volunteer]]] = None

    @field_validator("date", mode="before")
    @classmethod
    def _strip_time_part(cls, v: Any) -> Any:
        if isinstance(v, str) and len(v) > 10 and v[10] == "T":
            return v[:10]
        return v

    def service_date(self) -> date_type:
        return date_type.fromisoformat(self.date)

    def has_applicant(self, volunteer_id: str) -> bool:
        return any(v.id == volunteer_id for v in self.applicants)

    def is_door_to_door_only(self, volunteer: Volunteer) -> bool:
        """True when the volunteer can only serve the door-to-door half."""
        return self.type == ServiceType.MIXED and not volunteer.can_do_public_witnessing

    def sorted_comments(self) -> list[Comment]:
        return sorted(self.comments, key=lambda c: c.created_at_dt())


class Session(BaseModel):
    """Transient login state. Never persisted."""
    user: Volunteer
    role: Role

    @property
    def is_leader(self) -> bool:
        return self.role == Role.LEADER


def normalize_day_of_week(record: dict[str, Any]) -> dict[str, Any]:
    """The spreadsheet stores Sunday as 7; the client uses 0."""
    if record.get("dayOfWeek") == 7 or record.get("day_of_week") == 7:
        record = dict(record)
        record.pop("day_of_week", None)
        record["dayOfWeek"] = 0
    return record


class ServiceForm(CamelModel):
    """The leader-editable fields of an instance (no id, date or day)."""
    time: str
    leader: str = ""
    phone_number: str = ""
    type: ServiceType
    location: str = ""
    deadline_day_offset: int = Field(default=1, ge=0, le=1)
    deadline_time: str = "18:00"
