# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
Responses reuse the domain models and therefore use the camelCase wire names.
"""

from typing import Optional

from pydantic import BaseModel, Field

from fieldservice.models.domain import Gender, ServiceForm, ServiceSchedule, ServiceType

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ── Session ──

class VolunteerLoginRequest(BaseModel):
    name: str = Field(..., max_length=255)


class LeaderLoginRequest(BaseModel):
    password: str


class RememberedNameRequest(BaseModel):
    name: str = Field(default="", max_length=255)


# ── Roster ──

class VolunteerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    gender: Gender
    can_do_public_witnessing: bool = False


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str


class ServiceFormRequest(BaseModel):
    """Fields a leader edits on a template or an instance."""
    time: str = Field(..., pattern=CLOCK_PATTERN, examples=["10:00"])
    leader: str = Field(default="", max_length=255)
    phone_number: str = Field(default="", max_length=50)
    type: ServiceType
    location: str = Field(default="", max_length=500)
    deadline_day_offset: int = Field(default=1, ge=0, le=1, description="0 = same day, 1 = day before")
    deadline_time: str = Field(default="18:00", pattern=CLOCK_PATTERN)

    def to_form(self) -> ServiceForm:
        return ServiceForm(**self.model_dump())


class ScheduleRequest(ServiceFormRequest):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday")

    def to_schedule(self, schedule_id: Optional[str] = None) -> ServiceSchedule:
        return ServiceSchedule(id=schedule_id, **self.model_dump())


# ── Instances ──

class FromScheduleRequest(BaseModel):
    schedule_ids: list[str] = Field(..., min_length=1)


class CommentRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


# ── Assignment panels ──

class PairingPickUpRequest(BaseModel):
    volunteer_id: str = Field(..., min_length=1)
    origin_group: Optional[int] = Field(default=None, ge=0)


class SpotPickUpRequest(BaseModel):
    volunteer_id: str = Field(..., min_length=1)
    from_key: Optional[str] = None


class CellRequest(BaseModel):
    spot: str
    group: str


class CellMemberRequest(BaseModel):
    key: str
    volunteer_id: str
