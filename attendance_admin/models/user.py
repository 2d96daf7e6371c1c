"""Students (``users/{key}``), their attendance events, and the enrollment hand-off."""
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from attendance_admin.store import as_mapping


class AttendanceEvent(BaseModel):
    """One presence/absence instance written by the fingerprint device.

    ``timestamp`` is epoch seconds or epoch milliseconds; nothing in the record
    says which.
    """
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(default="", exclude=True)  # child key under attendance/
    attended: bool = False
    timestamp: Union[int, float] = 0
    branch: Optional[str] = None
    semester: Optional[str] = Field(default=None, alias="sem")
    subject: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, v):
        return 0 if v is None else v


class User(BaseModel):
    """Student record. ``branch`` and ``semester`` are names, not ids."""
    model_config = ConfigDict(populate_by_name=True)

    key: str = ""  # store key under users/
    id: str = ""  # fingerprint slot number
    name: str = ""
    phone: str = Field(default="", alias="number")
    rollNumber: str = ""
    branch: str = ""
    semester: str = Field(default="", alias="sem")
    attendance: dict[str, AttendanceEvent] = Field(default_factory=dict)
    createdAt: Optional[int] = None

    @field_validator("id", "name", "phone", "rollNumber", "branch", "semester", mode="before")
    @classmethod
    def _to_str(cls, v):
        return "" if v is None else str(v)

    @field_validator("attendance", mode="before")
    @classmethod
    def _attendance(cls, v):
        return {k: {**e, "key": k} for k, e in as_mapping(v).items() if isinstance(e, dict)}


def parse_users(raw) -> list[User]:
    users = []
    for key, value in as_mapping(raw).items():
        if isinstance(value, dict):
            users.append(User.model_validate({**value, "key": key}))
    return users


class PendingEnrollment(BaseModel):
    """Payload held at the ``id`` node until the device enrolls the finger."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    phone: str = Field(default="", alias="number")
    rollNumber: str = ""
    branch: str = ""
    semester: str = Field(default="", alias="sem")

    @field_validator("id", "name", "phone", "rollNumber", "branch", "semester", mode="before")
    @classmethod
    def _to_str(cls, v):
        return "" if v is None else str(v)

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True)


class EnrollmentCreate(BaseModel):
    id: Optional[str] = None
    name: str = ""
    phone: str = ""
    rollNumber: str = ""
    branchId: Optional[str] = None
    semester: str = ""
