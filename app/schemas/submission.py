"""Pydantic schemas for rows returned by the facilities backend."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.models.enums import SubmissionStatus


def _id_to_str(value: Any) -> Any:
    """Backend keys arrive as either numbers or strings; compare them as strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        # 5.0 must match "5"
        return str(int(value))
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


def _date_part(value: Any) -> Any:
    """Accept full ISO timestamps where a calendar date is expected."""
    if isinstance(value, str) and len(value) > 10 and value[4:5] == "-":
        return value[:10]
    return value


class Submission(BaseModel):
    """A reading captured offline by a reader device, awaiting review."""

    id: int
    device_serial: str | None = None
    device_name: str | None = None
    reader_user_id: str | None = None
    meter_id: str
    reading_value: Decimal
    reading_date: date
    remarks: str | None = None
    image_base64: str | None = Field(
        default=None,
        validation_alias=AliasChoices("image_base64", "image"),
    )
    submitted_at: datetime | None = None
    status: SubmissionStatus = SubmissionStatus.PENDING
    approved_by: str | None = None
    approved_at: datetime | None = None

    @field_validator("meter_id", "reader_user_id", "approved_by", mode="before")
    @classmethod
    def coerce_identity(cls, v: Any) -> Any:
        """Accept numeric identities."""
        return _id_to_str(v)

    @field_validator("reading_date", mode="before")
    @classmethod
    def take_date_part(cls, v: Any) -> Any:
        """Keep the calendar date of a timestamp."""
        return _date_part(v)

    @property
    def has_image(self) -> bool:
        """Whether the device attached a photo of the meter face."""
        return bool(self.image_base64)


class BuildingRow(BaseModel):
    """Building listing row."""

    building_id: str
    building_name: str | None = None

    @field_validator("building_id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric building ids."""
        return _id_to_str(v)

    @property
    def label(self) -> str:
        """Display name, falling back to the id."""
        return self.building_name or self.building_id


class StallRow(BaseModel):
    """Stall listing row; every stall sits in one building."""

    stall_id: str
    building_id: str | None = None

    @field_validator("stall_id", "building_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        """Accept numeric ids."""
        return _id_to_str(v)


class MeterRow(BaseModel):
    """Meter listing row; a meter hangs off a building directly or through a stall."""

    meter_id: str
    stall_id: str | None = None
    building_id: str | None = None

    @field_validator("meter_id", "stall_id", "building_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        """Accept numeric ids."""
        return _id_to_str(v)


class CanonicalReadingRow(BaseModel):
    """Accepted, billable reading as listed by the backend."""

    meter_id: str
    reading_value: Decimal
    lastread_date: date

    @field_validator("meter_id", mode="before")
    @classmethod
    def coerce_meter_id(cls, v: Any) -> Any:
        """Accept numeric meter ids."""
        return _id_to_str(v)

    @field_validator("lastread_date", mode="before")
    @classmethod
    def take_date_part(cls, v: Any) -> Any:
        """Keep the calendar date of a timestamp."""
        return _date_part(v)


class ApproveResponse(BaseModel):
    """Body returned by the approve call."""

    reading_id: str | None = None

    @field_validator("reading_id", mode="before")
    @classmethod
    def coerce_reading_id(cls, v: Any) -> Any:
        """Accept numeric reading ids."""
        return _id_to_str(v)
