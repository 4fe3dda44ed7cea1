"""Tenant policy schemas

Settings are persisted as string key/value rows. ``TenantPolicy`` is the typed
view the booking core works with; parsing happens here, once.
"""

from decimal import Decimal
from typing import Dict, FrozenSet, Optional
from pydantic import BaseModel, Field, field_validator

from tablebook.config import settings

DEFAULT_MANUAL_VALIDATION_MESSAGE = "Your booking is pending confirmation by the restaurant."


def _parse_weekdays(value):
    if value is None:
        return value
    if isinstance(value, str):
        value = [part.strip() for part in value.split(",") if part.strip()]
    days = frozenset(int(day) for day in value)
    if any(day < 0 or day > 6 for day in days):
        raise ValueError("weekday indices must be between 0 (Sunday) and 6 (Saturday)")
    return days


class TenantPolicy(BaseModel):
    """Typed per-tenant booking policy"""
    enable_deposit: bool = True
    flexible_capacity: bool = False
    require_manual_approval: bool = False
    manual_validation_message: str = DEFAULT_MANUAL_VALIDATION_MESSAGE
    min_notice_minutes: int = Field(default_factory=lambda: settings.default_min_notice_minutes, ge=0)
    closed_weekdays: FrozenSet[int] = frozenset()
    deposit_per_person: Decimal = Field(default_factory=lambda: settings.default_deposit_per_person, ge=0)

    class Config:
        frozen = True

    @field_validator("closed_weekdays", mode="before")
    @classmethod
    def parse_closed_weekdays(cls, value):
        return _parse_weekdays(value)

    def to_rows(self) -> Dict[str, str]:
        """Serialize back to the key/value representation"""
        return serialize_settings(self.model_dump())


class SettingsUpdate(BaseModel):
    """Partial settings update from the admin console"""
    enable_deposit: Optional[bool] = None
    flexible_capacity: Optional[bool] = None
    require_manual_approval: Optional[bool] = None
    manual_validation_message: Optional[str] = None
    min_notice_minutes: Optional[int] = Field(default=None, ge=0)
    closed_weekdays: Optional[FrozenSet[int]] = None
    deposit_per_person: Optional[Decimal] = Field(default=None, ge=0)

    @field_validator("closed_weekdays", mode="before")
    @classmethod
    def parse_closed_weekdays(cls, value):
        return _parse_weekdays(value)


def serialize_settings(values: dict) -> Dict[str, str]:
    rows = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, bool):
            rows[key] = "true" if value else "false"
        elif isinstance(value, (set, frozenset, list, tuple)):
            rows[key] = ",".join(str(day) for day in sorted(value))
        else:
            rows[key] = str(value)
    return rows
