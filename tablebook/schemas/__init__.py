"""Pydantic schemas for request/response validation"""

from tablebook.schemas.auth import Token, UserResponse
from tablebook.schemas.settings import TenantPolicy, SettingsUpdate
from tablebook.schemas.availability import ZoneAvailability, TimeSlotsResponse
from tablebook.schemas.booking import (
    BookingRequest,
    StaffBookingRequest,
    BookingUpdate,
    BookingResponse,
    BookingListResponse,
    BookingResult,
    CancelRequest,
    OperationResult,
    BlockCreate,
    ClosedDateCreate,
    ClosedDateResponse,
    PaymentEvent,
)
from tablebook.schemas.inventory import ZoneCreate, ZoneResponse, TableCreate, TableResponse

__all__ = [
    "Token",
    "UserResponse",
    "TenantPolicy",
    "SettingsUpdate",
    "ZoneAvailability",
    "TimeSlotsResponse",
    "BookingRequest",
    "StaffBookingRequest",
    "BookingUpdate",
    "BookingResponse",
    "BookingListResponse",
    "BookingResult",
    "CancelRequest",
    "OperationResult",
    "BlockCreate",
    "ClosedDateCreate",
    "ClosedDateResponse",
    "PaymentEvent",
    "ZoneCreate",
    "ZoneResponse",
    "TableCreate",
    "TableResponse",
]
