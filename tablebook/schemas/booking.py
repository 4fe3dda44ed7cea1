"""Booking schemas"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Literal
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field

from tablebook.models.booking import BookingStatus, Turn

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class BookingRequest(BaseModel):
    """Self-service booking request"""
    booking_date: date
    turn: Turn
    time: str = Field(pattern=TIME_PATTERN)
    pax: int = Field(ge=1, le=100)
    zone_id: Optional[int] = None
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=30)
    comments: Optional[str] = None


class StaffBookingRequest(BookingRequest):
    """Booking entered from the admin console"""
    status: Optional[BookingStatus] = None
    assigned_table_id: Optional[int] = None
    consumes_capacity: bool = True
    deposit_amount: Optional[Decimal] = Field(default=None, ge=0)


class BookingUpdate(BaseModel):
    """Update booking request"""
    booking_date: Optional[date] = None
    turn: Optional[Turn] = None
    time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    pax: Optional[int] = Field(default=None, ge=1, le=100)
    zone_id: Optional[int] = None
    assigned_table_id: Optional[int] = None
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=30)
    comments: Optional[str] = None
    status: Optional[BookingStatus] = None
    deposit_amount: Optional[Decimal] = Field(default=None, ge=0)
    consumes_capacity: Optional[bool] = None


class ZoneNames(BaseModel):
    name_es: Optional[str]
    name_en: Optional[str]

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    """Booking response"""
    id: UUID
    tenant_id: UUID
    booking_date: date
    turn: str
    time: str
    pax: int
    zone_id: Optional[int]
    assigned_table_id: Optional[int]
    customer_name: str
    customer_email: Optional[str]
    customer_phone: Optional[str]
    comments: Optional[str]
    status: str
    deposit_amount: Decimal
    payment_id: Optional[str]
    consumes_capacity: Optional[bool]
    is_manual: Optional[bool]
    created_at: datetime
    updated_at: datetime
    zone: Optional[ZoneNames] = None

    class Config:
        from_attributes = True


class BookingResult(BaseModel):
    """Outcome of a booking write"""
    success: bool = True
    booking_id: UUID
    token: UUID
    status: BookingStatus
    assigned_table_id: Optional[int] = None
    deposit_amount: Decimal = Decimal("0")
    message: Optional[str] = None
    checkout_url: Optional[str] = None


class CancelRequest(BaseModel):
    """Self-service cancellation by public token"""
    token: UUID


class OperationResult(BaseModel):
    success: bool = True


class BlockCreate(BaseModel):
    """Take a zone or a single table offline for one service"""
    booking_date: date
    turn: Turn
    zone_id: int
    reason: str
    table_id: Optional[int] = None


class ClosedDateCreate(BaseModel):
    date: date
    reason: Optional[str] = None


class ClosedDateResponse(BaseModel):
    date: date
    reason: Optional[str]

    class Config:
        from_attributes = True


class PaymentEvent(BaseModel):
    """Inbound payment provider notification"""
    booking_id: UUID
    status: Literal["succeeded", "failed", "expired"]
    payment_id: Optional[str] = None


class BookingListResponse(BaseModel):
    items: List[BookingResponse]
    total: int
