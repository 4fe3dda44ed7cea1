"""Booking ledger model"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, ForeignKey, Numeric, Text, Index, CheckConstraint, text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from tablebook.database import Base


class Turn(str, enum.Enum):
    """Service periods, each with its own time-slot grid"""
    LUNCH = "lunch"
    DINNER = "dinner"


class BookingStatus(str, enum.Enum):
    PENDING_APPROVAL = "pending_approval"
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    WAITING_LIST = "waiting_list"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"


# Statuses that never hold a table, whatever consumes_capacity says
NON_OCCUPYING_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.WAITING_LIST.value)

TERMINAL_STATUSES = (BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value)

_OCCUPANCY_PREDICATE = (
    "assigned_table_id IS NOT NULL "
    "AND status NOT IN ('cancelled', 'waiting_list') "
    "AND consumes_capacity IS NOT {false}"
)


class Booking(Base):
    """Reservations, waitlist entries and administrative blocks"""
    __tablename__ = "bookings"
    __table_args__ = (
        # One occupying booking per table and service
        Index(
            "uq_bookings_table_occupancy",
            "tenant_id", "booking_date", "turn", "assigned_table_id",
            unique=True,
            postgresql_where=text(_OCCUPANCY_PREDICATE.format(false="false")),
            sqlite_where=text(_OCCUPANCY_PREDICATE.format(false="0")),
        ),
        Index("ix_bookings_service", "tenant_id", "booking_date", "turn"),
        CheckConstraint("pax >= 1", name="ck_bookings_pax"),
        CheckConstraint("deposit_amount >= 0", name="ck_bookings_deposit"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    token = Column(UUID(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4)  # Public cancellation token
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)

    # Service
    booking_date = Column(Date, nullable=False)
    turn = Column(String(10), nullable=False)  # lunch, dinner
    time = Column(String(5), nullable=False)  # HH:MM
    pax = Column(Integer, nullable=False)

    # Placement
    zone_id = Column(Integer, ForeignKey("zones.id", ondelete="SET NULL"))
    assigned_table_id = Column(Integer)  # No FK: deleted tables leave tolerated orphans

    # Customer information
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255))
    customer_phone = Column(String(30))
    comments = Column(Text)

    # Status
    status = Column(String(30), nullable=False, default=BookingStatus.CONFIRMED.value)

    # Payment
    deposit_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_id = Column(String(255))
    payment_requested_at = Column(DateTime)  # Start of the payment timeout

    # Flags
    consumes_capacity = Column(Boolean, default=True)  # NULL is treated as true
    is_manual = Column(Boolean, default=False)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="bookings")
    zone = relationship("Zone")

    @property
    def occupies_table(self) -> bool:
        """Whether this row counts against its assigned table"""
        return occupies_table(self.assigned_table_id, self.status, self.consumes_capacity)


def occupies_table(assigned_table_id, status, consumes_capacity) -> bool:
    return (
        assigned_table_id is not None
        and status not in NON_OCCUPYING_STATUSES
        and consumes_capacity is not False
    )
