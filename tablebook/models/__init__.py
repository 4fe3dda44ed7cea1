"""Database models"""

from tablebook.models.tenant import Tenant, TenantSetting, ClosedDate
from tablebook.models.inventory import Zone, DiningTable
from tablebook.models.booking import Booking, BookingStatus, Turn
from tablebook.models.user import User, UserRole

__all__ = [
    "Tenant",
    "TenantSetting",
    "ClosedDate",
    "Zone",
    "DiningTable",
    "Booking",
    "BookingStatus",
    "Turn",
    "User",
    "UserRole",
]
