"""Zone and table inventory models"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, CheckConstraint, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from tablebook.database import Base


class Zone(Base):
    """Named dining area (terrace, bar, main room...)"""
    __tablename__ = "zones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)  # Legacy single-language name
    name_es = Column(String(255))
    name_en = Column(String(255))
    description = Column(Text)
    capacity = Column(Integer)  # Hint only, availability counts tables
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="zones")
    tables = relationship("DiningTable", back_populates="zone", cascade="all, delete-orphan")

    @property
    def display_name_es(self) -> str:
        return self.name_es or self.name

    @property
    def display_name_en(self) -> str:
        return self.name_en or self.name_es or self.name


class DiningTable(Base):
    """A table seating an inclusive party-size range"""
    __tablename__ = "dining_tables"
    __table_args__ = (
        CheckConstraint("min_pax >= 1", name="ck_dining_tables_min_pax"),
        CheckConstraint("min_pax <= max_pax", name="ck_dining_tables_pax_range"),
        UniqueConstraint("zone_id", "table_number", name="uq_dining_tables_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    zone_id = Column(Integer, ForeignKey("zones.id", ondelete="CASCADE"), nullable=False, index=True)
    table_number = Column(String(20), nullable=False)
    min_pax = Column(Integer, nullable=False, default=1)
    max_pax = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    zone = relationship("Zone", back_populates="tables")

    def suits(self, party_size: int) -> bool:
        """True when the party fits the table's seating range"""
        return self.min_pax <= party_size <= self.max_pax
