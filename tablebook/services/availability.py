"""
Availability engine

Answers "which zones can still seat this party" for one tenant, date, turn and
party size. Closed days yield nothing; zones with an admin block are always
left out; flexible-capacity tenants get every other zone with an unbounded
count; otherwise free suitable tables are counted per zone.

The strict count runs through a list of strategies. The aggregate strategy
asks the database for grouped counts in one statement; the row-scan strategy
reads plain rows and counts in Python. Each strategy reports whether it is
currently usable, and the engine takes the first usable one, falling through
to the next when it fails.
"""

import time
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Callable, FrozenSet, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.config import settings
from tablebook.errors import InvalidRequestError
from tablebook.models.booking import Booking, Turn, occupies_table
from tablebook.models.inventory import Zone, DiningTable
from tablebook.schemas.availability import ZoneAvailability
from tablebook.services.closures import is_date_closed
from tablebook.services.ledger import blocked_zone_ids, occupied_tables_subquery
from tablebook.services.policy import load_policy

logger = structlog.get_logger()

# Reported for every open zone when capacity limits are off
UNBOUNDED_SLOTS = 999


@dataclass(frozen=True)
class AvailabilityQuery:
    tenant_id: UUID
    day: date
    turn: str
    party_size: int
    blocked_zone_ids: FrozenSet[int] = frozenset()


def _zone_entry(zone_id: int, name: str, name_es: Optional[str], name_en: Optional[str], slots: int) -> ZoneAvailability:
    return ZoneAvailability(
        zone_id=zone_id,
        zone_name_es=name_es or name,
        zone_name_en=name_en or name_es or name,
        available_slots=slots,
    )


class AvailabilityStrategy:
    """One way of counting free suitable tables per zone"""

    name = "base"

    def is_available(self) -> bool:
        return True

    def record_failure(self) -> None:
        pass

    async def count_free_tables(self, db: AsyncSession, query: AvailabilityQuery) -> List[ZoneAvailability]:
        raise NotImplementedError


class AggregateAvailability(AvailabilityStrategy):
    """Grouped count in a single statement; trips off for a while after a backend failure"""

    name = "aggregate"

    def __init__(self, cooldown_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.cooldown_seconds = (
            settings.availability_primary_cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        )
        self._clock = clock
        self._failed_at: Optional[float] = None

    def is_available(self) -> bool:
        if self._failed_at is None:
            return True
        if self._clock() - self._failed_at >= self.cooldown_seconds:
            self._failed_at = None
            return True
        return False

    def record_failure(self) -> None:
        self._failed_at = self._clock()

    async def count_free_tables(self, db: AsyncSession, query: AvailabilityQuery) -> List[ZoneAvailability]:
        free_tables = func.count(DiningTable.id)
        stmt = (
            select(Zone.id, Zone.name, Zone.name_es, Zone.name_en, free_tables)
            .join(DiningTable, DiningTable.zone_id == Zone.id)
            .where(
                Zone.tenant_id == query.tenant_id,
                DiningTable.min_pax <= query.party_size,
                DiningTable.max_pax >= query.party_size,
                DiningTable.id.notin_(occupied_tables_subquery(query.tenant_id, query.day, query.turn)),
            )
            .group_by(Zone.id, Zone.name, Zone.name_es, Zone.name_en)
            .having(free_tables > 0)
            .order_by(Zone.id)
        )
        if query.blocked_zone_ids:
            stmt = stmt.where(Zone.id.notin_(sorted(query.blocked_zone_ids)))

        # Savepoint so a failed statement leaves the outer transaction usable
        async with db.begin_nested():
            result = await db.execute(stmt)
            rows = result.all()

        return [
            _zone_entry(zone_id, name, name_es, name_en, slots)
            for zone_id, name, name_es, name_en, slots in rows
        ]


class RowScanAvailability(AvailabilityStrategy):
    """Plain row reads, counted in Python"""

    name = "row_scan"

    async def count_free_tables(self, db: AsyncSession, query: AvailabilityQuery) -> List[ZoneAvailability]:
        zones = (
            await db.execute(select(Zone).where(Zone.tenant_id == query.tenant_id).order_by(Zone.id))
        ).scalars().all()
        tables = (
            await db.execute(select(DiningTable).where(DiningTable.tenant_id == query.tenant_id))
        ).scalars().all()
        bookings = (
            await db.execute(
                select(Booking.assigned_table_id, Booking.status, Booking.consumes_capacity).where(
                    Booking.tenant_id == query.tenant_id,
                    Booking.booking_date == query.day,
                    Booking.turn == query.turn,
                )
            )
        ).all()

        occupied = {
            table_id
            for table_id, status, consumes_capacity in bookings
            if occupies_table(table_id, status, consumes_capacity)
        }
        free = Counter(
            table.zone_id
            for table in tables
            if table.suits(query.party_size) and table.id not in occupied
        )

        return [
            _zone_entry(zone.id, zone.name, zone.name_es, zone.name_en, free[zone.id])
            for zone in zones
            if zone.id not in query.blocked_zone_ids and free[zone.id] > 0
        ]


class AvailabilityEngine:
    def __init__(self, strategies: Optional[Sequence[AvailabilityStrategy]] = None):
        self.strategies = list(strategies) if strategies is not None else [
            AggregateAvailability(),
            RowScanAvailability(),
        ]

    async def check(
        self,
        db: AsyncSession,
        tenant_id: UUID,
        day: date,
        turn: str,
        party_size: int,
    ) -> List[ZoneAvailability]:
        """Zones with free capacity, each carrying both locale names"""
        try:
            turn = Turn(turn).value
        except ValueError:
            raise InvalidRequestError("Unknown turn")
        if party_size < 1:
            raise InvalidRequestError("Party size must be at least 1")

        log = logger.bind(tenant_id=str(tenant_id), date=day.isoformat(), turn=turn, party_size=party_size)

        try:
            policy = await load_policy(db, tenant_id)
            if await is_date_closed(db, tenant_id, day, policy):
                log.info("Availability: date closed")
                return []

            blocked = frozenset(await blocked_zone_ids(db, tenant_id, day, turn))

            if policy.flexible_capacity:
                return await self._open_zones(db, tenant_id, blocked)
        except Exception as e:
            log.error("Availability pre-checks failed", error=str(e))
            return []

        query = AvailabilityQuery(
            tenant_id=tenant_id,
            day=day,
            turn=turn,
            party_size=party_size,
            blocked_zone_ids=blocked,
        )

        for strategy in self.strategies:
            if not strategy.is_available():
                log.info("Availability strategy skipped", strategy=strategy.name)
                continue
            try:
                return await strategy.count_free_tables(db, query)
            except Exception as e:
                strategy.record_failure()
                log.warning("Availability strategy failed", strategy=strategy.name, error=str(e))

        log.error("Availability could not be computed")
        return []

    async def _open_zones(self, db: AsyncSession, tenant_id: UUID, blocked: FrozenSet[int]) -> List[ZoneAvailability]:
        result = await db.execute(select(Zone).where(Zone.tenant_id == tenant_id).order_by(Zone.id))
        return [
            _zone_entry(zone.id, zone.name, zone.name_es, zone.name_en, UNBOUNDED_SLOTS)
            for zone in result.scalars().all()
            if zone.id not in blocked
        ]


availability_engine = AvailabilityEngine()


async def check_availability(
    db: AsyncSession,
    tenant_id: UUID,
    day: date,
    turn: str,
    party_size: int,
) -> List[ZoneAvailability]:
    return await availability_engine.check(db, tenant_id, day, turn, party_size)
