"""Tests for administrative blocks"""

from decimal import Decimal

import pytest

from tablebook.errors import ConflictError, InvalidRequestError
from tablebook.services.availability import check_availability
from tablebook.services.blocking import create_block

from tests.factories import SERVICE_DATE, add_booking


def zone_ids(result):
    return {entry.zone_id for entry in result}


@pytest.mark.asyncio
async def test_zone_block(test_db, test_tenant):
    block = await create_block(test_db, test_tenant.id, SERVICE_DATE, "lunch", test_tenant.bar_id, "Staff party")

    assert block.status == "blocked"
    assert block.customer_name == "BLOCK: Staff party"
    assert block.deposit_amount == Decimal("0")
    assert block.time == "13:00"
    assert block.pax == 1
    assert block.assigned_table_id is None

    lunch = await check_availability(test_db, test_tenant.id, SERVICE_DATE, "lunch", 2)
    assert zone_ids(lunch) == {test_tenant.terrace_id}


@pytest.mark.asyncio
async def test_block_is_limited_to_its_service(test_db, test_tenant):
    await create_block(test_db, test_tenant.id, SERVICE_DATE, "lunch", test_tenant.bar_id, "Staff party")

    dinner = await check_availability(test_db, test_tenant.id, SERVICE_DATE, "dinner", 2)
    assert test_tenant.bar_id in zone_ids(dinner)


@pytest.mark.asyncio
async def test_table_block(test_db, test_tenant):
    table_id = test_tenant.terrace_table_ids[1]

    block = await create_block(
        test_db, test_tenant.id, SERVICE_DATE, "dinner", test_tenant.terrace_id, "Broken chair", table_id=table_id
    )

    assert block.customer_name == "BLOCK TABLE T2: Broken chair"
    assert block.assigned_table_id == table_id
    assert block.pax == 4
    assert block.time == "20:00"


@pytest.mark.asyncio
async def test_reason_is_required(test_db, test_tenant):
    with pytest.raises(InvalidRequestError):
        await create_block(test_db, test_tenant.id, SERVICE_DATE, "dinner", test_tenant.bar_id, "   ")


@pytest.mark.asyncio
@pytest.mark.parametrize("table_id", [0, -3, 9999])
async def test_invalid_table_rejected(test_db, test_tenant, table_id):
    with pytest.raises(InvalidRequestError):
        await create_block(
            test_db, test_tenant.id, SERVICE_DATE, "dinner", test_tenant.terrace_id, "Repairs", table_id=table_id
        )


@pytest.mark.asyncio
async def test_table_from_another_zone_rejected(test_db, test_tenant):
    with pytest.raises(InvalidRequestError):
        await create_block(
            test_db,
            test_tenant.id,
            SERVICE_DATE,
            "dinner",
            test_tenant.terrace_id,
            "Repairs",
            table_id=test_tenant.bar_table_ids[0],
        )


@pytest.mark.asyncio
async def test_unknown_zone_rejected(test_db, test_tenant, other_tenant):
    with pytest.raises(InvalidRequestError):
        await create_block(test_db, test_tenant.id, SERVICE_DATE, "dinner", other_tenant.zone_id, "Repairs")


@pytest.mark.asyncio
async def test_blocking_an_occupied_table_conflicts(test_db, test_tenant):
    tenant_id = test_tenant.id
    table_id = test_tenant.terrace_table_ids[0]
    await add_booking(test_db, tenant_id, table_id=table_id)

    with pytest.raises(ConflictError) as exc_info:
        await create_block(test_db, tenant_id, SERVICE_DATE, "dinner", test_tenant.terrace_id, "Repairs", table_id=table_id)

    assert exc_info.value.code == "TABLE_TAKEN"
