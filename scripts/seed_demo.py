#!/usr/bin/env python3
"""
Seed script to create a demo restaurant with zones, tables and policy
"""

import asyncio
import uuid

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def seed_demo_data():
    """Seed demo data for development"""
    from tablebook.database import SessionLocal, engine, Base
    from tablebook.models.tenant import Tenant, TenantSetting
    from tablebook.models.inventory import Zone, DiningTable
    from tablebook.models.user import User, UserRole

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo tenant already exists
        from sqlalchemy import select
        result = await db.execute(
            select(Tenant).where(Tenant.name == "Casa Lucía")
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo tenant...")

        tenant = Tenant(
            id=uuid.uuid4(),
            name="Casa Lucía",
            timezone="Europe/Madrid",
        )
        db.add(tenant)
        await db.flush()

        print(f"Created tenant: {tenant.name} (ID: {tenant.id})")

        # Policy: deposit on, closed on Mondays, 24h cancellation notice
        policy = {
            "enable_deposit": "true",
            "flexible_capacity": "false",
            "require_manual_approval": "false",
            "min_notice_minutes": "1440",
            "closed_weekdays": "1",
            "deposit_per_person": "5",
        }
        for key, value in policy.items():
            db.add(TenantSetting(tenant_id=tenant.id, key=key, value=value))

        print("Creating zones and tables...")

        zones = [
            {"name": "Terraza", "name_es": "Terraza", "name_en": "Terrace", "tables": [(2, 2), (2, 4), (2, 4), (4, 6)]},
            {"name": "Barra", "name_es": "Barra", "name_en": "Bar", "tables": [(1, 2), (1, 2)]},
            {"name": "Interior", "name_es": "Interior", "name_en": "Indoor", "tables": [(2, 4), (2, 4), (4, 8), (6, 10)]},
        ]

        table_count = 0
        for zone_data in zones:
            zone = Zone(
                tenant_id=tenant.id,
                name=zone_data["name"],
                name_es=zone_data["name_es"],
                name_en=zone_data["name_en"],
            )
            db.add(zone)
            await db.flush()

            for number, (min_pax, max_pax) in enumerate(zone_data["tables"], start=1):
                db.add(DiningTable(
                    tenant_id=tenant.id,
                    zone_id=zone.id,
                    table_number=f"{zone_data['name'][0]}{number}",
                    min_pax=min_pax,
                    max_pax=max_pax,
                ))
                table_count += 1

        # Create super admin user
        admin_user = User(
            id=uuid.uuid4(),
            email="admin@tablebook.dev",
            hashed_password=pwd_context.hash("admin123"),
            full_name="System Admin",
            role=UserRole.SUPER_ADMIN,
            is_active=True,
        )
        db.add(admin_user)

        # Create restaurant admin user
        restaurant_admin = User(
            id=uuid.uuid4(),
            tenant_id=tenant.id,
            email="lucia@casalucia.es",
            hashed_password=pwd_context.hash("lucia123"),
            full_name="Lucía Martín",
            role=UserRole.RESTAURANT_ADMIN,
            is_active=True,
        )
        db.add(restaurant_admin)

        await db.commit()

        print(f"""
Demo data created successfully!

Tenant: Casa Lucía
  ID: {tenant.id}

Users:
  Super Admin:
    Email: admin@tablebook.dev
    Password: admin123

  Restaurant Admin:
    Email: lucia@casalucia.es
    Password: lucia123

Zones: {len(zones)} with {table_count} tables
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
