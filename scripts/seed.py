"""
Seed script: one user per workflow role, a few suppliers, and a small
spare-part catalogue with one assembly for the BOM roll-up.
Run from the project root: python -m scripts.seed
"""
import asyncio
import sys
import os
import uuid
from decimal import Decimal

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from partpulse.database import AsyncSessionLocal
from partpulse.models.user import User
from partpulse.models.quote import Supplier
from partpulse.models.catalog import Assembly, AssemblyComponent, SparePart, SubAssembly
from partpulse.services.auth_service import hash_password

# ---------- Fixed UUIDs ----------

USER_TECHNICIAN_ID = uuid.UUID("a0000000-0000-0000-0000-000000000101")
USER_COORDINATOR_ID = uuid.UUID("a0000000-0000-0000-0000-000000000102")
USER_BUILDING_TECH_ID = uuid.UUID("a0000000-0000-0000-0000-000000000103")
USER_MAINTENANCE_ORG_ID = uuid.UUID("a0000000-0000-0000-0000-000000000104")
USER_TECH_DIRECTOR_ID = uuid.UUID("a0000000-0000-0000-0000-000000000105")
USER_GOD_ADMIN_ID = uuid.UUID("a0000000-0000-0000-0000-000000000106")

SUPPLIER_NORDIC_ID = uuid.UUID("e0000000-0000-0000-0000-000000000001")
SUPPLIER_BALTIC_ID = uuid.UUID("e0000000-0000-0000-0000-000000000002")

ASSEMBLY_CUTTER_ID = uuid.UUID("c0000000-0000-0000-0000-000000000001")
SUB_GEARBOX_ID = uuid.UUID("c0000000-0000-0000-0000-000000000101")

DEFAULT_PASSWORD = "PartPulse123!"


async def seed():
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(User).where(User.id == USER_GOD_ADMIN_ID))
        if result.scalar_one_or_none():
            print("Seed data already exists. Skipping.")
            return

        hashed_pw = hash_password(DEFAULT_PASSWORD)

        # --- Users ---
        users = [
            User(id=USER_TECHNICIAN_ID, email="technician@partpulse.io", password_hash=hashed_pw,
                 full_name="Tomas Berg", role="technician", building_id="B1"),
            User(id=USER_COORDINATOR_ID, email="coordinator@partpulse.io", password_hash=hashed_pw,
                 full_name="Lina Holm", role="coordinator"),
            User(id=USER_BUILDING_TECH_ID, email="building1.tech@partpulse.io", password_hash=hashed_pw,
                 full_name="Erik Lund", role="building_tech", building_id="B1"),
            User(id=USER_MAINTENANCE_ORG_ID, email="maintenance@partpulse.io", password_hash=hashed_pw,
                 full_name="Sara Nyberg", role="maintenance_org"),
            User(id=USER_TECH_DIRECTOR_ID, email="director@partpulse.io", password_hash=hashed_pw,
                 full_name="Jonas Ek", role="tech_director"),
            User(id=USER_GOD_ADMIN_ID, email="admin@partpulse.io", password_hash=hashed_pw,
                 full_name="System Admin", role="god_admin"),
        ]
        db.add_all(users)
        await db.flush()

        # --- Suppliers ---
        db.add_all([
            Supplier(id=SUPPLIER_NORDIC_ID, name="Nordic Bearings AB",
                     email="sales@nordicbearings.se", contact_name="Anna Lind"),
            Supplier(id=SUPPLIER_BALTIC_ID, name="Baltic Drives OU",
                     email="orders@balticdrives.ee", contact_name="Mart Tamm"),
        ])
        await db.flush()

        # --- Catalogue ---
        parts = {
            "BRG-6204": SparePart(part_number="BRG-6204", name="Ball bearing 6204-2RS",
                                  unit_cost=Decimal("4.80"), stock_level=12),
            "SEAL-40": SparePart(part_number="SEAL-40", name="Shaft seal 40x62x7",
                                 unit_cost=Decimal("2.15"), stock_level=3),
            "BLT-M8": SparePart(part_number="BLT-M8", name="Hex bolt M8x30",
                                unit_cost=Decimal("0.12"), stock_level=200),
        }
        db.add_all(parts.values())
        await db.flush()

        db.add(Assembly(id=ASSEMBLY_CUTTER_ID, name="Rotary cutter", machine_code="RC-200"))
        await db.flush()
        db.add(SubAssembly(id=SUB_GEARBOX_ID, assembly_id=ASSEMBLY_CUTTER_ID,
                           name="Gearbox", quantity=2))
        await db.flush()
        db.add_all([
            AssemblyComponent(assembly_id=ASSEMBLY_CUTTER_ID, part_id=parts["BLT-M8"].id,
                              quantity=16),
            AssemblyComponent(assembly_id=ASSEMBLY_CUTTER_ID, sub_assembly_id=SUB_GEARBOX_ID,
                              part_id=parts["BRG-6204"].id, quantity=2),
            AssemblyComponent(assembly_id=ASSEMBLY_CUTTER_ID, sub_assembly_id=SUB_GEARBOX_ID,
                              part_id=parts["SEAL-40"].id, quantity=2),
        ])

        await db.commit()
        print("Seed data inserted successfully!")
        print(f"  Users: {len(users)} (password: {DEFAULT_PASSWORD})")
        print("  Suppliers: 2")
        print(f"  Spare parts: {len(parts)}, assemblies: 1")


if __name__ == "__main__":
    asyncio.run(seed())
