"""
Seed script for SiteLog.

Creates a demo site supervisor with a week of daily reports, a small master
data catalog and the matching resource memory, then prints a bearer token
for the demo user.

Usage:
    python -m sitelog.scripts.seed
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select

from sitelog.common.enums import MemoryCategory, RiskLevel, RiskStatus
from sitelog.common.security import create_access_token
from sitelog.core.master_data.service import MasterDataService, MasterItemInput
from sitelog.core.reports.identifiers import reindex_activities
from sitelog.core.reports.schemas import (
    ActivityEntry,
    EquipmentEntry,
    ManpowerEntry,
    MaterialEntry,
    RiskEntry,
)
from sitelog.core.reports.service import ReportService
from sitelog.db.models import User
from sitelog.db.session import async_session_factory

DEMO_USER_ID = "demo-supervisor"
START = date(2026, 3, 2)


def _activities(day: date, index: int) -> list[ActivityEntry]:
    excavation = ActivityEntry(
        description="Trench excavation for storm drain",
        responsible_person="Dana Ruiz",
        work_category="Civil",
        work_area="Zone A",
        station_grid="STA 1+00 to 3+00",
        planned_start=START.isoformat(),
        planned_finish=(START + timedelta(days=9)).isoformat(),
        actual_start=START.isoformat(),
        planned_quantity=200,
        actual_quantity=18 * (index + 1),
        quantity_unit="m",
        is_milestone=index == 0,
        manpower=[
            ManpowerEntry(code="MAN-01", name="Operator", trade="Heavy Equipment", quantity=8, unit="Hrs", cost=65),
            ManpowerEntry(code="MAN-02", name="Laborer", trade="General", quantity=3, unit="Day", cost=280),
        ],
        equipment=[EquipmentEntry(code="EQ-01", name="Excavator 20t", quantity=1, unit="Day", cost=950)],
        material=[MaterialEntry(code="MAT-01", name="Bedding sand", quantity=12, unit="m3", cost=38)],
    )
    formwork = ActivityEntry(
        description="Formwork for headwall",
        responsible_person="Lee Park",
        work_category="Structures",
        work_area="Zone B",
        planned_start=(START + timedelta(days=3)).isoformat(),
        planned_finish=(START + timedelta(days=7)).isoformat(),
        actual_start=(START + timedelta(days=4)).isoformat() if day >= START + timedelta(days=4) else "",
        planned_quantity=40,
        actual_quantity=max(0, index - 3) * 8,
        quantity_unit="m2",
        risks=[
            RiskEntry(
                code="RISK-01",
                description="Rain forecast may delay concrete pour",
                likelihood=RiskLevel.MEDIUM,
                impact=RiskLevel.HIGH,
                status=RiskStatus.OPEN if index < 5 else RiskStatus.MITIGATED,
                mitigation="Order curing blankets and tarps",
            )
        ],
    )
    return reindex_activities([excavation, formwork])


async def main() -> None:
    async with async_session_factory() as session:
        if await session.get(User, DEMO_USER_ID) is not None:
            print("Database already seeded -- skipping.")
            return

        session.add(User(id=DEMO_USER_ID, email="supervisor@example.com", username="Demo Supervisor"))
        await session.flush()

        reports = ReportService()
        for index in range(7):
            day = START + timedelta(days=index)
            activities = _activities(day, index)
            await reports.save_report(
                DEMO_USER_ID, day, {"activities": [a.model_dump() for a in activities]}, session
            )

        master = MasterDataService()
        catalog = [
            (MemoryCategory.MANPOWER, MasterItemInput(code="MAN-01", name="Operator", trade="Heavy Equipment", unit="Hrs", cost=Decimal("65"))),
            (MemoryCategory.MANPOWER, MasterItemInput(code="MAN-02", name="Laborer", trade="General", unit="Day", cost=Decimal("280"))),
            (MemoryCategory.EQUIPMENT, MasterItemInput(code="EQ-01", name="Excavator 20t", unit="Day", cost=Decimal("950"))),
            (MemoryCategory.MATERIAL, MasterItemInput(code="MAT-01", name="Bedding sand", unit="m3", cost=Decimal("38"))),
        ]
        for category, item in catalog:
            await master.save_item(DEMO_USER_ID, category, item.code, item, session)
        synced = await master.sync_all_to_memory(DEMO_USER_ID, session)

        await session.commit()

        result = await session.execute(select(User).where(User.id == DEMO_USER_ID))
        user = result.scalar_one()
        token = create_access_token(
            {"sub": user.id, "email": user.email, "email_verified": True, "name": user.username}
        )
        print(f"Seeded: 1 user, 7 reports, {len(catalog)} master items, {synced} memory entries")
        print(f"Bearer token: {token}")


if __name__ == "__main__":
    asyncio.run(main())
