"""Pydantic models for daily reports and the documents they own.

A report owns an ordered list of activities; each activity owns its four
resource lists and its risk register. Resource rows share ``BaseEntry`` and
are tagged by ``kind`` so a single row can travel on its own (smart-memory
lookups) and still be validated as the right variant.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from sitelog.common.enums import EntryCategory, MemoryCategory, RiskLevel, RiskStatus
from sitelog.db.base import generate_id


def _blank_to_zero(v):
    return 0 if v is None or v == "" else v


def _blank_to_none(v):
    return None if v == "" else v


Amount = Annotated[float, BeforeValidator(_blank_to_zero)]
OptionalAmount = Annotated[float | None, BeforeValidator(_blank_to_none)]


# ---------------------------------------------------------------------------
# Resource line items
# ---------------------------------------------------------------------------

class BaseEntry(BaseModel):
    id: str = Field(default_factory=generate_id)
    code: str = ""
    name: str = ""
    quantity: Amount = 0
    unit: str = ""
    cost: OptionalAmount = None
    comments: str = ""


class ManpowerEntry(BaseEntry):
    kind: Literal["manpower"] = "manpower"
    trade: str = ""
    overtime: Amount = 0


class MaterialEntry(BaseEntry):
    kind: Literal["material"] = "material"


class EquipmentEntry(BaseEntry):
    kind: Literal["equipment"] = "equipment"


class SubcontractorEntry(BaseEntry):
    kind: Literal["subcontractor"] = "subcontractor"
    company: str = ""


ResourceEntry = Annotated[
    Union[ManpowerEntry, MaterialEntry, EquipmentEntry, SubcontractorEntry],
    Field(discriminator="kind"),
]

ENTRY_MODELS: dict[str, type[BaseEntry]] = {
    EntryCategory.MANPOWER.value: ManpowerEntry,
    EntryCategory.MATERIAL.value: MaterialEntry,
    EntryCategory.EQUIPMENT.value: EquipmentEntry,
    EntryCategory.SUBCONTRACTOR.value: SubcontractorEntry,
}


class RiskEntry(BaseModel):
    id: str = Field(default_factory=generate_id)
    code: str = ""
    description: str = ""
    likelihood: RiskLevel = RiskLevel.LOW
    impact: RiskLevel = RiskLevel.LOW
    status: RiskStatus = RiskStatus.OPEN
    mitigation: str = ""


# ---------------------------------------------------------------------------
# Activities and reports
# ---------------------------------------------------------------------------

class ActivityEntry(BaseModel):
    id: str = Field(default_factory=generate_id)
    activity_id: str = ""
    order: int = 0
    description: str = ""
    responsible_person: str = ""
    work_category: str = ""
    detailed_description: str = ""
    # Older documents carry a manual completion percentage instead of quantities
    planned_completion: OptionalAmount = None
    planned_quantity: Amount = 0
    actual_quantity: Amount = 0
    quantity_unit: str = ""
    reference_code: str = ""
    work_area: str = ""
    station_grid: str = ""
    planned_start: str = ""
    planned_finish: str = ""
    actual_start: str = ""
    actual_finish: str = ""
    is_milestone: bool = False

    manpower: list[ManpowerEntry] = Field(default_factory=list)
    material: list[MaterialEntry] = Field(default_factory=list)
    equipment: list[EquipmentEntry] = Field(default_factory=list)
    subcontractor: list[SubcontractorEntry] = Field(default_factory=list)
    risks: list[RiskEntry] = Field(default_factory=list)

    @field_validator(
        "planned_start", "planned_finish", "actual_start", "actual_finish", mode="before"
    )
    @classmethod
    def _dates_as_text(cls, v):
        if v is None:
            return ""
        if isinstance(v, date):
            return v.isoformat()
        return v

    def entries(self, category: MemoryCategory | str) -> list:
        """Return the line-item list that holds ``category`` rows."""
        key = MemoryCategory(category).value
        return self.risks if key == MemoryCategory.RISK.value else getattr(self, key)


class ReportDocument(BaseModel):
    id: str = Field(default_factory=generate_id)
    user_id: str
    date: date
    created_at: datetime | None = None
    updated_at: datetime | None = None
    activities: list[ActivityEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------

class CategoryCosts(BaseModel):
    manpower: Decimal
    material: Decimal
    equipment: Decimal
    subcontractor: Decimal


class CostModel(BaseModel):
    planned_days: int
    daily: CategoryCosts
    daily_total: Decimal
    total: CategoryCosts
    most_likely: Decimal
    optimistic: Decimal
    pessimistic: Decimal
    std_dev: Decimal
    expected: Decimal


class ActivityMetrics(BaseModel):
    as_of: date | None
    planned_duration: int | None
    actual_duration: int | None
    actual_duration_to_date: int | None
    duration_variance: int | None
    start_delay: int | None
    finish_delay: int | None

    planned_quantity: float
    actual_quantity: float
    quantity_unit: str
    planned_percent: float | None
    actual_percent: float | None
    planned_quantity_expected: float | None
    shortfall: float | None
    planned_rate: float | None
    actual_rate: float | None
    schedule_variance_qty: float | None
    performance_percent: float | None

    planned_value: Decimal | None
    earned_value: Decimal | None
    actual_cost: Decimal
    cpi: float | None
    spi: float | None

    cost: CostModel
