"""Name-keyed manpower templates.

A crew member typed once by name (``"john  smith"``) is remembered under a
normalized key and offered again with trade, unit, hours and rate.
"""

import re

from pydantic import BaseModel

from sitelog.core.reports.schemas import ManpowerEntry

_WHITESPACE = re.compile(r"\s+")

HOUR_UNITS = {"hr", "hrs", "hour", "hours", "h"}
DAY_UNITS = {"day", "days", "d"}


def normalize_key(name: str | None) -> str:
    return _WHITESPACE.sub(" ", (name or "").strip()).lower()


def to_title_case(text: str | None) -> str:
    words = _WHITESPACE.sub(" ", (text or "").strip()).split(" ")
    return " ".join(w[:1].upper() + w[1:].lower() for w in words if w)


def normalize_unit(unit: str | None) -> str:
    value = (unit or "").strip()
    low = value.lower()
    if low in HOUR_UNITS:
        return "Hrs"
    if low in DAY_UNITS:
        return "Day"
    return value


class TemplateData(BaseModel):
    name_key: str
    name: str
    trade: str = ""
    unit: str = ""
    regular_hours: float = 0
    overtime: float = 0
    cost: float | None = None


def template_from_row(row: ManpowerEntry) -> TemplateData | None:
    """Build the template a manpower row would save, or None for a blank name."""
    key = normalize_key(row.name)
    if not key:
        return None
    return TemplateData(
        name_key=key,
        name=to_title_case(row.name),
        trade=to_title_case(row.trade),
        unit=normalize_unit(row.unit),
        regular_hours=row.quantity or 0,
        overtime=row.overtime or 0,
        cost=row.cost,
    )


def apply_template(row: ManpowerEntry, template: TemplateData) -> ManpowerEntry:
    """Fill empty or zero fields of ``row``; anything the user typed is kept."""
    update: dict = {}
    if not row.trade.strip() and template.trade:
        update["trade"] = template.trade
    if not row.unit.strip() and template.unit:
        update["unit"] = template.unit
    if not row.quantity:
        update["quantity"] = template.regular_hours
    if not row.overtime:
        update["overtime"] = template.overtime
    if not row.cost and template.cost is not None:
        update["cost"] = template.cost
    return row.model_copy(update=update) if update else row
