"""Per-user resource memory: remembered attributes for repeated line items.

The memory holds one map per category. Rows saved from a report are keyed
by their upper-cased code; entries pushed from master data are keyed by the
normalized item name and carry the item code. Applying the memory to a row
only ever fills fields the row leaves empty.
"""

from dataclasses import dataclass, field
from typing import Any

from sitelog.common.enums import MemoryCategory, RiskLevel, RiskStatus
from sitelog.core.memory.manpower import normalize_key
from sitelog.core.reports.schemas import ActivityEntry, BaseEntry, RiskEntry

# Attributes remembered per category, in the order they are stored
MEMORY_FIELDS: dict[str, tuple[str, ...]] = {
    MemoryCategory.MANPOWER.value: ("name", "trade", "unit", "cost", "quantity", "overtime", "comments"),
    MemoryCategory.MATERIAL.value: ("name", "unit", "cost", "quantity", "comments"),
    MemoryCategory.EQUIPMENT.value: ("name", "unit", "cost", "quantity", "comments"),
    MemoryCategory.SUBCONTRACTOR.value: ("name", "company", "unit", "cost", "quantity", "comments"),
    MemoryCategory.RISK.value: ("description", "likelihood", "impact", "status", "mitigation"),
}

# Risk rows are created with these values, so they count as not yet chosen
_RISK_DEFAULTS = {
    "likelihood": RiskLevel.LOW,
    "impact": RiskLevel.LOW,
    "status": RiskStatus.OPEN,
}


def _is_empty(name: str, value: Any) -> bool:
    if value is None:
        return True
    if name in _RISK_DEFAULTS:
        return value == _RISK_DEFAULTS[name]
    if isinstance(value, str):
        return not value.strip()
    if name in ("quantity", "overtime"):
        return value == 0
    return False


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, (RiskLevel, RiskStatus)) else value


@dataclass
class ResourceMemory:
    user_id: str
    maps: dict[str, dict[str, dict]] = field(
        default_factory=lambda: {c.value: {} for c in MemoryCategory}
    )

    @classmethod
    def from_maps(cls, user_id: str, maps: dict[str, dict] | None) -> "ResourceMemory":
        memory = cls(user_id=user_id)
        for category in MemoryCategory:
            memory.maps[category.value] = dict((maps or {}).get(category.value) or {})
        return memory

    def lookup(self, category: MemoryCategory | str, code: str) -> dict | None:
        if not code or not code.strip():
            return None
        return self.maps[MemoryCategory(category).value].get(code.strip().upper())

    def lookup_by_name(self, category: MemoryCategory | str, name: str) -> dict | None:
        key = normalize_key(name)
        if not key:
            return None
        return self.maps[MemoryCategory(category).value].get(key)

    def remember(self, category: MemoryCategory | str, row: BaseEntry | RiskEntry) -> bool:
        """Overwrite the entry for ``row.code``; rows without a code are skipped."""
        code = (row.code or "").strip().upper()
        if not code:
            return False
        key = MemoryCategory(category).value
        self.maps[key][code] = {f: _plain(getattr(row, f, None)) for f in MEMORY_FIELDS[key]}
        return True

    def remember_report(self, activities: list[ActivityEntry]) -> int:
        count = 0
        for activity in activities:
            for category in MemoryCategory:
                for row in activity.entries(category):
                    if self.remember(category, row):
                        count += 1
        return count

    def remember_named(self, category: MemoryCategory | str, name_key: str, template: dict) -> None:
        self.maps[MemoryCategory(category).value][name_key] = template

    def find(self, category: MemoryCategory | str, row: BaseEntry | RiskEntry) -> dict | None:
        """The entry remembered for ``row``: by code first, then a master item by name."""
        key = MemoryCategory(category).value
        code = (row.code or "").strip().upper()
        if code:
            remembered = self.lookup(key, code)
            if remembered is not None:
                return remembered
            for entry in self.maps[key].values():
                if str(entry.get("code") or "").strip().upper() == code:
                    return entry
        return self.lookup_by_name(key, getattr(row, "name", None) or "")

    def apply(
        self, category: MemoryCategory | str, row: BaseEntry | RiskEntry
    ) -> tuple[BaseEntry | RiskEntry, bool]:
        """Fill the empty fields of ``row`` from the entry remembered for it.

        Rows match their own code, the code of a pushed master item, or the
        master item's name. Returns the row with its code upper-cased, and
        whether an entry was found.
        """
        key = MemoryCategory(category).value
        remembered = self.find(key, row)
        if remembered is None:
            return row, False

        code = (row.code or "").strip().upper() or str(remembered.get("code") or "").strip().upper()
        update: dict[str, Any] = {"code": code}
        for name in MEMORY_FIELDS[key]:
            if name not in type(row).model_fields:
                continue
            value = remembered.get(name)
            if value is None or value == "":
                continue
            if _is_empty(name, getattr(row, name)):
                update[name] = value
        return type(row).model_validate({**row.model_dump(), **update}), True

    def to_maps(self) -> dict[str, dict]:
        return {category: dict(entries) for category, entries in self.maps.items()}
