import enum


class EntryCategory(str, enum.Enum):
    MANPOWER = "manpower"
    MATERIAL = "material"
    EQUIPMENT = "equipment"
    SUBCONTRACTOR = "subcontractor"


class MemoryCategory(str, enum.Enum):
    MANPOWER = "manpower"
    MATERIAL = "material"
    EQUIPMENT = "equipment"
    SUBCONTRACTOR = "subcontractor"
    RISK = "risk"


class RiskLevel(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RiskStatus(str, enum.Enum):
    OPEN = "Open"
    MITIGATED = "Mitigated"
    CLOSED = "Closed"


class DurationMode(str, enum.Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class ExportEntryType(str, enum.Enum):
    ACTIVITY = "ACTIVITY"
    MANPOWER = "MANPOWER"
    MATERIAL = "MATERIAL"
    EQUIPMENT = "EQUIPMENT"
    SUBCONTRACTOR = "SUBCONTRACTOR"
    RISK = "RISK"


# Prefix used when generating the next line-item code in an activity
ENTRY_CODE_PREFIXES: dict[str, str] = {
    MemoryCategory.MANPOWER.value: "MAN",
    MemoryCategory.MATERIAL.value: "MAT",
    MemoryCategory.EQUIPMENT.value: "EQ",
    MemoryCategory.SUBCONTRACTOR.value: "SUB",
    MemoryCategory.RISK.value: "RISK",
}
