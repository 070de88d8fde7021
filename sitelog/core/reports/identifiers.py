"""Activity and line-item identifiers.

Two mechanisms assign activity ids and they do not agree with each other:

* ``reindex_activities`` keeps ids dense (``ACT-00001`` .. ``ACT-0000N``)
  inside one report and runs after every add, delete and reorder.
* ``shift_activity_ids`` frees a slot across a user's whole history when a
  typed id collides, by bumping every id at or above it.

A shifted id survives only until the next reindex of the same report.
"""

import re
from dataclasses import dataclass

from sitelog.common.enums import ENTRY_CODE_PREFIXES, MemoryCategory
from sitelog.core.reports.schemas import ENTRY_MODELS, ActivityEntry, BaseEntry, RiskEntry

ACTIVITY_PREFIX = "ACT-"
ACTIVITY_ID_DIGITS = 5
UNCATEGORIZED = "Uncategorized"

_DIGITS = re.compile(r"\d+")
_LEADING_TEXT = re.compile(r"^[^\d]+")
_PREFIX_AND_NUMBER = re.compile(r"(.*?)(\d+)")


def format_activity_id(n: int, prefix: str = ACTIVITY_PREFIX) -> str:
    if n < 1:
        raise ValueError(f"Activity number must be positive, got {n}")
    return f"{prefix}{n:0{ACTIVITY_ID_DIGITS}d}"


def activity_number(activity_id: str) -> int:
    """Numeric part of an id (first run of digits), 0 when there is none."""
    match = _DIGITS.search(activity_id or "")
    return int(match.group(0)) if match else 0


def activity_prefix(activity_id: str, default: str = ACTIVITY_PREFIX) -> str:
    match = _LEADING_TEXT.match(activity_id or "")
    return match.group(0) if match else default


def reindex_activities(activities: list[ActivityEntry]) -> list[ActivityEntry]:
    return [
        a.model_copy(update={"order": idx + 1, "activity_id": format_activity_id(idx + 1)})
        for idx, a in enumerate(activities)
    ]


def new_activity(planned_date: str, existing: list[ActivityEntry]) -> ActivityEntry:
    next_num = max((a.order or 0 for a in existing), default=0) + 1
    return ActivityEntry(
        activity_id=format_activity_id(next_num),
        order=next_num,
        quantity_unit="m",
        planned_start=planned_date,
        planned_finish=planned_date,
    )


def add_activity(activities: list[ActivityEntry], activity: ActivityEntry) -> list[ActivityEntry]:
    return reindex_activities([*activities, activity])


def remove_activity(activities: list[ActivityEntry], entry_id: str) -> tuple[list[ActivityEntry], bool]:
    remaining = [a for a in activities if a.id != entry_id]
    return reindex_activities(remaining), len(remaining) != len(activities)


def visual_order(activities: list[ActivityEntry]) -> list[str]:
    """Entry ids in on-screen order: grouped by work category, groups sorted by name."""
    grouped: dict[str, list[str]] = {}
    for a in activities:
        grouped.setdefault(a.work_category or UNCATEGORIZED, []).append(a.id)
    return [entry_id for cat in sorted(grouped) for entry_id in grouped[cat]]


def move_activity(
    activities: list[ActivityEntry], entry_id: str, target_id: str
) -> list[ActivityEntry]:
    """Drag ``entry_id`` onto ``target_id``'s slot in visual order, then reindex."""
    ids = visual_order(activities)
    if entry_id == target_id or entry_id not in ids or target_id not in ids:
        return activities

    old_index, new_index = ids.index(entry_id), ids.index(target_id)
    ids.insert(new_index, ids.pop(old_index))

    by_id = {a.id: a for a in activities}
    return reindex_activities([by_id[i] for i in ids])


# ---------------------------------------------------------------------------
# Collision handling
# ---------------------------------------------------------------------------

def shift_activity_ids(
    activities: list[ActivityEntry], conflict_id: str, skip_entry_id: str | None = None
) -> tuple[list[ActivityEntry], bool]:
    """Bump every id sharing ``conflict_id``'s prefix whose number is >= its number.

    Returns the new list and whether anything changed. An id without digits,
    or whose number is 0, shifts nothing.
    """
    match = _PREFIX_AND_NUMBER.match(conflict_id or "")
    if not match:
        return activities, False
    prefix = match.group(1) or ACTIVITY_PREFIX
    conflict_num = int(match.group(2))
    if conflict_num == 0:
        return activities, False

    changed = False
    shifted: list[ActivityEntry] = []
    for a in activities:
        current = a.activity_id or ""
        if current and a.id != skip_entry_id:
            num = activity_number(current)
            own_prefix = activity_prefix(current, prefix)
            if own_prefix.upper() == prefix.upper() and num >= conflict_num:
                a = a.model_copy(update={"activity_id": format_activity_id(num + 1, own_prefix)})
                changed = True
        shifted.append(a)
    return shifted, changed


@dataclass
class ActivityIdCommit:
    activities: list[ActivityEntry]
    activity_id: str
    conflict: bool = False
    shifted: bool = False


def has_local_conflict(activities: list[ActivityEntry], entry_id: str, activity_id: str) -> bool:
    return any(a.activity_id == activity_id and a.id != entry_id for a in activities)


def commit_activity_id(
    activities: list[ActivityEntry],
    entry_id: str,
    typed_id: str,
    *,
    conflict_in_history: bool,
    shift: bool,
) -> ActivityIdCommit:
    """Apply a manually typed activity id to ``entry_id`` within the current list.

    With ``shift`` and a collision, every other activity at or above the typed
    number moves up by one before the edited entry takes the id. Without
    ``shift`` the duplicate is kept as typed.
    """
    upper = typed_id.strip().upper()
    conflict = conflict_in_history or has_local_conflict(activities, entry_id, upper)

    shifted = False
    current = activities
    if conflict and shift:
        current, shifted = shift_activity_ids(activities, upper, skip_entry_id=entry_id)

    updated = [a.model_copy(update={"activity_id": upper}) if a.id == entry_id else a for a in current]
    return ActivityIdCommit(activities=updated, activity_id=upper, conflict=conflict, shifted=shifted)


# ---------------------------------------------------------------------------
# Line-item codes
# ---------------------------------------------------------------------------

def _code_suffix(code: str) -> int:
    parts = (code or "").split("-")
    if len(parts) < 2:
        return 0
    try:
        return int(parts[1])
    except ValueError:
        return 0


def next_entry_code(category: MemoryCategory | str, existing_codes: list[str]) -> str:
    prefix = ENTRY_CODE_PREFIXES[MemoryCategory(category).value]
    highest = max((_code_suffix(c) for c in existing_codes), default=0)
    return f"{prefix}-{highest + 1:02d}"


def new_entry(category: MemoryCategory | str, activity: ActivityEntry) -> BaseEntry | RiskEntry:
    key = MemoryCategory(category).value
    code = next_entry_code(key, [e.code for e in activity.entries(key)])
    if key == MemoryCategory.RISK.value:
        return RiskEntry(code=code)
    return ENTRY_MODELS[key](code=code)
