"""Schedule, quantity and cost metrics for a single activity.

Everything here is a pure function of one ``ActivityEntry`` and an as-of
date. Missing or unparsable dates give ``None`` for the metrics that need
them and never raise, so one blank field never hides the rest of the panel.

Monetary values are computed with ``Decimal`` and rounded half-up to cents.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sitelog.core.reports.schemas import (
    ActivityEntry,
    ActivityMetrics,
    CategoryCosts,
    CostModel,
)

CENTS = Decimal("0.01")
ZERO = Decimal("0")

# Fixed three-point spread around the most-likely cost
OPTIMISTIC_FACTOR = Decimal("0.90")
PESSIMISTIC_FACTOR = Decimal("1.21")


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

def parse_date(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def day_diff(start: str | date | None, finish: str | date | None) -> int | None:
    """Plain calendar difference ``finish - start`` in days."""
    a, b = parse_date(start), parse_date(finish)
    if a is None or b is None:
        return None
    return (b - a).days


def inclusive_days(start: str | date | None, finish: str | date | None) -> int | None:
    """Days covered by ``start..finish`` counting both ends; negative when inverted."""
    diff = day_diff(start, finish)
    return None if diff is None else diff + 1


def planned_percent_as_of(
    planned_start: str | date | None, planned_finish: str | date | None, as_of: str | date | None
) -> float | None:
    ps, pf, ao = parse_date(planned_start), parse_date(planned_finish), parse_date(as_of)
    if ps is None or pf is None or ao is None:
        return None
    if ao >= pf:
        return 100.0
    if ao <= ps:
        return 0.0
    total = inclusive_days(ps, pf)
    elapsed = inclusive_days(ps, ao)
    if not total or not elapsed:
        return None
    return max(0.0, min(100.0, elapsed / total * 100))


# ---------------------------------------------------------------------------
# Cost model
# ---------------------------------------------------------------------------

def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _dec(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def _positive_days(start: str | None, finish: str | None) -> int:
    days = inclusive_days(start, finish)
    return days if days and days > 0 else 0


def daily_costs(activity: ActivityEntry) -> CategoryCosts:
    """Unrounded cost per day of each resource category."""
    manpower = sum(
        ((_dec(m.quantity) + _dec(m.overtime)) * _dec(m.cost) for m in activity.manpower), ZERO
    )
    material = sum((_dec(m.quantity) * _dec(m.cost) for m in activity.material), ZERO)
    equipment = sum((_dec(e.quantity) * _dec(e.cost) for e in activity.equipment), ZERO)
    subcontractor = sum((_dec(s.quantity) * _dec(s.cost) for s in activity.subcontractor), ZERO)
    return CategoryCosts(
        manpower=manpower, material=material, equipment=equipment, subcontractor=subcontractor
    )


def estimate_costs(daily_total: Decimal, planned_days: int) -> dict[str, Decimal]:
    """PERT three-point estimate from a daily burn and a planned duration (unrounded)."""
    most_likely = daily_total * planned_days
    optimistic = most_likely * OPTIMISTIC_FACTOR
    pessimistic = most_likely * PESSIMISTIC_FACTOR
    return {
        "most_likely": most_likely,
        "optimistic": optimistic,
        "pessimistic": pessimistic,
        "std_dev": (pessimistic - optimistic) / 6,
        "expected": (optimistic + 4 * most_likely + pessimistic) / 6,
    }


def build_cost_model(activity: ActivityEntry) -> CostModel:
    planned_days = _positive_days(activity.planned_start, activity.planned_finish)
    daily = daily_costs(activity)
    daily_total = daily.manpower + daily.material + daily.equipment + daily.subcontractor
    estimate = estimate_costs(daily_total, planned_days)

    return CostModel(
        planned_days=planned_days,
        daily=CategoryCosts(
            manpower=round_money(daily.manpower),
            material=round_money(daily.material),
            equipment=round_money(daily.equipment),
            subcontractor=round_money(daily.subcontractor),
        ),
        daily_total=round_money(daily_total),
        total=CategoryCosts(
            manpower=round_money(daily.manpower * planned_days),
            material=round_money(daily.material * planned_days),
            equipment=round_money(daily.equipment * planned_days),
            subcontractor=round_money(daily.subcontractor * planned_days),
        ),
        **{k: round_money(v) for k, v in estimate.items()},
    )


# ---------------------------------------------------------------------------
# Activity metrics
# ---------------------------------------------------------------------------

def compute_activity_metrics(activity: ActivityEntry, as_of: str | date | None) -> ActivityMetrics:
    as_of_date = parse_date(as_of)

    planned_dur = inclusive_days(activity.planned_start, activity.planned_finish)
    actual_dur_full = inclusive_days(activity.actual_start, activity.actual_finish)
    actual_dur_to_date = inclusive_days(activity.actual_start, as_of_date)
    actual_dur = actual_dur_full if actual_dur_full is not None else actual_dur_to_date
    duration_variance = (
        actual_dur - planned_dur if planned_dur is not None and actual_dur is not None else None
    )

    planned_qty = float(activity.planned_quantity or 0)
    actual_qty = float(activity.actual_quantity or 0)

    planned_pct = planned_percent_as_of(activity.planned_start, activity.planned_finish, as_of_date)
    actual_pct = actual_qty / planned_qty * 100 if planned_qty > 0 else None
    planned_qty_expected = planned_qty * planned_pct / 100 if planned_pct is not None else None

    if planned_qty_expected is not None:
        shortfall = planned_qty_expected - actual_qty
    elif planned_qty:
        shortfall = planned_qty - actual_qty
    else:
        shortfall = None

    planned_rate = planned_qty / planned_dur if planned_dur and planned_dur > 0 else None
    actual_rate = (
        actual_qty / actual_dur_to_date if actual_dur_to_date and actual_dur_to_date > 0 else None
    )
    schedule_variance_qty = (
        actual_qty - planned_qty_expected if planned_qty_expected is not None else None
    )
    performance_pct = (
        actual_rate / planned_rate * 100
        if planned_rate is not None and actual_rate is not None and planned_rate > 0
        else None
    )
    spi = (
        actual_qty / planned_qty_expected
        if planned_qty_expected is not None and planned_qty_expected > 0
        else None
    )

    cost = build_cost_model(activity)
    daily = daily_costs(activity)
    daily_total = daily.manpower + daily.material + daily.equipment + daily.subcontractor
    most_likely = daily_total * cost.planned_days

    pv = most_likely * _dec(planned_pct) / 100 if planned_pct is not None else None
    ev = most_likely * _dec(actual_pct) / 100 if actual_pct is not None else None
    if actual_dur_to_date and actual_dur_to_date > 0:
        ac = daily_total * actual_dur_to_date
    else:
        ac = daily_total
    cpi = float(ev / ac) if ev is not None and ac > 0 else None

    return ActivityMetrics(
        as_of=as_of_date,
        planned_duration=planned_dur,
        actual_duration=actual_dur,
        actual_duration_to_date=actual_dur_to_date,
        duration_variance=duration_variance,
        start_delay=day_diff(activity.planned_start, activity.actual_start),
        finish_delay=day_diff(activity.planned_finish, activity.actual_finish),
        planned_quantity=planned_qty,
        actual_quantity=actual_qty,
        quantity_unit=activity.quantity_unit or "",
        planned_percent=planned_pct,
        actual_percent=actual_pct,
        planned_quantity_expected=planned_qty_expected,
        shortfall=shortfall,
        planned_rate=planned_rate,
        actual_rate=actual_rate,
        schedule_variance_qty=schedule_variance_qty,
        performance_percent=performance_pct,
        planned_value=round_money(pv) if pv is not None else None,
        earned_value=round_money(ev) if ev is not None else None,
        actual_cost=round_money(ac),
        cpi=cpi,
        spi=spi,
        cost=cost,
    )
