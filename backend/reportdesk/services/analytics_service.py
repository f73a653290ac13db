# Overview: Pure aggregation over reports; totals, rollups, category breakdowns, goals and comparisons.

"""
Report Analytics

All functions are pure: they take already-fetched report figures and
return plain dicts/lists. Money is integer cents throughout; callers format
at the JSON boundary.

EDGE POLICY:
- Empty input is a zero/empty result, never an error.
- Any division by zero yields 0.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence


# Ordered: first matching keyword wins
EXPENSE_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Rent", ("rent", "lease")),
    ("Utilities", ("electricity", "water", "internet", "phone", "bill")),
    ("Salaries", ("salary", "wages", "payment", "staff")),
    ("Supplies", ("supplies", "materials", "inventory", "stock")),
    ("Maintenance", ("maintenance", "repair", "fix")),
    ("Transport", ("transport", "fuel", "vehicle", "petrol")),
)
OTHER_CATEGORY = "Other"

GOAL_TYPES = ("daily", "weekly", "monthly")
TOP_ITEM_FIELDS = ("services", "expenses")


@dataclass(frozen=True)
class LineFigure:
    name: str
    amount: int


@dataclass(frozen=True)
class ReportFigures:
    """Monetary view of one report (all amounts in cents)."""
    id: int | None
    date: date
    total_services: int
    total_expenses: int
    net_profit: int
    services: tuple[LineFigure, ...] = field(default_factory=tuple)
    expenses: tuple[LineFigure, ...] = field(default_factory=tuple)
    created_at: datetime | None = None

    @classmethod
    def from_report(cls, report) -> "ReportFigures":
        return cls(
            id=report.id,
            date=report.report_date,
            total_services=report.total_services_cents,
            total_expenses=report.total_expenses_cents,
            net_profit=report.net_profit_cents,
            services=tuple(LineFigure(i.name, i.amount_cents) for i in report.services),
            expenses=tuple(LineFigure(i.name, i.amount_cents) for i in report.expenses),
            created_at=report.created_at,
        )


@dataclass(frozen=True)
class Goal:
    type: str
    target: int
    name: str | None = None


def _div_cents(numerator: int, denominator: int) -> int:
    if denominator == 0:
        return 0
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _percent(numerator: int, denominator: int, places: int = 2) -> float:
    if denominator == 0:
        return 0.0
    return round(numerator / denominator * 100, places)


def _chronological(reports: Iterable[ReportFigures]) -> list[ReportFigures]:
    return sorted(reports, key=lambda r: (r.date, r.created_at or datetime.min, r.id or 0))


def totals(reports: Iterable[ReportFigures]) -> dict:
    """revenue, expenses, profit, average_profit (profit / count) and count."""
    revenue = expenses = profit = count = 0
    for report in reports:
        revenue += report.total_services
        expenses += report.total_expenses
        profit += report.net_profit
        count += 1

    return {
        "revenue": revenue,
        "expenses": expenses,
        "profit": profit,
        "average_profit": _div_cents(profit, count),
        "count": count,
    }


def margin_percent(reports: Iterable[ReportFigures]) -> float:
    summary = totals(reports)
    return _percent(summary["profit"], summary["revenue"])


def profit_days(reports: Iterable[ReportFigures]) -> dict:
    """Reports with positive vs negative net profit; break-even days count as neither."""
    profitable = loss = 0
    for report in reports:
        if report.net_profit > 0:
            profitable += 1
        elif report.net_profit < 0:
            loss += 1
    return {"profitable_days": profitable, "loss_days": loss}


def summary(reports: Sequence[ReportFigures]) -> dict:
    result = totals(reports)
    result["margin_percent"] = margin_percent(reports)
    result.update(profit_days(reports))
    return result


def group_by_month(reports: Iterable[ReportFigures]) -> list[dict]:
    """
    Monthly rollup in chronological order.

    month is a year-inclusive label ("Jan 2024"); month_key is "2024-01".
    """
    buckets: dict[tuple[int, int], dict] = {}
    for report in reports:
        key = (report.date.year, report.date.month)
        bucket = buckets.setdefault(key, {"revenue": 0, "expenses": 0, "profit": 0, "count": 0})
        bucket["revenue"] += report.total_services
        bucket["expenses"] += report.total_expenses
        bucket["profit"] += report.net_profit
        bucket["count"] += 1

    rows = []
    for (year, month) in sorted(buckets):
        bucket = buckets[(year, month)]
        rows.append({
            "month": date(year, month, 1).strftime("%b %Y"),
            "month_key": f"{year:04d}-{month:02d}",
            "revenue": bucket["revenue"],
            "expenses": bucket["expenses"],
            "profit": bucket["profit"],
            "avg_profit": _div_cents(bucket["profit"], bucket["count"]),
            "count": bucket["count"],
        })
    return rows


def categorize_expense(name: str, categories=EXPENSE_CATEGORIES) -> str:
    lowered = (name or "").lower()
    for category, keywords in categories:
        if any(keyword in lowered for keyword in keywords):
            return category
    return OTHER_CATEGORY


def group_by_category(reports: Iterable[ReportFigures], categories=EXPENSE_CATEGORIES) -> list[dict]:
    """Expense totals per category, largest first; empty categories are omitted."""
    amounts: "OrderedDict[str, int]" = OrderedDict((name, 0) for name, _ in categories)
    amounts[OTHER_CATEGORY] = 0

    for report in reports:
        for item in report.expenses:
            amounts[categorize_expense(item.name, categories)] += item.amount

    rows = [{"category": name, "amount": amount} for name, amount in amounts.items() if amount != 0]
    rows.sort(key=lambda row: row["amount"], reverse=True)
    return rows


def top_n(reports: Iterable[ReportFigures], field_name: str, n: int) -> list[dict]:
    """Line items grouped by name within services or expenses, largest sum first."""
    if field_name not in TOP_ITEM_FIELDS:
        raise ValueError(f"field must be one of: {', '.join(TOP_ITEM_FIELDS)}")
    if n <= 0:
        return []

    sums: "OrderedDict[str, dict]" = OrderedDict()
    for report in reports:
        for item in getattr(report, field_name):
            name = item.name.strip()
            entry = sums.setdefault(name, {"name": name, "amount": 0, "count": 0})
            entry["amount"] += item.amount
            entry["count"] += 1

    rows = sorted(sums.values(), key=lambda row: row["amount"], reverse=True)
    return rows[:n]


def daily_trend(reports: Iterable[ReportFigures], limit: int = 30) -> list[dict]:
    """Per-report figures for the most recent `limit` reports, oldest first."""
    if limit <= 0:
        return []
    recent = _chronological(reports)[-limit:]
    return [
        {
            "id": report.id,
            "date": report.date.isoformat(),
            "revenue": report.total_services,
            "expenses": report.total_expenses,
            "profit": report.net_profit,
        }
        for report in recent
    ]


def goal_window_start(goal_type: str, today: date) -> date:
    if goal_type == "daily":
        return today
    if goal_type == "weekly":
        return today - timedelta(days=7)
    if goal_type == "monthly":
        return today.replace(day=1)
    raise ValueError(f"goal type must be one of: {', '.join(GOAL_TYPES)}")


def goal_progress(goal: Goal, reports: Iterable[ReportFigures], now: date | datetime) -> dict:
    """
    Net profit achieved inside the goal's window and percent of target.

    daily: date == today; weekly: date >= today - 7 days; monthly: date >=
    first of the month. Progress is capped at 100 and is 0 for a
    non-positive target. Negative achievement is reported as is.
    """
    today = now.date() if isinstance(now, datetime) else now
    start = goal_window_start(goal.type, today)

    if goal.type == "daily":
        achieved = sum(r.net_profit for r in reports if r.date == today)
    else:
        achieved = sum(r.net_profit for r in reports if r.date >= start)

    if goal.target > 0:
        progress = min(round(achieved / goal.target * 100, 2), 100.0)
    else:
        progress = 0.0

    return {
        "name": goal.name,
        "type": goal.type,
        "target": goal.target,
        "achieved": achieved,
        "progress_percent": progress,
        "window_start": start.isoformat(),
    }


def compare_reports(current: ReportFigures, baseline: ReportFigures) -> dict:
    """Per-metric difference and percent change (rounded to 1 place, 0 when baseline is 0)."""
    metrics = {}
    for metric, attr in (("revenue", "total_services"), ("expenses", "total_expenses"), ("profit", "net_profit")):
        cur = getattr(current, attr)
        base = getattr(baseline, attr)
        diff = cur - base
        metrics[metric] = {
            "current": cur,
            "baseline": base,
            "difference": diff,
            "percent_change": _percent(diff, base, places=1),
        }
    return {
        "current_id": current.id,
        "baseline_id": baseline.id,
        "metrics": metrics,
    }
