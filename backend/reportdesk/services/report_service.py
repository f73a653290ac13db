# Overview: Service-layer operations for daily reports; encapsulates business logic and database work.

"""
Report Storage Service

WHY: Reports are the core record. Line items arrive from the client, the
derived totals never do: total_services, total_expenses and net_profit
are recomputed here from the line items on every create, update and
restore. Client-submitted totals are accepted in the payload and ignored.

SCOPING: Callers without can_view_all_reports only see reports they
created. Scoping is applied after authorization, by passing an owner id
(visible_owner_id) into the queries below.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date

from ..extensions import db
from ..models import Report, ReportLineItem
from ..models.reports import EXPENSE, SERVICE
from ..money import MAX_AMOUNT_CENTS, to_cents
from ..permissions import Permissions
from ..time_utils import parse_report_date, to_utc_z, utcnow
from ..validation import (
    LINE_ITEM_NAME_MAX,
    NotFoundError,
    ValidationError,
    clean_string,
    reject_unknown_fields,
    require_object,
)


BACKUP_VERSION = "1.0"
MAX_LINE_ITEMS = 500

# Accepted payload keys: canonical snake_case first, then the camelCase
# spelling older clients and backups send.
_FIELD_ALIASES = {
    "online_payment": ("online_payment", "onlinePayment"),
    "cash_payment": ("cash_payment", "cashPayment"),
}

# Derived or server-owned fields; accepted and ignored
_IGNORED_FIELDS = {
    "id",
    "total_services", "totalServices",
    "total_expenses", "totalExpenses",
    "net_profit", "netProfit",
    "created_by", "createdBy",
    "created_by_username", "createdByUsername",
    "created_at", "createdAt",
    "updated_at", "updatedAt",
}

_ALLOWED_FIELDS = (
    {"date", "services", "expenses"}
    | {alias for aliases in _FIELD_ALIASES.values() for alias in aliases}
    | _IGNORED_FIELDS
)


class ReportAccessError(Exception):
    """Report exists but lies outside the caller's visible scope."""
    pass


@dataclass(frozen=True)
class ParsedLineItem:
    key: str
    name: str
    amount: int


@dataclass(frozen=True)
class ReportInput:
    """Validated report payload with server-computed totals (cents)."""
    report_date: date
    services: tuple[ParsedLineItem, ...]
    expenses: tuple[ParsedLineItem, ...]
    online_payment: int
    cash_payment: int

    @property
    def total_services(self) -> int:
        return sum(item.amount for item in self.services)

    @property
    def total_expenses(self) -> int:
        return sum(item.amount for item in self.expenses)

    @property
    def net_profit(self) -> int:
        return self.total_services - self.total_expenses


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def _pick(payload: dict, field: str):
    for alias in _FIELD_ALIASES[field]:
        if alias in payload and payload[alias] is not None:
            return payload[alias]
    return None


def _parse_line_items(raw, field: str) -> tuple[ParsedLineItem, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ValidationError(f"{field} must be a list")
    if len(raw) > MAX_LINE_ITEMS:
        raise ValidationError(f"{field} cannot contain more than {MAX_LINE_ITEMS} items")

    items = []
    for index, entry in enumerate(raw):
        label = f"{field}[{index}]"
        if not isinstance(entry, dict):
            raise ValidationError(f"{label} must be an object")

        name = clean_string(entry.get("name"), f"{label}.name", max_length=LINE_ITEM_NAME_MAX)
        amount = to_cents(entry.get("amount"), field=f"{label}.amount")

        key = entry.get("id")
        if key is None or (isinstance(key, str) and not key.strip()):
            key = uuid.uuid4().hex
        elif isinstance(key, bool) or not isinstance(key, (str, int)):
            raise ValidationError(f"{label}.id must be a string")
        key = str(key).strip()[:64]

        items.append(ParsedLineItem(key=key, name=name, amount=amount))
    return tuple(items)


def parse_report_payload(payload) -> ReportInput:
    """
    Validate a report payload.

    Raises ValidationError on a missing/invalid date, malformed line items,
    negative amounts or unknown fields. Totals are derived, never read.
    """
    payload = require_object(payload)
    reject_unknown_fields(payload, _ALLOWED_FIELDS)

    raw_date = payload.get("date")
    if raw_date in (None, ""):
        raise ValidationError("date is required")
    try:
        report_date = parse_report_date(raw_date)
    except (TypeError, ValueError):
        raise ValidationError("date must be an ISO date (YYYY-MM-DD)")
    if report_date is None:
        raise ValidationError("date is required")

    services = _parse_line_items(payload.get("services"), "services")
    expenses = _parse_line_items(payload.get("expenses"), "expenses")

    online = _pick(payload, "online_payment")
    cash = _pick(payload, "cash_payment")

    parsed = ReportInput(
        report_date=report_date,
        services=services,
        expenses=expenses,
        online_payment=to_cents(online, "online_payment") if online is not None else 0,
        cash_payment=to_cents(cash, "cash_payment") if cash is not None else 0,
    )

    if parsed.total_services > MAX_AMOUNT_CENTS or parsed.total_expenses > MAX_AMOUNT_CENTS:
        raise ValidationError("Report totals are too large")
    return parsed


def _apply(report: Report, data: ReportInput) -> None:
    report.report_date = data.report_date
    report.online_payment_cents = data.online_payment
    report.cash_payment_cents = data.cash_payment
    report.total_services_cents = data.total_services
    report.total_expenses_cents = data.total_expenses
    report.net_profit_cents = data.net_profit

    for kind, items in ((SERVICE, data.services), (EXPENSE, data.expenses)):
        for position, item in enumerate(items):
            report.items.append(ReportLineItem(
                kind=kind,
                position=position,
                item_key=item.key,
                name=item.name,
                amount_cents=item.amount,
            ))


def _new_report(data: ReportInput, user) -> Report:
    report = Report(
        created_by_user_id=user.id if user is not None else None,
        created_by_username=user.username if user is not None else None,
        created_at=utcnow(),
    )
    _apply(report, data)
    return report


# =============================================================================
# SCOPING
# =============================================================================

def visible_owner_id(user, permissions: Permissions) -> int | None:
    """None means every report is visible; otherwise only this creator's."""
    if permissions.allows("can_view_all_reports"):
        return None
    return user.id


def ensure_visible(report: Report, owner_id: int | None) -> Report:
    if owner_id is not None and report.created_by_user_id != owner_id:
        raise ReportAccessError("You can only access reports you created")
    return report


# =============================================================================
# OPERATIONS
# =============================================================================

def create_report(payload, user) -> Report:
    data = parse_report_payload(payload)
    report = _new_report(data, user)
    db.session.add(report)
    db.session.commit()
    return report


def get_report(report_id: int, owner_id: int | None = None) -> Report:
    report = db.session.get(Report, report_id)
    if report is None:
        raise NotFoundError("Report not found")
    return ensure_visible(report, owner_id)


def list_reports(
    *,
    owner_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[Report]:
    """Newest date first; start/end are inclusive calendar days."""
    if start is not None and end is not None and start > end:
        raise ValidationError("start must be on or before end")

    query = db.session.query(Report)
    if owner_id is not None:
        query = query.filter(Report.created_by_user_id == owner_id)
    if start is not None:
        query = query.filter(Report.report_date >= start)
    if end is not None:
        query = query.filter(Report.report_date <= end)

    return query.order_by(Report.report_date.desc(), Report.created_at.desc(), Report.id.desc()).all()


def list_reports_by_date(report_date: date, owner_id: int | None = None) -> list[Report]:
    return list_reports(owner_id=owner_id, start=report_date, end=report_date)


def update_report(report_id: int, payload, owner_id: int | None = None) -> Report:
    """
    Full replace of date, line items and payments. Creator and created_at
    are preserved; totals are recomputed.
    """
    report = get_report(report_id, owner_id)
    data = parse_report_payload(payload)

    # Flush removals first so replacement positions don't collide
    report.items.clear()
    db.session.flush()

    _apply(report, data)
    report.updated_at = utcnow()
    db.session.commit()
    return report


def delete_report(report_id: int, owner_id: int | None = None) -> dict:
    """Delete a report and its line items; returns the deleted record."""
    report = get_report(report_id, owner_id)
    snapshot = report.to_dict()
    db.session.delete(report)
    db.session.commit()
    return snapshot


def bulk_restore(reports_payload, user) -> dict:
    """
    Recreate reports from a backup list, attributed to `user`.

    Invalid entries do not abort the restore; each is reported with its
    index, date and error. Returns {restored, total, errors, report_ids}.
    """
    if not isinstance(reports_payload, list):
        raise ValidationError("reports must be a list")
    if not reports_payload:
        raise ValidationError("No reports to restore")

    created: list[Report] = []
    errors: list[dict] = []

    for index, entry in enumerate(reports_payload):
        try:
            data = parse_report_payload(entry)
        except ValidationError as exc:
            errors.append({
                "index": index,
                "date": entry.get("date") if isinstance(entry, dict) else None,
                "error": str(exc),
            })
            continue
        report = _new_report(data, user)
        db.session.add(report)
        created.append(report)

    if created:
        db.session.commit()

    return {
        "restored": len(created),
        "total": len(reports_payload),
        "errors": errors,
        "report_ids": [report.id for report in created],
    }


def export_backup(owner_id: int | None = None) -> dict:
    """Backup document: {version, timestamp, reports}."""
    reports = list_reports(owner_id=owner_id)
    return {
        "version": BACKUP_VERSION,
        "timestamp": to_utc_z(utcnow()),
        "reports": [report.to_dict() for report in reports],
    }
