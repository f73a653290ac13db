from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z


SERVICE = "service"
EXPENSE = "expense"


class Report(db.Model):
    """
    One dated record of service revenue and expense line items.

    Totals are derived: the report service recomputes them from the line
    items on every write, so total_services_cents - total_expenses_cents
    always equals net_profit_cents. Several reports may share a date.
    """
    __tablename__ = "reports"
    __table_args__ = (
        db.Index("ix_reports_date_created", "report_date", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    report_date = db.Column(db.Date, nullable=False, index=True)

    total_services_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_expenses_cents = db.Column(db.BigInteger, nullable=False, default=0)
    net_profit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    online_payment_cents = db.Column(db.BigInteger, nullable=False, default=0)
    cash_payment_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_by_user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by_username = db.Column(db.String(30), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship(
        "ReportLineItem",
        back_populates="report",
        order_by="ReportLineItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def services(self) -> list["ReportLineItem"]:
        return [item for item in self.items if item.kind == SERVICE]

    @property
    def expenses(self) -> list["ReportLineItem"]:
        return [item for item in self.items if item.kind == EXPENSE]

    def __repr__(self) -> str:
        return f"<Report id={self.id} date={self.report_date} net={self.net_profit_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.report_date.isoformat(),
            "services": [item.to_dict() for item in self.services],
            "expenses": [item.to_dict() for item in self.expenses],
            "total_services": format_cents(self.total_services_cents),
            "total_expenses": format_cents(self.total_expenses_cents),
            "net_profit": format_cents(self.net_profit_cents),
            "online_payment": format_cents(self.online_payment_cents),
            "cash_payment": format_cents(self.cash_payment_cents),
            "created_by": self.created_by_user_id,
            "created_by_username": self.created_by_username,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }


class ReportLineItem(db.Model):
    """A single service or expense line; `position` keeps submission order."""
    __tablename__ = "report_line_items"
    __table_args__ = (
        db.UniqueConstraint("report_id", "kind", "position", name="uq_report_line_position"),
        db.CheckConstraint("amount_cents >= 0", name="ck_report_line_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False)  # service | expense
    position = db.Column(db.Integer, nullable=False)

    # Client-side identifier of the line, echoed back as "id"
    item_key = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    report = db.relationship("Report", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.item_key,
            "name": self.name,
            "amount": format_cents(self.amount_cents),
        }
