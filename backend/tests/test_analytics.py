"""
Report aggregation.

All functions under test are pure; figures are built directly.
"""

from datetime import date

import pytest

from reportdesk.services import analytics_service
from reportdesk.services.analytics_service import Goal, LineFigure, ReportFigures


def figures(day, revenue=0, expenses=0, services=(), expense_items=(), id=None):
    return ReportFigures(
        id=id,
        date=day,
        total_services=revenue,
        total_expenses=expenses,
        net_profit=revenue - expenses,
        services=tuple(LineFigure(n, a) for n, a in services),
        expenses=tuple(LineFigure(n, a) for n, a in expense_items),
    )


@pytest.fixture
def three_reports():
    # Net profit 100, -50, 200 (in cents: 10000, -5000, 20000)
    return [
        figures(date(2024, 1, 5), revenue=15000, expenses=5000, id=1),
        figures(date(2024, 1, 20), revenue=5000, expenses=10000, id=2),
        figures(date(2024, 2, 1), revenue=30000, expenses=10000, id=3),
    ]


class TestTotals:

    def test_empty(self):
        assert analytics_service.totals([]) == {
            "revenue": 0, "expenses": 0, "profit": 0, "average_profit": 0, "count": 0,
        }

    def test_consistency_law(self, three_reports):
        result = analytics_service.totals(three_reports)
        assert result["profit"] == result["revenue"] - result["expenses"]
        assert result["profit"] == 25000
        assert result["count"] == 3

    def test_average_rounds_half_up_to_cents(self):
        reports = [figures(date(2024, 1, 1), revenue=1), figures(date(2024, 1, 2), revenue=0)]
        assert analytics_service.totals(reports)["average_profit"] == 1

    def test_margin_zero_revenue(self):
        assert analytics_service.margin_percent([]) == 0.0
        assert analytics_service.margin_percent([figures(date(2024, 1, 1), expenses=500)]) == 0.0

    def test_margin(self):
        assert analytics_service.margin_percent([figures(date(2024, 1, 1), revenue=1000, expenses=250)]) == 75.0

    def test_profit_days(self, three_reports):
        assert analytics_service.profit_days(three_reports) == {"profitable_days": 2, "loss_days": 1}

    def test_summary_on_empty(self):
        result = analytics_service.summary([])
        assert result["margin_percent"] == 0.0
        assert result["profitable_days"] == 0


class TestGroupByMonth:

    def test_example_scenario(self, three_reports):
        months = analytics_service.group_by_month(three_reports)
        assert [m["month"] for m in months] == ["Jan 2024", "Feb 2024"]
        assert months[0]["profit"] == 5000
        assert months[0]["avg_profit"] == 2500
        assert months[1]["profit"] == 20000
        assert months[1]["avg_profit"] == 20000

    def test_years_do_not_merge(self):
        months = analytics_service.group_by_month([
            figures(date(2025, 1, 3), revenue=100),
            figures(date(2024, 1, 3), revenue=200),
        ])
        assert [m["month_key"] for m in months] == ["2024-01", "2025-01"]

    def test_empty(self):
        assert analytics_service.group_by_month([]) == []


class TestGroupByCategory:

    def test_keywords_first_match_wins(self):
        report = figures(date(2024, 1, 1), expense_items=[
            ("Shop Rent", 5000),
            ("Electricity bill", 1200),
            ("Staff salary", 8000),
            ("Fuel for van", 700),
            ("Coffee", 300),
            ("Rent payment", 1000),   # rent comes before payment in the table
        ])
        rows = analytics_service.group_by_category([report])
        assert rows == [
            {"category": "Salaries", "amount": 8000},
            {"category": "Rent", "amount": 6000},
            {"category": "Utilities", "amount": 1200},
            {"category": "Transport", "amount": 700},
            {"category": "Other", "amount": 300},
        ]

    def test_zero_categories_omitted(self):
        report = figures(date(2024, 1, 1), expense_items=[("Repair sink", 0)])
        assert analytics_service.group_by_category([report]) == []

    def test_categorize(self):
        assert analytics_service.categorize_expense("STOCK refill") == "Supplies"
        assert analytics_service.categorize_expense("") == "Other"


class TestTopN:

    def test_groups_by_name_and_truncates(self):
        reports = [
            figures(date(2024, 1, 1), services=[("Haircut", 1000), ("Shave", 500)]),
            figures(date(2024, 1, 2), services=[("Haircut", 1500), ("Color", 3000)]),
        ]
        rows = analytics_service.top_n(reports, "services", 2)
        assert [(r["name"], r["amount"]) for r in rows] == [("Color", 3000), ("Haircut", 2500)]
        assert rows[1]["count"] == 2

    def test_non_positive_n(self):
        assert analytics_service.top_n([], "expenses", 0) == []

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            analytics_service.top_n([], "totals", 3)


class TestGoalProgress:

    TODAY = date(2024, 3, 15)

    def test_capped_at_100(self):
        reports = [figures(self.TODAY, revenue=50000)]
        result = analytics_service.goal_progress(Goal("daily", 10000), reports, self.TODAY)
        assert result["achieved"] == 50000
        assert result["progress_percent"] == 100.0

    def test_zero_target(self):
        reports = [figures(self.TODAY, revenue=500)]
        assert analytics_service.goal_progress(Goal("daily", 0), reports, self.TODAY)["progress_percent"] == 0.0

    def test_negative_achievement(self):
        reports = [figures(self.TODAY, expenses=500)]
        result = analytics_service.goal_progress(Goal("daily", 1000), reports, self.TODAY)
        assert result["achieved"] == -500
        assert result["progress_percent"] == -50.0

    def test_weekly_window_is_inclusive(self):
        reports = [
            figures(date(2024, 3, 8), revenue=100),   # today - 7 days
            figures(date(2024, 3, 7), revenue=1000),  # outside
        ]
        result = analytics_service.goal_progress(Goal("weekly", 1000), reports, self.TODAY)
        assert result["achieved"] == 100
        assert result["progress_percent"] == 10.0

    def test_monthly_window(self):
        reports = [
            figures(date(2024, 3, 1), revenue=300),
            figures(date(2024, 2, 29), revenue=900),
        ]
        result = analytics_service.goal_progress(Goal("monthly", 600), reports, self.TODAY)
        assert result["achieved"] == 300
        assert result["progress_percent"] == 50.0

    def test_daily_only_counts_today(self):
        reports = [figures(date(2024, 3, 14), revenue=100)]
        assert analytics_service.goal_progress(Goal("daily", 100), reports, self.TODAY)["achieved"] == 0


class TestTrendAndCompare:

    def test_trend_keeps_most_recent_in_order(self, three_reports):
        trend = analytics_service.daily_trend(list(reversed(three_reports)), limit=2)
        assert [t["date"] for t in trend] == ["2024-01-20", "2024-02-01"]

    def test_compare(self, three_reports):
        result = analytics_service.compare_reports(three_reports[2], three_reports[0])
        revenue = result["metrics"]["revenue"]
        assert revenue["difference"] == 15000
        assert revenue["percent_change"] == 100.0

    def test_compare_zero_baseline(self):
        zero = figures(date(2024, 1, 1))
        other = figures(date(2024, 1, 2), revenue=100)
        assert analytics_service.compare_reports(other, zero)["metrics"]["revenue"]["percent_change"] == 0.0
