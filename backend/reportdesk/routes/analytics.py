# Overview: Flask API routes for analytics; fetches scoped reports and formats aggregates.

"""
Analytics API routes

Every endpoint works over the caller's visible reports (see report scoping)
and returns money as decimal strings. The aggregation itself lives in
analytics_service and has no I/O.
"""

from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth, require_capability
from ..goal_seek import FormulaError, compile_formula, solve_for_target, solve_simple
from ..money import format_cents, to_cents
from ..services import analytics_service, report_service
from ..services.analytics_service import GOAL_TYPES, Goal, ReportFigures
from ..services.report_service import ReportAccessError
from ..time_utils import parse_report_date, utcnow
from ..validation import NotFoundError, ValidationError, parse_limit, require_object


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")

MONEY_KEYS = {
    "revenue", "expenses", "profit", "average_profit", "avg_profit",
    "amount", "target", "achieved", "current", "baseline", "difference",
}
MAX_TOP_ITEMS = 100
MAX_TREND = 366


def _format(value):
    """Recursively render integer-cent fields as decimal strings."""
    if isinstance(value, list):
        return [_format(v) for v in value]
    if isinstance(value, dict):
        return {
            k: format_cents(v) if k in MONEY_KEYS and isinstance(v, int) and not isinstance(v, bool) else _format(v)
            for k, v in value.items()
        }
    return value


def _owner_scope():
    return report_service.visible_owner_id(g.current_user, g.identity.permissions)


def _figures() -> list[ReportFigures]:
    try:
        start = parse_report_date(request.args.get("start"))
        end = parse_report_date(request.args.get("end"))
    except ValueError:
        raise ValidationError("start/end must be ISO dates (YYYY-MM-DD)")

    reports = report_service.list_reports(owner_id=_owner_scope(), start=start, end=end)
    return [ReportFigures.from_report(r) for r in reports]


def _parse_goal(raw) -> Goal:
    raw = require_object(raw)
    goal_type = raw.get("type")
    if goal_type not in GOAL_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(GOAL_TYPES)}")
    if raw.get("target") is None:
        raise ValidationError("target is required")
    name = raw.get("name")
    return Goal(
        type=goal_type,
        target=to_cents(raw.get("target"), "target", allow_negative=True),
        name=name if isinstance(name, str) else None,
    )


def _parse_number(value, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number")
    return number


@analytics_bp.get("/summary")
@require_auth
@require_capability("can_view_reports")
def summary():
    """Totals, average profit, margin and profitable/loss day counts."""
    try:
        return jsonify({"summary": _format(analytics_service.summary(_figures()))}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build analytics summary")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/monthly")
@require_auth
@require_capability("can_view_reports")
def monthly():
    try:
        return jsonify({"months": _format(analytics_service.group_by_month(_figures()))}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build monthly analytics")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/expense-categories")
@require_auth
@require_capability("can_view_reports")
def expense_categories():
    try:
        rows = analytics_service.group_by_category(_figures())
        return jsonify({"categories": _format(rows)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build expense categories")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/top-items")
@require_auth
@require_capability("can_view_reports")
def top_items():
    """
    Query params:
    - field: services | expenses (default services)
    - n: int (default 5, max 100)
    """
    try:
        field = request.args.get("field", "services")
        if field not in analytics_service.TOP_ITEM_FIELDS:
            raise ValidationError("field must be one of: services, expenses")
        n = parse_limit(request.args.get("n"), 5, MAX_TOP_ITEMS)

        rows = analytics_service.top_n(_figures(), field, n)
        return jsonify({"field": field, "items": _format(rows)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build top items")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/trend")
@require_auth
@require_capability("can_view_reports")
def trend():
    try:
        limit = parse_limit(request.args.get("limit"), 30, MAX_TREND)
        return jsonify({"trend": _format(analytics_service.daily_trend(_figures(), limit))}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build trend")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.post("/goal-progress")
@require_auth
@require_capability("can_view_reports")
def goal_progress():
    """
    Request body: a goal {type, target, name?}, a list of goals, or
    {"goals": [...]}. type is daily, weekly or monthly.
    """
    try:
        data = request.get_json(silent=True)
        if isinstance(data, dict) and "goals" in data:
            data = data["goals"]
        raw_goals = data if isinstance(data, list) else [data]
        if not raw_goals:
            raise ValidationError("At least one goal is required")
        goals = [_parse_goal(raw) for raw in raw_goals]

        figures = _figures()
        today = utcnow().date()
        results = [analytics_service.goal_progress(goal, figures, today) for goal in goals]
        return jsonify({"goals": _format(results)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to compute goal progress")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/compare")
@require_auth
@require_capability("can_view_reports")
def compare():
    """Query params: current, baseline - report ids."""
    try:
        current_id = request.args.get("current", type=int)
        baseline_id = request.args.get("baseline", type=int)
        if current_id is None or baseline_id is None:
            raise ValidationError("current and baseline report ids are required")

        scope = _owner_scope()
        current = ReportFigures.from_report(report_service.get_report(current_id, owner_id=scope))
        baseline = ReportFigures.from_report(report_service.get_report(baseline_id, owner_id=scope))

        return jsonify({"comparison": _format(analytics_service.compare_reports(current, baseline))}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReportAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to compare reports")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.post("/goal-seek")
@require_auth
@require_capability("can_view_reports")
def goal_seek():
    """
    Solve for an input that produces a target value.

    Request body, either:
    - {formula, target, variable?="X"} - Newton-Raphson over the formula
    - {base, operation, goal} - closed form for base <op> answer = goal

    "solution" is null when no solution was found.
    """
    try:
        data = require_object(request.get_json(silent=True))

        if "formula" in data:
            target = _parse_number(data.get("target"), "target")
            variable = data.get("variable") or "X"
            try:
                f = compile_formula(data.get("formula"), variable)
            except FormulaError as e:
                raise ValidationError(str(e))

            result = solve_for_target(f, target)
            return jsonify({
                "formula": data["formula"],
                "variable": variable,
                "target": target,
                "solution": result.to_dict() if result else None,
            }), 200

        if "operation" in data:
            base = _parse_number(data.get("base"), "base")
            goal = _parse_number(data.get("goal"), "goal")
            operation = data.get("operation")
            if operation not in ("+", "-", "*", "/"):
                raise ValidationError("operation must be one of: + - * /")
            answer = solve_simple(base, operation, goal)
            return jsonify({
                "base": base,
                "operation": operation,
                "goal": goal,
                "solution": {"x": answer} if answer is not None else None,
            }), 200

        raise ValidationError("formula or operation is required")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to run goal seek")
        return jsonify({"error": "Internal server error"}), 500
