# Overview: Flask API routes for daily reports; parses input and returns JSON responses.

"""
Report API routes

All endpoints require authentication and a report capability. Read
endpoints are additionally scoped: callers without can_view_all_reports
only see reports they created (403 on someone else's report by id).
"""

from flask import Blueprint, jsonify, request, current_app, g

from ..decorators import require_auth, require_capability
from ..services import report_service
from ..services.activity_service import log_request_activity
from ..services.report_service import ReportAccessError
from ..time_utils import parse_report_date
from ..validation import NotFoundError, ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _owner_scope():
    return report_service.visible_owner_id(g.current_user, g.identity.permissions)


def _date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_report_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)")


@reports_bp.post("")
@require_auth
@require_capability("can_create_reports")
def create_report():
    """
    Create a report.

    Request body:
    - date: "YYYY-MM-DD" (required)
    - services: [{id?, name, amount}]
    - expenses: [{id?, name, amount}]
    - online_payment, cash_payment: amounts (optional, default 0)

    Totals in the body are ignored; they are computed from the line items.
    """
    try:
        report = report_service.create_report(request.get_json(silent=True), g.current_user)
        log_request_activity("report_created", resource_type="report", resource_id=report.id,
                             metadata={"date": report.report_date.isoformat()})
        return jsonify({"report": report.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("")
@require_auth
@require_capability("can_view_reports")
def list_reports():
    """
    List visible reports, newest first.

    Query params:
    - start, end: inclusive "YYYY-MM-DD" bounds (optional)
    """
    try:
        reports = report_service.list_reports(
            owner_id=_owner_scope(),
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify({"reports": [r.to_dict() for r in reports], "count": len(reports)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list reports")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/<int:report_id>")
@require_auth
@require_capability("can_view_reports")
def get_report(report_id: int):
    try:
        report = report_service.get_report(report_id, owner_id=_owner_scope())
        log_request_activity("report_viewed", resource_type="report", resource_id=report.id)
        return jsonify({"report": report.to_dict()}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReportAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to get report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/date/<string:report_date>")
@require_auth
@require_capability("can_view_reports")
def list_reports_by_date(report_date: str):
    try:
        try:
            day = parse_report_date(report_date)
        except ValueError:
            raise ValidationError("date must be an ISO date (YYYY-MM-DD)")
        if day is None:
            raise ValidationError("date is required")

        reports = report_service.list_reports_by_date(day, owner_id=_owner_scope())
        return jsonify({"reports": [r.to_dict() for r in reports], "count": len(reports)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list reports by date")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.put("/<int:report_id>")
@require_auth
@require_capability("can_edit_reports")
def update_report(report_id: int):
    """Full replace of a report's date, line items and payments."""
    try:
        report = report_service.update_report(
            report_id, request.get_json(silent=True), owner_id=_owner_scope()
        )
        log_request_activity("report_updated", resource_type="report", resource_id=report.id,
                             metadata={"date": report.report_date.isoformat()})
        return jsonify({"report": report.to_dict(), "message": "Report updated successfully"}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReportAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to update report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.delete("/<int:report_id>")
@require_auth
@require_capability("can_delete_reports")
def delete_report(report_id: int):
    try:
        deleted = report_service.delete_report(report_id, owner_id=_owner_scope())
        log_request_activity("report_deleted", resource_type="report", resource_id=report_id,
                             metadata={"date": deleted["date"]})
        return jsonify({"report": deleted, "message": "Report deleted successfully"}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReportAccessError as e:
        return jsonify({"error": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to delete report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/bulk-restore")
@require_auth
@require_capability("can_backup_restore")
def bulk_restore():
    """
    Restore reports from a backup.

    Request body: a backup document {"reports": [...]} or a bare list.
    Invalid entries are skipped and listed in "errors".
    """
    try:
        data = request.get_json(silent=True)
        reports_payload = data.get("reports") if isinstance(data, dict) else data

        result = report_service.bulk_restore(reports_payload, g.current_user)
        log_request_activity("report_created", resource_type="bulk_restore", metadata={
            "total_reports": result["total"],
            "success_count": result["restored"],
            "error_count": len(result["errors"]),
        })
        return jsonify({"success": True, **result}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to restore reports")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/backup")
@require_auth
@require_capability("can_backup_restore")
def export_backup():
    """Backup document {version, timestamp, reports} of all visible reports."""
    try:
        document = report_service.export_backup(owner_id=_owner_scope())
        log_request_activity("report_exported", resource_type="backup",
                             metadata={"count": len(document["reports"])})
        return jsonify(document), 200

    except Exception:
        current_app.logger.exception("Failed to export backup")
        return jsonify({"error": "Internal server error"}), 500
