# Overview: Flask API routes for the activity log; read-only.

from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_auth, require_capability
from ..services import activity_service
from ..validation import ValidationError, parse_limit


activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity-logs")

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000


@activity_bp.get("")
@require_auth
@require_capability("can_view_activity_logs")
def list_activity_logs():
    """
    Activity entries, newest first.

    Query params:
    - user_id: int - only this user's entries
    - action: str - one of the known actions
    - limit: int (default 100, max 1000)
    """
    try:
        user_id = request.args.get("user_id")
        if user_id not in (None, ""):
            try:
                user_id = int(user_id)
            except ValueError:
                raise ValidationError("user_id must be an integer")
        else:
            user_id = None

        entries = activity_service.list_activity(
            user_id=user_id,
            action=request.args.get("action") or None,
            limit=parse_limit(request.args.get("limit"), DEFAULT_LIMIT, MAX_LIMIT),
        )
        return jsonify({"logs": [e.to_dict() for e in entries], "count": len(entries)}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list activity logs")
        return jsonify({"error": "Internal server error"}), 500
