from flask import Blueprint, current_app, jsonify, request

from ..errors import CustodyError
from ..services import reconciliation_service, reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
def dashboard_report():
    start = request.args.get("start")
    end = request.args.get("end")
    top = request.args.get("top", 5, type=int)

    try:
        report = reporting_service.dashboard(start=start, end=end, top=top)
        return jsonify(report), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build dashboard report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/reconciliation")
def reconciliation_report():
    include_events = request.args.get("include_events", "true").lower() != "false"
    report = reconciliation_service.check_invariants(include_events=include_events)
    return jsonify(report), 200
