# Overview: Shared-secret endpoint for the external scheduler.

from flask import Blueprint, jsonify

from ..decorators import require_cron_secret
from ..services import jobs_service

cron_bp = Blueprint("cron", __name__, url_prefix="/api/cron")


@cron_bp.route("", methods=["GET", "POST"])
@require_cron_secret
def run_cron_route():
    """Authorization: Bearer <CRON_SECRET>. Runs supplier sync then low-stock alerts."""
    return jsonify(jobs_service.run_scheduled_job())
