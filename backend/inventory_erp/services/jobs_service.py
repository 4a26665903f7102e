# Overview: The scheduled maintenance job: supplier sync followed by the low-stock scan.

from __future__ import annotations

import logging

from ..time_utils import to_utc_z, utcnow
from .alert_service import check_and_alert
from .sync_service import sync_all

logger = logging.getLogger(__name__)


def run_scheduled_job(*, client=None, notifier=None) -> dict:
    """
    Run sync_all() then check_and_alert(); both report per-item outcomes
    instead of raising, so one bad supplier or mailbox never stops the job.
    """
    started = utcnow()
    logger.info("Scheduled job started")

    sync_results = sync_all(client=client)
    alert_results = check_and_alert(notifier=notifier)

    logger.info(
        "Scheduled job finished: %d synced (%d failed), %d alerts (%d failed)",
        len(sync_results), sum(1 for r in sync_results if not r.success),
        len(alert_results), sum(1 for r in alert_results if not r.success),
    )
    return {
        "sync_results": [r.to_dict() for r in sync_results],
        "alert_results": [r.to_dict() for r in alert_results],
        "timestamp": to_utc_z(started),
    }
