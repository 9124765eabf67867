"""AWS Config custom rule entry point (periodic trigger)."""
import logging
import os

from .config import AuditConfig
from .job import run_audit

logger = logging.getLogger(__name__)


def configure_logging(name: str) -> None:
    level = logging.getLevelName(name.strip().upper())
    logging.getLogger("stale_a_records").setLevel(level if isinstance(level, int) else logging.INFO)
    if not isinstance(level, int):
        logger.warning("unknown LOG_LEVEL %r, using INFO", name)


def lambda_handler(event, context=None, sess=None):
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    config = AuditConfig.from_event(event)
    logger.info("auditing account %s for rule %s", config.account_id, config.rule_name)
    # zone listing and inventory errors propagate and fail the invocation
    report = run_audit(config, sess=sess)
    return report.to_dict()
