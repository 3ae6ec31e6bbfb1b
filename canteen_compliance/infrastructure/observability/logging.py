"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from canteen_compliance.domain.models import ExecutedBy, SweepResult


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "canteen-compliance"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_sweep(result: SweepResult, executed_by: ExecutedBy, execution_id: Optional[str] = None) -> None:
    """Log structured sweep outcome for analysis"""
    logging.getLogger("canteen_compliance.sweep").info(
        "Sweep finished",
        extra={
            "execution_id": execution_id,
            "executed_by": executed_by.value,
            "step": "sweep_complete",
            "outcome": result.status.value,
            "processed_count": result.processed_count,
            "flag_updates": result.flag_updates,
            "deducted_count": result.deducted_count,
            "points_deducted": result.points_deducted,
            "suspended_count": len(result.suspended_students),
            "banned_count": len(result.banned_students),
            "error_count": len(result.errors),
            "duration_ms": result.duration_seconds * 1000,
        },
    )
