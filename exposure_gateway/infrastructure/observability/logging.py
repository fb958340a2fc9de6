"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from exposure_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


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


def log_scenario(request_id: str, user_id: str, loan_id: str, scenario_types: list, duration_ms: float) -> None:
    """Log a completed what-if analysis"""
    logging.info(
        "Scenario analysis completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "loan_id": loan_id,
            "step": "scenario_complete",
            "scenario_types": scenario_types,
            "duration_ms": duration_ms,
        },
    )


def log_match(
    request_id: str,
    user_id: str,
    requested_amount: str,
    recommended_facility_id: Optional[str],
    candidates: int,
    duration_ms: float,
) -> None:
    """Log facility matcher outcome"""
    logging.info(
        "Facility match completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "match_complete",
            "requested_amount": requested_amount,
            "match_outcome": "matched" if recommended_facility_id else "no_suitable_facility",
            "recommended_facility_id": recommended_facility_id,
            "candidates": candidates,
            "duration_ms": duration_ms,
        },
    )


def log_replay(request_id: str, user_id: str, loans: int, transactions: int, duration_ms: float) -> None:
    """Log a settlement replay over one or more loans"""
    logging.info(
        "Settlement replay completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "replay_complete",
            "loans": loans,
            "transactions": transactions,
            "duration_ms": duration_ms,
        },
    )


def log_repayment(request_id: str, user_id: str, loan_id: str, amount: str, status: str) -> None:
    """Log an appended repayment and the loan status it produced"""
    logging.info(
        "Repayment recorded",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "loan_id": loan_id,
            "step": "repayment_recorded",
            "amount": amount,
            "loan_status": status,
        },
    )
