"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from quote_engine.config import settings
from quote_engine.domain.money import format_currency


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


def log_quote_created(request_id: str, lead_id: str, quote_id: str, plan: str, price_total_cents: int) -> None:
    logging.info(
        "Quote created",
        extra={
            "request_id": request_id,
            "lead_id": lead_id,
            "quote_id": quote_id,
            "step": "quote_created",
            "plan": plan,
            "price_total_cents": price_total_cents,
            "price_total": format_currency(price_total_cents),
        },
    )


def log_conversion(request_id: str, lead_id: str, policy_id: str, created: bool, duration_ms: float) -> None:
    """Log structured conversion outcome; a replayed convert shows up as 'existing'"""
    logging.info(
        "Lead conversion completed",
        extra={
            "request_id": request_id,
            "lead_id": lead_id,
            "policy_id": policy_id,
            "step": "conversion_complete",
            "conversion_outcome": "created" if created else "existing",
            "duration_ms": duration_ms,
        },
    )


def log_contract_signed(
    request_id: str,
    contract_id: str,
    lead_id: str,
    policy_id: Optional[str],
    duration_ms: float,
) -> None:
    logging.info(
        "Contract signed",
        extra={
            "request_id": request_id,
            "contract_id": contract_id,
            "lead_id": lead_id,
            "policy_id": policy_id,
            "step": "contract_signed",
            "duration_ms": duration_ms,
        },
    )
