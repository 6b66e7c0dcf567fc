"""Mapping of domain failures onto HTTP errors"""

import logging
from typing import Optional

from fastapi import HTTPException

from quote_engine.domain.exceptions import NotFoundError, ValidationError, ValidationReason

# Missing payment terms are well-formed JSON that cannot be processed yet
_UNPROCESSABLE = {ValidationReason.MISSING_PAYMENT_DETAILS}


def validation_http_error(e: ValidationError, request_id: str, operation: str) -> HTTPException:
    logging.warning(
        f"{operation} rejected: {e.message}",
        extra={"request_id": request_id, "reason": e.reason.value, "field": e.field},
    )
    status_code = 422 if e.reason in _UNPROCESSABLE else 400
    return HTTPException(status_code=status_code, detail=e.to_dict())


def not_found_http_error(e: NotFoundError, request_id: Optional[str] = None) -> HTTPException:
    logging.info(f"{e.resource} lookup failed", extra={"request_id": request_id, "identifier": str(e.identifier)})
    return HTTPException(status_code=404, detail={"reason": "NotFound", "message": str(e), "field": None})
