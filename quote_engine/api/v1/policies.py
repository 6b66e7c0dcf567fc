"""POST /v1/leads/{lead_id}/convert - idempotent lead → policy conversion"""

import time
import logging
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from quote_engine.api.dependencies import get_event_publisher, get_request_id
from quote_engine.api.errors import not_found_http_error, validation_http_error
from quote_engine.api.v1.schemas import ConversionRequest, ConversionResponse, PolicyResponse
from quote_engine.domain.exceptions import NotFoundError, ValidationError
from quote_engine.domain.models import PolicyFormInput
from quote_engine.domain.money import dollars_to_cents
from quote_engine.infrastructure.clients.events import POLICY_CONVERTED, EventPublisher
from quote_engine.infrastructure.database.repositories import LeadRepository, PolicyRepository
from quote_engine.infrastructure.database.session import get_db
from quote_engine.infrastructure.observability.logging import log_conversion
from quote_engine.infrastructure.observability.metrics import record_conversion
from quote_engine.services import workflow

router = APIRouter()


def _cents(value: Optional[Decimal], field: str) -> Optional[int]:
    return dollars_to_cents(value, field=field) if value is not None else None


def form_from_request(body: ConversionRequest) -> PolicyFormInput:
    return PolicyFormInput(
        package=body.package,
        policy_start_date=body.policy_start_date,
        expiration_date=body.expiration_date,
        expiration_date_manually_set=body.expiration_date_manually_set,
        expiration_miles=body.expiration_miles,
        deductible_cents=_cents(body.deductible, "deductible"),
        total_premium_cents=_cents(body.total_premium, "totalPremium"),
        down_payment_cents=_cents(body.down_payment, "downPayment"),
        monthly_payment_cents=_cents(body.monthly_payment, "monthlyPayment"),
        total_payments=body.total_payments,
        payment_option=body.payment_option,
    )


def policy_event_payload(policy) -> dict:
    return {
        "policy_id": str(policy.id),
        "lead_id": str(policy.lead_id),
        "package": policy.package,
        "payment_option": policy.payment_option,
        "total_premium_cents": policy.total_premium_cents,
    }


@router.post("/leads/{lead_id}/convert", response_model=ConversionResponse)
async def convert_lead(
    lead_id: uuid.UUID,
    request_body: ConversionRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    """
    Convert a lead into a policy.

    Flow:
    1. Return the existing policy if the lead is already converted (200)
    2. Validate payment schedule and derive defaults
    3. Insert the policy under the one-per-lead constraint (201)
    4. Record a policy.converted event and deliver it after commit

    Any number of concurrent or repeated calls yield exactly one policy row.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        lead = LeadRepository(db).require_lead(lead_id)
        result = workflow.convert_lead(db, lead, form_from_request(request_body))

        event_id = None
        payload = policy_event_payload(result.policy)
        if result.created:
            event_id = publisher.record(db, POLICY_CONVERTED, payload)

        db.commit()

        if event_id is not None:
            background_tasks.add_task(publisher.deliver, event_id, POLICY_CONVERTED, payload)

        duration_ms = (time.time() - start_time) * 1000
        record_conversion("created" if result.created else "existing")
        log_conversion(request_id, str(lead_id), str(result.policy.id), result.created, duration_ms)

        response.status_code = 201 if result.created else 200
        return ConversionResponse(
            policy=PolicyResponse.model_validate(result.policy),
            created=result.created,
        )

    except ValidationError as e:
        db.rollback()
        record_conversion("rejected")
        raise validation_http_error(e, request_id, "Conversion")

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error converting lead: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(policy_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        policy = PolicyRepository(db).require_policy(policy_id)
    except NotFoundError as e:
        raise not_found_http_error(e, get_request_id(request))

    return PolicyResponse.model_validate(policy)
