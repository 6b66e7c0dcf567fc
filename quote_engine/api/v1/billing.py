"""Billing profile and policy charge ledger endpoints"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from quote_engine.api.dependencies import get_request_id
from quote_engine.api.errors import not_found_http_error, validation_http_error
from quote_engine.api.v1.schemas import (
    ChargeCreateRequest,
    ChargeListResponse,
    ChargeResponse,
    ChargeStatusUpdate,
    PaymentProfileRequest,
    PaymentProfileResponse,
)
from quote_engine.domain.exceptions import NotFoundError, ValidationError
from quote_engine.domain.money import format_cents_to_decimal
from quote_engine.infrastructure.database.models import PolicyCharge
from quote_engine.infrastructure.database.repositories import ChargeRepository
from quote_engine.infrastructure.database.session import get_db
from quote_engine.infrastructure.observability.metrics import charge_recorded_counter
from quote_engine.services import workflow

router = APIRouter()


def charge_response(charge: PolicyCharge) -> ChargeResponse:
    return ChargeResponse(
        id=charge.id,
        policy_id=charge.policy_id,
        description=charge.description,
        amount_cents=charge.amount_cents,
        amount=format_cents_to_decimal(charge.amount_cents),
        status=charge.status,
        charged_at=charge.charged_at,
        reference=charge.reference,
        notes=charge.notes,
    )


@router.get("/policies/{policy_id}/payment-profile", response_model=PaymentProfileResponse)
async def get_payment_profile(policy_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        profile = workflow.get_profile(db, policy_id)
    except NotFoundError as e:
        raise not_found_http_error(e, get_request_id(request))

    if profile is None:
        raise HTTPException(
            status_code=404,
            detail={"reason": "NotFound", "message": "Payment profile not found", "field": None},
        )
    return PaymentProfileResponse.model_validate(profile)


@router.put("/policies/{policy_id}/payment-profile", response_model=PaymentProfileResponse)
async def put_payment_profile(
    policy_id: uuid.UUID,
    request_body: PaymentProfileRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Replace the policy's billing profile wholesale"""
    request_id = get_request_id(request)

    try:
        profile = workflow.upsert_profile(db, policy_id, request_body.model_dump())
        db.commit()

        logging.info(
            "Payment profile saved",
            extra={"request_id": request_id, "policy_id": str(policy_id), "autopay": profile.autopay_enabled},
        )
        return PaymentProfileResponse.model_validate(profile)

    except ValidationError as e:
        db.rollback()
        raise validation_http_error(e, request_id, "Payment profile update")

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error saving payment profile: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/policies/{policy_id}/charges", response_model=ChargeListResponse)
async def list_charges(policy_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Charges for a policy, most recent first"""
    try:
        charges = workflow.list_charges(db, policy_id)
    except NotFoundError as e:
        raise not_found_http_error(e, get_request_id(request))

    return ChargeListResponse(policy_id=policy_id, charges=[charge_response(c) for c in charges])


@router.post("/policies/{policy_id}/charges", response_model=ChargeResponse, status_code=201)
async def record_charge(
    policy_id: uuid.UUID,
    request_body: ChargeCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Record a charge reported by the billing collaborator"""
    request_id = get_request_id(request)

    try:
        charge = workflow.record_charge(
            db,
            policy_id,
            description=request_body.description,
            amount_cents=request_body.amount_cents,
            status=request_body.status,
            charged_at=request_body.charged_at,
            reference=request_body.reference,
            notes=request_body.notes,
        )
        db.commit()

        charge_recorded_counter.labels(status=charge.status).inc()
        logging.info(
            "Charge recorded",
            extra={
                "request_id": request_id,
                "policy_id": str(policy_id),
                "charge_id": str(charge.id),
                "amount_cents": charge.amount_cents,
                "status": charge.status,
            },
        )
        return charge_response(charge)

    except ValidationError as e:
        db.rollback()
        raise validation_http_error(e, request_id, "Charge")

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error recording charge: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.patch("/charges/{charge_id}", response_model=ChargeResponse)
async def update_charge_status(
    charge_id: uuid.UUID,
    request_body: ChargeStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Store a status reported by the billing collaborator; no transition rules are enforced"""
    request_id = get_request_id(request)

    try:
        charge_repo = ChargeRepository(db)
        charge = charge_repo.update_status(charge_repo.require_charge(charge_id), request_body.status)
        db.commit()

        logging.info(
            "Charge status updated",
            extra={"request_id": request_id, "charge_id": str(charge_id), "status": charge.status},
        )
        return charge_response(charge)

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error updating charge: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
