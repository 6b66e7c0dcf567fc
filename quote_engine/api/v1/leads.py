"""Lead intake, pipeline stage and notes endpoints"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from quote_engine.api.dependencies import get_request_id
from quote_engine.api.errors import not_found_http_error
from quote_engine.api.v1.schemas import (
    LeadCreateRequest,
    LeadResponse,
    NoteRequest,
    NoteResponse,
    StageUpdateRequest,
    VehicleSchema,
)
from quote_engine.domain.exceptions import NotFoundError
from quote_engine.domain.models import LeadStage
from quote_engine.infrastructure.database.models import Lead, Policy
from quote_engine.infrastructure.database.repositories import LeadRepository, PolicyRepository
from quote_engine.infrastructure.database.session import get_db

router = APIRouter()


def lead_response(lead: Lead, policy: Optional[Policy]) -> LeadResponse:
    return LeadResponse(
        id=lead.id,
        first_name=lead.first_name,
        last_name=lead.last_name,
        email=lead.email,
        phone=lead.phone,
        zip=lead.zip,
        state=lead.state,
        stage=LeadStage(lead.stage),
        vehicle=VehicleSchema.model_validate(lead.vehicle) if lead.vehicle is not None else None,
        policy_id=policy.id if policy is not None else None,
        created_at=lead.created_at,
    )


@router.post("/leads", response_model=LeadResponse, status_code=201)
async def create_lead(request_body: LeadCreateRequest, request: Request, db: Session = Depends(get_db)):
    request_id = get_request_id(request)

    try:
        fields = request_body.model_dump(exclude={"vehicle"}, exclude_none=True)
        if fields.get("email"):
            fields["email"] = fields["email"].strip().lower()
        vehicle = request_body.vehicle.model_dump() if request_body.vehicle is not None else None

        lead = LeadRepository(db).create_lead(vehicle=vehicle, **fields)
        db.commit()
        db.refresh(lead)

        logging.info("Lead created", extra={"request_id": request_id, "lead_id": str(lead.id)})
        return lead_response(lead, None)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error creating lead: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/leads/{lead_id}", response_model=LeadResponse)
async def get_lead(lead_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        lead = LeadRepository(db).require_lead(lead_id)
    except NotFoundError as e:
        raise not_found_http_error(e, get_request_id(request))

    return lead_response(lead, PolicyRepository(db).get_by_lead(lead.id))


@router.patch("/leads/{lead_id}/stage", response_model=LeadResponse)
async def update_stage(
    lead_id: uuid.UUID,
    request_body: StageUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Operator override: any stage or disposition may be set explicitly"""
    request_id = get_request_id(request)

    try:
        lead_repo = LeadRepository(db)
        lead = lead_repo.require_lead(lead_id)
        previous = lead.stage
        lead_repo.set_stage(lead, request_body.stage)
        db.commit()

        logging.info(
            "Lead stage updated",
            extra={"request_id": request_id, "lead_id": str(lead.id), "from": previous, "to": lead.stage},
        )
        return lead_response(lead, PolicyRepository(db).get_by_lead(lead.id))

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error updating stage: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/leads/{lead_id}/notes", response_model=NoteResponse, status_code=201)
async def add_note(
    lead_id: uuid.UUID,
    request_body: NoteRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    request_id = get_request_id(request)

    try:
        lead_repo = LeadRepository(db)
        lead = lead_repo.require_lead(lead_id)
        note = lead_repo.add_note(lead, request_body.content.strip())
        db.commit()
        return NoteResponse.model_validate(note)

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error adding note: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
