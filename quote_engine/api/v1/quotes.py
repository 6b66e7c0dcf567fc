"""Quote pricing, reconciliation and contract-status endpoints"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from quote_engine.api.dependencies import get_request_id
from quote_engine.api.errors import not_found_http_error, validation_http_error
from quote_engine.api.v1.schemas import (
    ContractStatusResponse,
    QuoteCreateRequest,
    QuoteDraftSchema,
    QuoteListResponse,
    QuoteResponse,
    ReconcileRequest,
    ReconcileResponse,
)
from quote_engine.domain.exceptions import NotFoundError, ValidationError
from quote_engine.domain.models import PriceEdit, QuoteDraft
from quote_engine.domain.money import format_cents_to_decimal
from quote_engine.domain.pricing import apply_edit, is_consistent
from quote_engine.infrastructure.database.models import Quote
from quote_engine.infrastructure.database.repositories import LeadRepository, QuoteRepository
from quote_engine.infrastructure.database.session import get_db
from quote_engine.infrastructure.observability.logging import log_quote_created
from quote_engine.infrastructure.observability.metrics import quote_created_counter
from quote_engine.services import workflow

router = APIRouter()


def quote_response(quote: Quote) -> QuoteResponse:
    return QuoteResponse(
        id=quote.id,
        lead_id=quote.lead_id,
        plan=quote.plan,
        deductible_cents=quote.deductible_cents,
        term_months=quote.term_months,
        price_monthly_cents=quote.price_monthly_cents,
        price_total_cents=quote.price_total_cents,
        price_monthly=format_cents_to_decimal(quote.price_monthly_cents),
        price_total=format_cents_to_decimal(quote.price_total_cents),
        status=quote.status,
        breakdown=quote.breakdown,
        valid_until=quote.valid_until,
        created_at=quote.created_at,
    )


@router.post("/quotes/reconcile", response_model=ReconcileResponse)
async def reconcile_quote(request_body: ReconcileRequest, request: Request):
    """
    Apply one edit to an in-progress quote draft.

    Stateless: the client holds the draft and sends it back with each edit.
    On invalid input the client keeps its previous draft.
    """
    draft = QuoteDraft(**request_body.draft.model_dump())
    edit = PriceEdit(field=request_body.edit.field, value=request_body.edit.value)

    try:
        updated = apply_edit(draft, edit)
    except ValidationError as e:
        raise validation_http_error(e, get_request_id(request), "Quote edit")

    return ReconcileResponse(
        draft=QuoteDraftSchema(**vars(updated)),
        consistent=is_consistent(updated),
    )


@router.post("/leads/{lead_id}/quotes", response_model=QuoteResponse, status_code=201)
async def create_quote(
    lead_id: uuid.UUID,
    request_body: QuoteCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Price and persist a quote for a lead.

    Total is monthly × term; the quote is valid for a fixed window and the
    lead advances to `quoted`.
    """
    request_id = get_request_id(request)

    try:
        quote = workflow.create_quote(
            db,
            lead_id=lead_id,
            plan=request_body.plan,
            deductible_dollars=request_body.deductible,
            term_months=request_body.term_months,
            price_monthly_dollars=request_body.price_monthly,
            payment_option=request_body.payment_option,
            expiration_miles=request_body.expiration_miles,
        )
        db.commit()

        quote_created_counter.labels(plan=quote.plan).inc()
        log_quote_created(request_id, str(lead_id), str(quote.id), quote.plan, quote.price_total_cents)

        return quote_response(quote)

    except ValidationError as e:
        db.rollback()
        raise validation_http_error(e, request_id, "Quote creation")

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error creating quote: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/leads/{lead_id}/quotes", response_model=QuoteListResponse)
async def list_quotes(lead_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Quotes for a lead, newest first"""
    try:
        LeadRepository(db).require_lead(lead_id)
    except NotFoundError as e:
        raise not_found_http_error(e, get_request_id(request))

    quotes = QuoteRepository(db).list_for_lead(lead_id)
    return QuoteListResponse(lead_id=lead_id, quotes=[quote_response(q) for q in quotes])


@router.get("/quotes/{quote_id}/contract-status", response_model=ContractStatusResponse)
async def get_contract_status(quote_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Status of the most recently created contract for the quote, if any"""
    try:
        contract = workflow.latest_contract_status(db, quote_id)
    except NotFoundError as e:
        raise not_found_http_error(e, get_request_id(request))

    if contract is None:
        return ContractStatusResponse(quote_id=quote_id)

    return ContractStatusResponse(
        quote_id=quote_id,
        contract_id=contract.id,
        status=contract.status,
        signed_at=contract.signed_at,
    )
