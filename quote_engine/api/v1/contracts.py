"""Contract issuance, signing and void endpoints"""

import time
import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from quote_engine.api.dependencies import get_event_publisher, get_request_id
from quote_engine.api.errors import not_found_http_error, validation_http_error
from quote_engine.api.v1.policies import policy_event_payload
from quote_engine.api.v1.schemas import (
    ContractCreateRequest,
    ContractResponse,
    ContractSignRequest,
    PolicyResponse,
    SignResponse,
)
from quote_engine.domain.exceptions import NotFoundError, ValidationError
from quote_engine.domain.models import Address, FileSource, SignatureInput
from quote_engine.infrastructure.clients.events import CONTRACT_SENT, CONTRACT_SIGNED, POLICY_CONVERTED, EventPublisher
from quote_engine.infrastructure.database.repositories import ContractRepository
from quote_engine.infrastructure.database.session import get_db
from quote_engine.infrastructure.observability.logging import log_contract_signed
from quote_engine.infrastructure.observability.metrics import record_conversion, record_sign_attempt
from quote_engine.services import workflow

router = APIRouter()


def signature_from_request(body: ContractSignRequest) -> SignatureInput:
    return SignatureInput(
        signature_name=body.signature_name,
        signature_email=body.signature_email,
        consent=body.consent,
        payment_method=body.payment_method,
        payment_card_number=body.payment_card_number,
        payment_cvv=body.payment_cvv,
        payment_exp_month=body.payment_exp_month,
        payment_exp_year=body.payment_exp_year,
        payment_notes=body.payment_notes,
        billing=Address(
            line1=body.billing_address_line1,
            line2=body.billing_address_line2,
            city=body.billing_city,
            state=body.billing_state,
            postal_code=body.billing_postal_code,
            country=body.billing_country,
        ),
        shipping=Address(
            line1=body.shipping_address_line1,
            line2=body.shipping_address_line2,
            city=body.shipping_city,
            state=body.shipping_state,
            postal_code=body.shipping_postal_code,
            country=body.shipping_country,
        ),
        shipping_same_as_billing=body.shipping_same_as_billing,
    )


@router.post("/leads/{lead_id}/contracts", response_model=ContractResponse, status_code=201)
async def create_contract(
    lead_id: uuid.UUID,
    request_body: ContractCreateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    """Issue a contract for one of the lead's quotes, ready for signature"""
    request_id = get_request_id(request)

    try:
        source = FileSource(
            file_data=request_body.file_data,
            file_name=request_body.file_name,
            file_type=request_body.file_type,
            use_placeholder=request_body.use_placeholder,
        )
        contract = workflow.create_contract(db, lead_id, request_body.quote_id, source)

        payload = {"contract_id": str(contract.id), "lead_id": str(lead_id), "quote_id": str(contract.quote_id)}
        event_id = publisher.record(db, CONTRACT_SENT, payload)
        db.commit()

        background_tasks.add_task(publisher.deliver, event_id, CONTRACT_SENT, payload)
        logging.info(
            "Contract sent",
            extra={"request_id": request_id, "contract_id": str(contract.id), "lead_id": str(lead_id)},
        )
        return ContractResponse.model_validate(contract)

    except ValidationError as e:
        db.rollback()
        raise validation_http_error(e, request_id, "Contract creation")

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error creating contract: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
async def get_contract(contract_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        contract = ContractRepository(db).require_contract(contract_id)
    except NotFoundError as e:
        raise not_found_http_error(e, get_request_id(request))

    return ContractResponse.model_validate(contract)


@router.post("/contracts/{contract_id}/sign", response_model=SignResponse)
async def sign_contract(
    contract_id: uuid.UUID,
    request_body: ContractSignRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_event_publisher),
):
    """
    Sign a sent contract and convert its lead.

    Flow:
    1. Validate consent, signer, card and addresses (nothing written on failure)
    2. Move the contract sent → signed with a conditional update
    3. Convert the lead from the signed quote through the idempotent path
    4. Seed the billing profile from the masked card if none exists
    5. Commit, then deliver contract.signed (and policy.converted when new)
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = workflow.sign_contract(
            db,
            contract_id,
            signature_from_request(request_body),
            signature_ip=request.client.host if request.client else None,
            signature_user_agent=request.headers.get("user-agent"),
        )
        contract = result.contract
        policy = result.policy

        events = []
        signed_payload = {
            "contract_id": str(contract.id),
            "lead_id": str(contract.lead_id),
            "quote_id": str(contract.quote_id),
            "policy_id": str(policy.id),
        }
        events.append((publisher.record(db, CONTRACT_SIGNED, signed_payload), CONTRACT_SIGNED, signed_payload))
        if result.policy_created:
            converted_payload = policy_event_payload(policy)
            events.append(
                (publisher.record(db, POLICY_CONVERTED, converted_payload), POLICY_CONVERTED, converted_payload)
            )

        db.commit()

        for event_id, event_type, payload in events:
            background_tasks.add_task(publisher.deliver, event_id, event_type, payload)

        duration_ms = (time.time() - start_time) * 1000
        record_sign_attempt(True)
        record_conversion("created" if result.policy_created else "existing")
        log_contract_signed(request_id, str(contract.id), str(contract.lead_id), str(policy.id), duration_ms)

        return SignResponse(
            contract=ContractResponse.model_validate(contract),
            policy=PolicyResponse.model_validate(policy),
            policy_created=result.policy_created,
        )

    except ValidationError as e:
        db.rollback()
        record_sign_attempt(False, e.reason.value)
        raise validation_http_error(e, request_id, "Contract signature")

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error signing contract: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/contracts/{contract_id}/void", response_model=ContractResponse)
async def void_contract(contract_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Withdraw an unsigned contract; signed contracts cannot be voided"""
    request_id = get_request_id(request)

    try:
        contract = workflow.void_contract(db, contract_id)
        db.commit()

        logging.info("Contract voided", extra={"request_id": request_id, "contract_id": str(contract.id)})
        return ContractResponse.model_validate(contract)

    except ValidationError as e:
        db.rollback()
        raise validation_http_error(e, request_id, "Contract void")

    except NotFoundError as e:
        db.rollback()
        raise not_found_http_error(e, request_id)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error voiding contract: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
