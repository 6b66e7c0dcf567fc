"""Domain-specific exceptions"""

from enum import Enum
from typing import Optional


class ValidationReason(str, Enum):
    """Field-level reasons attached to a ValidationError"""

    MISSING_PAYMENT_DETAILS = "MissingPaymentDetails"
    INVALID_CARD_NUMBER = "InvalidCardNumber"
    INVALID_CVV = "InvalidCvv"
    INVALID_EXPIRY = "InvalidExpiry"
    INCOMPLETE_ADDRESS = "IncompleteAddress"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_TERM = "InvalidTerm"
    MISSING_CONSENT = "MissingConsent"
    MISSING_SIGNATURE_NAME = "MissingSignatureName"
    MISSING_SIGNATURE_EMAIL = "MissingSignatureEmail"
    MISSING_DOCUMENT = "MissingDocument"
    INVALID_DOCUMENT = "InvalidDocument"
    CONTRACT_NOT_SIGNABLE = "ContractNotSignable"
    CONTRACT_NOT_VOIDABLE = "ContractNotVoidable"


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Malformed or missing input; the caller re-prompts"""

    def __init__(self, reason: ValidationReason, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"reason": self.reason.value, "message": self.message, "field": self.field}


class InvalidAmountError(ValidationError):
    """Money input could not be parsed"""

    def __init__(self, raw: object, field: Optional[str] = None):
        super().__init__(
            ValidationReason.INVALID_AMOUNT,
            f"Enter a valid amount (got {raw!r})",
            field=field,
        )


class ConflictError(DomainException):
    """Idempotence collision, resolved by returning the existing resource"""

    def __init__(self, message: str, existing: object = None):
        super().__init__(message)
        self.existing = existing


class NotFoundError(DomainException):
    """Lead, quote, contract, policy or charge does not exist"""

    def __init__(self, resource: str, identifier: object):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.identifier = identifier


class EventDeliveryError(DomainException):
    """Outbound event could not be delivered after all retries"""

    pass
