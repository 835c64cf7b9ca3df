"""Error taxonomy for the forwarding domain.

Input and conflict errors are Protean ``ValidationError`` subclasses carrying a
field -> messages dict, so they roll back the unit of work like any other
validation failure. External failures (exchange-rate lookup, payment gateway)
carry a plain message and the details the caller needs to retry.

Every error declares a ``kind`` and the HTTP status the API layer maps it to.
"""

from protean.exceptions import ValidationError


class ForwardingValidationError(ValidationError):
    """Base for input and conflict errors raised by forwarding components."""

    kind = "invalid_input"
    status_code = 400

    @property
    def message(self) -> str:
        messages = self.messages if isinstance(self.messages, dict) else {"error": [str(self.messages)]}
        return "; ".join(str(msg) for msgs in messages.values() for msg in msgs)


class InvalidInput(ForwardingValidationError):
    """Bad numeric or missing required input. Fixed by correcting the input."""


class EmptySelection(ForwardingValidationError):
    kind = "empty_selection"


class PackageAlreadyGrouped(ForwardingValidationError):
    """A package is not eligible for grouping: already in a consolidation or not received."""

    kind = "package_already_grouped"
    status_code = 409


class PolicyAlreadyActive(ForwardingValidationError):
    """The package is already protected by an active GEX policy."""

    kind = "policy_already_active"
    status_code = 409


class ExternalServiceError(Exception):
    """A collaborator outside this core failed. Safe to retry."""

    kind = "external_service_error"
    status_code = 502

    def __init__(self, message: str, **details) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class RateUnavailable(ExternalServiceError):
    kind = "rate_unavailable"
    status_code = 503


class PaymentFailed(ExternalServiceError):
    """Gateway declined the charge or could not be reached. Never mutates state."""

    kind = "payment_failed"
    status_code = 402
