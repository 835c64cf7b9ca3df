"""Warranty attachment wizard — the customer-facing GEX flow for one package.

    FORM → POLICIES → SIGNATURE → PAYMENT → SUCCESS

Moves are driven by the ``_TRANSITIONS`` table: (step, event) → (next step,
guard). A move missing from the table, or whose guard fails, is rejected with
a ``ValidationError`` and leaves the wizard where it was. ``back`` only returns
to the immediately preceding step, and nothing goes back from SUCCESS.

The wizard keeps all entered data across failures: a rate outage or a declined
submission leaves the draft intact on the step where it happened.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError

from forwarding.errors import ExternalServiceError, InvalidInput, PolicyAlreadyActive, RateUnavailable
from forwarding.protection.policy import PaymentOption
from forwarding.protection.pricing import is_positive_amount


class WizardStep(Enum):
    FORM = "form"
    POLICIES = "policies"
    SIGNATURE = "signature"
    PAYMENT = "payment"
    SUCCESS = "success"


@dataclass
class WarrantyDraft:
    """Everything the customer has entered so far."""

    declared_value_usd: float | None = None
    description: str = ""
    policy_scrolled_to_end: bool = False
    accepted_at: datetime | None = None
    signature: str | None = None
    payment_option: PaymentOption = PaymentOption.PAY_WITH_SHIPMENT
    quote: object = None
    quote_error: str | None = None
    errors: dict = field(default_factory=dict)


def _form_complete(draft: WarrantyDraft) -> dict:
    errors = {}
    if not is_positive_amount(draft.declared_value_usd):
        errors["declared_value_usd"] = ["Declared value must be greater than zero"]
    if not draft.description.strip():
        errors["description"] = ["Description is required"]
    return errors


def _policies_accepted(draft: WarrantyDraft) -> dict:
    if draft.accepted_at is None:
        return {"accepted_at": ["Read and accept the policy terms to continue"]}
    return {}


def _signed(draft: WarrantyDraft) -> dict:
    if not draft.signature:
        return {"signature": ["Sign to continue"]}
    return {}


def _always(draft: WarrantyDraft) -> dict:  # noqa: ARG001
    return {}


_TRANSITIONS = {
    (WizardStep.FORM, "next"): (WizardStep.POLICIES, _form_complete),
    (WizardStep.POLICIES, "next"): (WizardStep.SIGNATURE, _policies_accepted),
    (WizardStep.SIGNATURE, "next"): (WizardStep.PAYMENT, _signed),
    (WizardStep.PAYMENT, "submit"): (WizardStep.SUCCESS, _signed),
    (WizardStep.POLICIES, "back"): (WizardStep.FORM, _always),
    (WizardStep.SIGNATURE, "back"): (WizardStep.POLICIES, _always),
    (WizardStep.PAYMENT, "back"): (WizardStep.SIGNATURE, _always),
}


class WarrantyFlow:
    """One customer's pass through the wizard for ``package``.

    ``submit`` is called with the attachment request on the final step and
    returns the policy id; it defaults to the in-process attachment command.
    """

    def __init__(self, package, quote_service, submit=None) -> None:
        if package.has_gex:
            raise PolicyAlreadyActive({"package_id": [f"Package {package.tracking_internal} is already protected"]})

        if submit is None:
            from forwarding.protection.attachment import attach_warranty

            submit = attach_warranty

        self.package = package
        self.quote_service = quote_service
        self._submit = submit
        self.step = WizardStep.FORM
        self.draft = WarrantyDraft(
            declared_value_usd=package.declared_value_usd,
            description=package.description or "",
        )
        self.policy_id: str | None = None
        self.last_error: Exception | None = None
        if self.draft.declared_value_usd:
            self._requote()

    # -------------------------------------------------------------------
    # Data entry
    # -------------------------------------------------------------------
    def _requote(self) -> None:
        try:
            self.draft.quote = self.quote_service.get_quote(self.draft.declared_value_usd)
            self.draft.quote_error = None
        except RateUnavailable as exc:
            self.draft.quote = None
            self.draft.quote_error = exc.message

    def set_declared_value(self, value: float | None) -> None:
        self._require_step(WizardStep.FORM)
        self.draft.declared_value_usd = value
        self._requote()

    def set_description(self, description: str) -> None:
        self._require_step(WizardStep.FORM)
        self.draft.description = description or ""

    def mark_policy_scrolled_to_end(self) -> None:
        self._require_step(WizardStep.POLICIES)
        self.draft.policy_scrolled_to_end = True

    def accept_policies(self) -> None:
        self._require_step(WizardStep.POLICIES)
        if not self.draft.policy_scrolled_to_end:
            raise ValidationError({"accepted_at": ["Scroll to the end of the policy before accepting"]})
        self.draft.accepted_at = datetime.now(UTC)

    def capture_signature(self, signature: str | None) -> None:
        self._require_step(WizardStep.SIGNATURE)
        self.draft.signature = signature or None

    def choose_payment_option(self, option) -> None:
        self._require_step(WizardStep.PAYMENT)
        try:
            self.draft.payment_option = PaymentOption(option)
        except ValueError:
            raise InvalidInput({"payment_option": [f"Unknown payment option: {option}"]})

    # -------------------------------------------------------------------
    # Moves
    # -------------------------------------------------------------------
    def _require_step(self, step: WizardStep) -> None:
        if self.step != step:
            raise ValidationError({"step": [f"Not available on the {self.step.value} step"]})

    def _move(self, event: str) -> WizardStep:
        try:
            target, guard = _TRANSITIONS[(self.step, event)]
        except KeyError:
            raise ValidationError({"step": [f"Cannot {event} from the {self.step.value} step"]})

        errors = guard(self.draft)
        self.draft.errors = errors
        if errors:
            raise ValidationError(errors)
        return target

    def next(self) -> WizardStep:
        target = self._move("next")
        if target == WizardStep.PAYMENT:
            # The premium shown on the payment step comes from a fresh rate
            try:
                self.quote_service.refresh_rate()
            except RateUnavailable as exc:
                self.draft.quote_error = exc.message
                raise
            self._requote()
            if self.draft.quote is None:
                raise RateUnavailable(self.draft.quote_error or "No quote available")
        self.step = target
        return self.step

    def back(self) -> WizardStep:
        self.step = self._move("back")
        return self.step

    def submit(self) -> str:
        """Attach the policy. On failure the wizard stays on PAYMENT."""
        target = self._move("submit")
        try:
            self.policy_id = self._submit(
                package_id=str(self.package.id),
                user_id=str(self.package.user_id),
                declared_value_usd=self.draft.declared_value_usd,
                description=self.draft.description,
                signature=self.draft.signature,
                accepted_at=self.draft.accepted_at,
                payment_option=self.draft.payment_option.value,
            )
        except (ValidationError, ExternalServiceError) as exc:
            self.last_error = exc
            raise

        self.last_error = None
        self.step = target
        return self.policy_id
