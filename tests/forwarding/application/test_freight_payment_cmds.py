"""Application tests for freight payment orders and idempotent capture."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from forwarding.consolidation.consolidation import Consolidation, FreightPaymentStatus
from forwarding.consolidation.creation import group_packages
from forwarding.consolidation.lifecycle import DispatchConsolidation, StartProcessing
from forwarding.consolidation.payment import (
    CaptureFreightPayment,
    capture_freight_payment,
    request_freight_payment,
)
from forwarding.domain import forwarding
from forwarding.errors import InvalidInput, PaymentFailed
from forwarding.gateway import get_gateway
from forwarding.package.intake import ReceivePackage
from protean import current_domain
from protean.exceptions import ValidationError


def _shipped_consolidation(weight=4.0):
    package_id = current_domain.process(
        ReceivePackage(user_id="user-001", tracking_internal="FP-1", weight=weight),
        asynchronous=False,
    )
    consolidation_id = group_packages("user-001", [package_id])
    current_domain.process(StartProcessing(consolidation_id=consolidation_id), asynchronous=False)
    current_domain.process(DispatchConsolidation(consolidation_id=consolidation_id), asynchronous=False)
    return consolidation_id


def _load(consolidation_id):
    return current_domain.repository_for(Consolidation).get(consolidation_id)


def _captured_events():
    messages = current_domain.event_store.store.read("forwarding::consolidation")
    return [
        m
        for m in messages
        if m.metadata and m.metadata.headers and m.metadata.headers.type == "Forwarding.FreightPaymentCaptured.v1"
    ]


class TestRequestPayment:
    def test_order_for_freight_cost(self):
        consolidation_id = _shipped_consolidation(weight=4.0)
        order = request_freight_payment(consolidation_id)
        assert order["amount"] == 60.0
        assert order["currency"] == "USD"
        assert order["approval_url"]
        consolidation = _load(consolidation_id)
        assert consolidation.payment_status == FreightPaymentStatus.AWAITING_CAPTURE.value
        assert consolidation.payment.order_id == order["order_id"]

    def test_open_order_is_reused(self):
        consolidation_id = _shipped_consolidation()
        first = request_freight_payment(consolidation_id)
        second = request_freight_payment(consolidation_id)
        assert first["order_id"] == second["order_id"]
        create_calls = [c for c in get_gateway().calls if c["method"] == "create_order"]
        assert len(create_calls) == 1

    def test_not_before_shipment(self):
        package_id = current_domain.process(
            ReceivePackage(user_id="user-001", tracking_internal="FP-2", weight=1.0),
            asynchronous=False,
        )
        consolidation_id = group_packages("user-001", [package_id])
        with pytest.raises(ValidationError):
            request_freight_payment(consolidation_id)
        assert get_gateway().calls == []

    def test_gateway_order_is_in_usd(self):
        consolidation_id = _shipped_consolidation(weight=2.0)
        request_freight_payment(consolidation_id)
        (call,) = get_gateway().calls
        assert call["currency"] == "USD"
        assert call["amount"] == 30.0
        assert _load(consolidation_id).payment.currency == "USD"


class TestCapture:
    def test_capture_marks_paid(self):
        consolidation_id = _shipped_consolidation()
        order = request_freight_payment(consolidation_id)
        transaction_id = capture_freight_payment(consolidation_id, order["order_id"])

        consolidation = _load(consolidation_id)
        assert consolidation.is_paid
        assert consolidation.payment.transaction_id == transaction_id
        assert consolidation.payment.paid_at is not None

    def test_second_capture_returns_same_transaction_without_gateway(self):
        consolidation_id = _shipped_consolidation()
        order = request_freight_payment(consolidation_id)
        first = capture_freight_payment(consolidation_id, order["order_id"])
        second = current_domain.process(
            CaptureFreightPayment(consolidation_id=consolidation_id, order_id=order["order_id"]),
            asynchronous=False,
        )
        assert first == second
        assert len(get_gateway().capture_calls) == 1

    def test_concurrent_captures_record_one_transaction(self):
        consolidation_id = _shipped_consolidation()
        order_id = request_freight_payment(consolidation_id)["order_id"]

        def attempt(_):
            with forwarding.domain_context():
                return capture_freight_payment(consolidation_id, order_id)

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = set(pool.map(attempt, range(4)))

        assert len(results) == 1
        assert len(get_gateway().capture_calls) == 1
        captured = _captured_events()
        assert len(captured) == 1

    def test_failed_capture_changes_nothing(self):
        consolidation_id = _shipped_consolidation()
        order = request_freight_payment(consolidation_id)
        get_gateway().configure(should_succeed=False, failure_reason="Card declined")

        with pytest.raises(PaymentFailed) as exc:
            capture_freight_payment(consolidation_id, order["order_id"])
        assert exc.value.status_code == 402
        assert exc.value.details["order_id"] == order["order_id"]

        consolidation = _load(consolidation_id)
        assert consolidation.payment_status == FreightPaymentStatus.AWAITING_CAPTURE.value
        assert consolidation.payment.transaction_id is None

    def test_retry_after_failure_succeeds(self):
        consolidation_id = _shipped_consolidation()
        order = request_freight_payment(consolidation_id)
        gateway = get_gateway()
        gateway.configure(should_succeed=False)
        with pytest.raises(PaymentFailed):
            capture_freight_payment(consolidation_id, order["order_id"])

        gateway.configure(should_succeed=True)
        assert capture_freight_payment(consolidation_id, order["order_id"])
        assert _load(consolidation_id).is_paid

    def test_capture_for_another_order_never_reaches_gateway(self):
        consolidation_id = _shipped_consolidation()
        request_freight_payment(consolidation_id)

        with pytest.raises(InvalidInput) as exc:
            capture_freight_payment(consolidation_id, "ORDER-NOT-OURS")
        assert "order_id" in exc.value.messages

        assert get_gateway().capture_calls == []
        consolidation = _load(consolidation_id)
        assert consolidation.payment_status == FreightPaymentStatus.AWAITING_CAPTURE.value
        assert _captured_events() == []

    def test_capture_without_open_order_never_reaches_gateway(self):
        consolidation_id = _shipped_consolidation()

        with pytest.raises(InvalidInput):
            capture_freight_payment(consolidation_id, "ORDER-ANY")

        assert get_gateway().capture_calls == []
        assert _load(consolidation_id).payment_status == FreightPaymentStatus.UNPAID.value
