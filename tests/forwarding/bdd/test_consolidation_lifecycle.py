"""BDD tests for the consolidation state machine and freight payment."""

from forwarding.consolidation.consolidation import Consolidation, freight_cost
from forwarding.package.package import Package
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/consolidation_lifecycle.feature")


def _request(count, weight):
    packages = [
        Package.receive(user_id="user-001", tracking_internal=f"PKG-{i}", weight=weight) for i in range(1, count + 1)
    ]
    return Consolidation.request("user-001", packages)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse("a pending consolidation of {count:d} packages weighing {weight:f} kg each"),
    target_fixture="aggregate",
)
def pending_consolidation(count, weight):
    consolidation = _request(count, weight)
    consolidation._events.clear()
    return consolidation


@given("a shipped consolidation", target_fixture="aggregate")
def shipped_consolidation():
    consolidation = _request(1, 2.0)
    consolidation.start_processing()
    consolidation.dispatch("MT-0")
    consolidation._events.clear()
    return consolidation


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the warehouse starts processing")
def starts_processing(aggregate):
    aggregate.start_processing()


@when(parsers.cfparse('the warehouse dispatches it with master tracking "{master_tracking}"'))
def dispatches(aggregate, master_tracking):
    aggregate.dispatch(master_tracking)


@when(parsers.cfparse('a freight order "{order_id}" is opened'))
def order_opened(aggregate, order_id):
    aggregate.open_payment_order(order_id, None, freight_cost(aggregate.total_weight))


@when(parsers.cfparse('freight for order "{order_id}" is captured with transaction "{transaction_id}"'))
def freight_captured(aggregate, order_id, transaction_id, error):
    try:
        aggregate.record_payment_capture(order_id, transaction_id)
    except ValidationError as exc:
        error["exc"] = exc


@when("the consolidation is released")
def released(aggregate, error):
    try:
        aggregate.release()
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the consolidation is cancelled because "{reason}"'))
def cancelled(aggregate, reason, error):
    try:
        aggregate.cancel(reason)
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the consolidation status is "{status}"'))
def status_is(aggregate, status):
    assert aggregate.status == status


@then(parsers.cfparse("the consolidation weighs {weight:f} kg in {boxes:d} boxes"))
def weighs(aggregate, weight, boxes):
    assert aggregate.total_weight == weight
    assert aggregate.total_boxes == boxes


@then(parsers.cfparse("the freight cost is {amount:f} USD"))
def freight_cost_is(aggregate, amount):
    assert freight_cost(aggregate.total_weight) == amount


@then(parsers.cfparse('the recorded transaction is "{transaction_id}"'))
def recorded_transaction(aggregate, transaction_id):
    assert aggregate.is_paid
    assert aggregate.payment.transaction_id == transaction_id


@then(parsers.cfparse('freight is still "{payment_status}"'))
def payment_status_is(aggregate, payment_status):
    assert aggregate.payment_status == payment_status
    assert aggregate.payment.transaction_id is None
