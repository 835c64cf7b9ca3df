"""BDD tests for the customer-facing GEX warranty wizard."""

import pytest
from forwarding.errors import ExternalServiceError
from forwarding.package.package import Package
from forwarding.protection.quoting import QuoteService
from forwarding.protection.wizard import WarrantyFlow
from forwarding.rates.fake_adapter import FakeRateSource
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/warranty_wizard.feature")


@pytest.fixture()
def rate_source():
    return FakeRateSource()


@pytest.fixture()
def submissions():
    """Attachment requests the wizard handed over."""
    return []


@pytest.fixture()
def flow():
    return {"wizard": None}


def _attempt(error, action):
    try:
        action()
    except (ValidationError, ExternalServiceError) as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a received package "{tracking}" declared at {value:f} USD'),
    target_fixture="package",
)
def received_package(tracking, value):
    return Package.receive(user_id="user-001", tracking_internal=tracking, weight=2.0, declared_value_usd=value)


@given(parsers.cfparse("the exchange rate is {rate:f}"))
def exchange_rate(rate_source, rate):
    rate_source.configure(rate=rate)


@given("the package is already protected")
def already_protected(package):
    package.attach_gex("GEX-2026-00001", 1000.0)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the customer opens the warranty wizard")
def opens_wizard(package, rate_source, submissions, flow, error):
    def submit(**request):
        submissions.append(request)
        return "policy-001"

    def _open():
        flow["wizard"] = WarrantyFlow(package, QuoteService(rate_source), submit=submit)

    _attempt(error, _open)


@when(parsers.cfparse('the customer describes the contents as "{description}"'))
def describes(flow, description):
    flow["wizard"].set_description(description)


@when("the customer clears the description")
def clears_description(flow):
    flow["wizard"].set_description("")


@when("the customer continues")
def continues(flow, error):
    _attempt(error, flow["wizard"].next)


@when("the customer goes back")
def goes_back(flow, error):
    _attempt(error, flow["wizard"].back)


@when("the customer reads and accepts the policy terms")
def reads_and_accepts(flow):
    flow["wizard"].mark_policy_scrolled_to_end()
    flow["wizard"].accept_policies()


@when("the customer accepts the policy terms without reading them")
def accepts_unread(flow, error):
    _attempt(error, flow["wizard"].accept_policies)


@when("the customer signs")
def signs(flow):
    flow["wizard"].capture_signature("data:image/png;base64,iVBORw0KGgo=")


@when(parsers.cfparse('the customer chooses to "{option}"'))
def chooses(flow, option):
    flow["wizard"].choose_payment_option(option)


@when("the customer submits")
def submits(flow, error):
    _attempt(error, flow["wizard"].submit)


@when("the exchange rate becomes unavailable")
def rate_unavailable(rate_source):
    rate_source.configure(available=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the wizard is on the "{step}" step'))
def wizard_on_step(flow, step):
    assert flow["wizard"].step.value == step


@then(parsers.cfparse('the policy was submitted with payment option "{option}"'))
def submitted_with(submissions, flow, option):
    assert len(submissions) == 1
    assert submissions[0]["payment_option"] == option
    assert submissions[0]["accepted_at"] is not None
    assert flow["wizard"].policy_id == "policy-001"


@then(parsers.cfparse("the quoted premium is {amount:f} MXN"))
def quoted_premium(flow, amount):
    assert flow["wizard"].draft.quote.as_display()["total_cost_mxn"] == amount


@then(parsers.cfparse('the draft description is "{description}"'))
def draft_description(flow, description):
    assert flow["wizard"].draft.description == description


@then("the draft shows a quote error")
def draft_quote_error(flow):
    assert flow["wizard"].draft.quote_error
