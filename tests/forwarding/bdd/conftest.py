"""Shared BDD fixtures and step definitions for the forwarding domain."""

import pytest
from forwarding.errors import ExternalServiceError
from protean.exceptions import ValidationError
from pytest_bdd import parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured errors."""
    return {"exc": None}


def _ids(text: str) -> list[str]:
    return [part.strip() for part in text.split(",") if part.strip()]


@pytest.fixture()
def split_ids():
    return _ids


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then("the action fails with a validation error")
def action_fails_with_validation_error(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then("the action fails with an external service error")
def action_fails_with_external_error(error):
    assert error["exc"] is not None, "Expected an external service error but none was raised"
    assert isinstance(error["exc"], ExternalServiceError)


@then(parsers.cfparse("a {event_type} event is raised"))
def event_raised(aggregate, event_type):
    names = [type(e).__name__ for e in aggregate._events]
    assert event_type in names, f"No {event_type} event found. Events: {names}"


@then(parsers.cfparse("exactly {count:d} {event_type} event is raised"))
def event_raised_exactly(aggregate, count, event_type):
    names = [type(e).__name__ for e in aggregate._events]
    assert names.count(event_type) == count, f"Events: {names}"
