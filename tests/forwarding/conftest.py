import pytest
from forwarding.gateway import reset_gateway
from forwarding.protection.pricing import reset_fee_schedule
from forwarding.protection.quoting import reset_quote_service
from forwarding.rates import reset_rate_source
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def forwarding_bed():
    from forwarding.domain import forwarding

    bed = DomainFixture(forwarding)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(forwarding_bed):
    with forwarding_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _reset_adapters():
    """Fresh fake gateway, rate source and quote cache for every test."""
    reset_gateway()
    reset_rate_source()
    reset_quote_service()
    reset_fee_schedule()
    yield
    reset_gateway()
    reset_rate_source()
    reset_quote_service()
    reset_fee_schedule()
