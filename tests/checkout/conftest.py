import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()


@pytest.fixture()
def gateway():
    """A fresh FakeGateway installed as the active gateway."""
    from checkout.payment.gateway import set_gateway
    from checkout.payment.gateway.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def shipping_address():
    return {
        "first_name": "Asha",
        "last_name": "Verma",
        "address_line_1": "14 MG Road",
        "address_line_2": "Flat 3B",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "phone": "9876543210",
    }
