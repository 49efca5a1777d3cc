import os

import pytest

TEST_SECRET = "souk-sales-test-secret"


@pytest.fixture(scope="session")
def _sales_domain(request):
    """Initialize the sales domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from sales.domain import sales

    sales.init()
    return sales


@pytest.fixture(scope="session", autouse=True)
def setup_db(_sales_domain):
    from sales.utils.db import drop_db, setup_db

    setup_db(_sales_domain)

    yield

    drop_db(_sales_domain)


@pytest.fixture()
def cipher():
    from sales.security import FieldCipher

    return FieldCipher.from_secret(TEST_SECRET)


@pytest.fixture(autouse=True)
def run_around_tests(_sales_domain, cipher):
    """Push domain context and install the test cipher before each test, cleanup after."""
    from sales.security import reset_cipher, set_cipher

    set_cipher(cipher)
    ctx = _sales_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()
    reset_cipher()


@pytest.fixture()
def order_payload():
    """Keyword arguments for ``Order.place`` describing a valid checkout."""

    def _payload(**overrides):
        payload = {
            "customer": {"first_name": "Amina", "last_name": "Benali", "phone": "+212600112233"},
            "email": "amina.benali@example.ma",
            "address": {
                "street": "12 Rue Tarik Ibn Ziad",
                "city": "Casablanca",
                "state": "Casablanca-Settat",
                "postal_code": "20000",
            },
            "items_data": [
                {
                    "product_id": "prod-argan-100",
                    "name": {"en": "Argan oil 100ml", "fr": "Huile d'argan 100ml"},
                    "sku": "ARG-100",
                    "quantity": 2,
                    "unit_price": 100.0,
                    "total_price": 200.0,
                }
            ],
            "tax": 10.0,
            "shipping": 20.0,
            "discount": 5.0,
            "consent_given": True,
            "ip_address": "196.200.10.1",
            "user_agent": "pytest",
        }
        payload.update(overrides)
        return payload

    return _payload
