import os
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before any domain module is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Seeding helpers shared by application, bdd and integration tests
# ---------------------------------------------------------------------------
@pytest.fixture()
def register_user():
    from protean import current_domain
    from storefront.identity.registration import RegisterUser

    counter = {"n": 0}

    def _register(username=None):
        counter["n"] += 1
        return current_domain.process(
            RegisterUser(username=username or f"shopper-{counter['n']}", email="shopper@example.com"),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def add_product():
    from protean import current_domain
    from storefront.catalogue.registration import AddProduct

    def _add(name="Laptop", price="100.00", stock=10, availability=True):
        return current_domain.process(
            AddProduct(name=name, price=Decimal(price), stock=stock, availability=availability),
            asynchronous=False,
        )

    return _add


@pytest.fixture()
def register_deal_type():
    from protean import current_domain
    from storefront.pricing.registration import RegisterDealType

    def _register(name, strategy):
        return current_domain.process(RegisterDealType(name=name, strategy=strategy), asynchronous=False)

    return _register


@pytest.fixture()
def create_deal():
    from protean import current_domain
    from storefront.pricing.registration import CreateDeal

    def _create(product_id, deal_type_id, expires_at=None, **terms):
        expires_at = expires_at or datetime.now(UTC) + timedelta(days=7)
        for key in ("discount_percent", "discount_amount"):
            if terms.get(key) is not None:
                terms[key] = Decimal(str(terms[key]))
        return current_domain.process(
            CreateDeal(product_id=product_id, deal_type_id=deal_type_id, expires_at=expires_at, **terms),
            asynchronous=False,
        )

    return _create
