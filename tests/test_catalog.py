"""Tests for the ServiceCatalog."""

from __future__ import annotations

from decimal import Decimal

import pytest

from zepno.errors import CatalogError, ProviderUnavailable, ServiceNotFound
from zepno.services.catalog import DEFAULT_SERVICES, Service, ServiceCatalog, ServiceIcon


class FakePrices:
    def __init__(self, prices=None, error=None):
        self.prices = prices or {}
        self.error = error
        self.calls = 0

    async def fetch_prices(self, country_code):
        self.calls += 1
        if self.error:
            raise self.error
        return self.prices


@pytest.mark.asyncio
async def test_defaults_without_price_source():
    services = await ServiceCatalog().list_services()

    assert [(s.id, s.name, s.price) for s in services] == [
        ("1", "Flipkart", Decimal("20")),
        ("2", "Zepto", Decimal("25")),
    ]
    assert all(s.is_active for s in services)
    assert services[0].icon_asset == "icons/shopping-bag.svg"


@pytest.mark.asyncio
async def test_live_prices_overlay_defaults():
    source = FakePrices({"fl": Decimal("18.50")})
    services = await ServiceCatalog(source).list_services()

    flipkart, zepto = services
    assert flipkart.price == Decimal("18.50")
    assert flipkart.is_active
    # Not offered by the provider right now.
    assert zepto.price == Decimal("25")
    assert not zepto.is_active


@pytest.mark.asyncio
async def test_provider_failure_falls_back_to_defaults():
    source = FakePrices(error=ProviderUnavailable("down"))

    services = await ServiceCatalog(source).list_services()

    assert list(services) == list(DEFAULT_SERVICES)


@pytest.mark.asyncio
async def test_prices_cached_until_ttl():
    source = FakePrices({"fl": Decimal("20"), "zp": Decimal("25")})
    catalog = ServiceCatalog(source, cache_seconds=300)

    await catalog.list_services()
    await catalog.get_service("2")
    assert source.calls == 1

    uncached = ServiceCatalog(source, cache_seconds=0)
    await uncached.list_services()
    await uncached.list_services()
    assert source.calls == 3


@pytest.mark.asyncio
async def test_failed_fetch_backs_off_before_retrying():
    source = FakePrices(error=ProviderUnavailable("down"))
    catalog = ServiceCatalog(source, retry_seconds=30)

    await catalog.list_services()
    await catalog.get_service("1")
    await catalog.get_service("2")

    assert source.calls == 1


@pytest.mark.asyncio
async def test_live_prices_return_after_backoff():
    source = FakePrices(error=ProviderUnavailable("down"))
    catalog = ServiceCatalog(source, retry_seconds=0)
    assert (await catalog.get_service("1")).price == Decimal("20")

    source.error = None
    source.prices = {"fl": Decimal("19")}

    assert (await catalog.get_service("1")).price == Decimal("19")
    assert source.calls == 2

@pytest.mark.asyncio
async def test_get_service_unknown():
    with pytest.raises(ServiceNotFound):
        await ServiceCatalog().get_service("99")


def test_duplicate_ids_rejected():
    dupes = (DEFAULT_SERVICES[0], DEFAULT_SERVICES[0])
    with pytest.raises(CatalogError):
        ServiceCatalog(definitions=dupes)


def test_non_positive_price_rejected():
    free = Service(id="9", name="Free", code="fr", price=Decimal("0"))
    with pytest.raises(CatalogError):
        ServiceCatalog(definitions=(free,))


def test_unknown_icon_rejected():
    odd = Service(id="9", name="Odd", code="od", price=Decimal("5"), icon="rocket")
    with pytest.raises(CatalogError):
        ServiceCatalog(definitions=(odd,))


def test_every_icon_has_an_asset():
    for icon in ServiceIcon:
        Service(id="x", name="x", code="x", price=Decimal("1"), icon=icon).icon_asset
