"""Service catalog — static defaults overlaid with live provider prices."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Protocol

from zepno.errors import CatalogError, ProviderError, ServiceNotFound

logger = logging.getLogger(__name__)


class ServiceIcon(str, enum.Enum):
    SHOPPING_BAG = "shopping-bag"
    SHOPPING_CART = "shopping-cart"
    MESSAGE_CIRCLE = "message-circle"


# Fixed asset per icon; the front-end ships these files.
ICON_ASSETS: dict[ServiceIcon, str] = {
    ServiceIcon.SHOPPING_BAG: "icons/shopping-bag.svg",
    ServiceIcon.SHOPPING_CART: "icons/shopping-cart.svg",
    ServiceIcon.MESSAGE_CIRCLE: "icons/message-circle.svg",
}


@dataclass(frozen=True)
class Service:
    """A purchasable OTP service."""

    id: str
    name: str
    code: str
    price: Decimal
    is_active: bool = True
    description: str | None = None
    icon: ServiceIcon = ServiceIcon.MESSAGE_CIRCLE

    @property
    def icon_asset(self) -> str:
        return ICON_ASSETS[self.icon]


DEFAULT_SERVICES: tuple[Service, ...] = (
    Service(
        id="1",
        name="Flipkart",
        code="fl",
        price=Decimal("20"),
        description="Receive OTP for Flipkart account verification",
        icon=ServiceIcon.SHOPPING_BAG,
    ),
    Service(
        id="2",
        name="Zepto",
        code="zp",
        price=Decimal("25"),
        description="Receive OTP for Zepto account verification",
        icon=ServiceIcon.SHOPPING_CART,
    ),
)


class PriceSource(Protocol):
    async def fetch_prices(self, country_code: str) -> dict[str, Decimal]: ...


class ServiceCatalog:
    """Lists services, refreshing prices from the provider at most every
    ``cache_seconds``.

    With no *price_source* the static definitions are served unchanged.
    When the provider fails the defaults are served and cached for
    ``retry_seconds`` before another fetch is attempted.
    """

    def __init__(
        self,
        price_source: PriceSource | None = None,
        country_code: str = "22",
        cache_seconds: float = 300,
        retry_seconds: float = 30,
        definitions: tuple[Service, ...] = DEFAULT_SERVICES,
    ) -> None:
        _validate_definitions(definitions)
        self._source = price_source
        self._country = country_code
        self._cache_seconds = cache_seconds
        self._retry_seconds = retry_seconds
        self._definitions = definitions
        self._cached: tuple[Service, ...] | None = None
        self._expires_at = 0.0

    async def list_services(self) -> list[Service]:
        if self._source is None:
            return list(self._definitions)

        now = time.monotonic()
        if self._cached is not None and now < self._expires_at:
            return list(self._cached)

        try:
            prices = await self._source.fetch_prices(self._country)
        except ProviderError as exc:
            logger.warning(
                "Price fetch failed, serving default catalog for %ss: %s",
                self._retry_seconds,
                exc,
            )
            self._cached = self._definitions
            self._expires_at = now + self._retry_seconds
            return list(self._cached)

        self._cached = tuple(
            replace(
                svc,
                price=prices.get(svc.code) or svc.price,
                is_active=svc.code in prices,
            )
            for svc in self._definitions
        )
        self._expires_at = now + self._cache_seconds
        return list(self._cached)

    async def get_service(self, service_id: str) -> Service:
        for svc in await self.list_services():
            if svc.id == service_id:
                return svc
        raise ServiceNotFound(f"Service {service_id} not found")


def _validate_definitions(definitions: tuple[Service, ...]) -> None:
    seen: set[str] = set()
    for svc in definitions:
        if svc.id in seen:
            raise CatalogError(f"Duplicate service id {svc.id!r}")
        seen.add(svc.id)
        if not isinstance(svc.icon, ServiceIcon) or svc.icon not in ICON_ASSETS:
            raise CatalogError(f"Service {svc.name!r} has no icon asset for {svc.icon!r}")
        if svc.price <= 0:
            raise CatalogError(f"Service {svc.name!r} has non-positive price {svc.price}")
