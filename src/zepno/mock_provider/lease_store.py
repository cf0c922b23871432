"""In-memory lease store with simulated SMS arrival — used by the mock provider."""

from __future__ import annotations

import itertools
import logging
import random
import string
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Seconds after "ready" before the fake SMS shows up
SMS_DELAY_SECONDS = 15

# Mock provider statuses
WAITING = "STATUS_WAIT_CODE"
CANCELED = "STATUS_CANCEL"
RECEIVED = "STATUS_OK"


@dataclass
class MockLease:
    lease_id: str
    service: str
    number: str
    status: str = WAITING
    code: str | None = None
    ready_at: float | None = None
    created_at: float = field(default_factory=time.time)


class LeaseStore:
    """Hands out fake Indian mobile numbers and fabricates an OTP once a
    lease has been marked ready for ``SMS_DELAY_SECONDS``.

    Status is evaluated lazily on access.
    """

    def __init__(self, sms_delay: float = SMS_DELAY_SECONDS) -> None:
        self._leases: dict[str, MockLease] = {}
        self._ids = itertools.count(100000)
        self._sms_delay = sms_delay
        self.balance = 500.0

    def lease(self, service: str) -> MockLease:
        lease_id = str(next(self._ids))
        number = "91" + random.choice("6789") + "".join(random.choices(string.digits, k=9))
        lease = MockLease(lease_id=lease_id, service=service, number=number)
        self._leases[lease_id] = lease
        logger.info("Mock lease %s → %s for %s", lease_id, number, service)
        return lease

    def get(self, lease_id: str) -> MockLease | None:
        lease = self._leases.get(lease_id)
        if lease is not None:
            self._maybe_deliver(lease)
        return lease

    def mark_ready(self, lease_id: str) -> bool:
        lease = self._leases.get(lease_id)
        if lease is None or lease.status != WAITING:
            return False
        lease.ready_at = time.time()
        return True

    def cancel(self, lease_id: str) -> bool:
        lease = self._leases.get(lease_id)
        if lease is None or lease.status != WAITING:
            return False
        lease.status = CANCELED
        logger.info("Mock lease %s canceled", lease_id)
        return True

    def _maybe_deliver(self, lease: MockLease) -> None:
        if lease.status != WAITING or lease.ready_at is None:
            return
        if time.time() - lease.ready_at < self._sms_delay:
            return
        lease.code = "".join(random.choices(string.digits, k=6))
        lease.status = RECEIVED
        logger.info("📩 Mock SMS for lease %s: %s", lease.lease_id, lease.code)
