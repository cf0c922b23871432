"""Tests for the SessionOrchestrator — purchase, poll and cancel flows."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from zepno.errors import InsufficientBalance, NoNumbersAvailable, ProviderUnavailable
from zepno.models.otp_session import SessionStatus
from zepno.models.transaction import TransactionType
from zepno.services.catalog import Service, ServiceCatalog
from zepno.services.orchestrator import SessionOrchestrator
from zepno.services.sms_provider import (
    STATUS_CANCEL,
    STATUS_READY,
    Acknowledgement,
    Lease,
    PollState,
    SmsActivateClient,
    StatusPoll,
)
from zepno.services.wallet import WalletLedger

FLIPKART = "1"  # ₹20 in the default catalog


@pytest.fixture
def provider():
    """Mocked provider client — never touches the network."""
    mock = AsyncMock(spec=SmsActivateClient)
    mock.lease_number.return_value = Lease("9001", "919812345678")
    mock.set_status.return_value = Acknowledgement("ACCESS_READY")
    mock.poll_status.return_value = StatusPoll(PollState.WAITING)
    return mock


@pytest_asyncio.fixture
async def orchestrator(db_session, provider):
    return SessionOrchestrator(
        db_session=db_session,
        provider=provider,
        catalog=ServiceCatalog(),
        country_code="22",
    )


# ──────────────────────────────────────────────────────────
# Purchase
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_purchase_with_exact_balance(orchestrator, provider, make_user):
    user = await make_user("20")

    result = await orchestrator.purchase(user.id, FLIPKART)

    assert result.success, result.error
    session = result.data
    assert session.id == "9001"
    assert session.session_token == "9001"
    assert session.number == "919812345678"
    assert session.status is SessionStatus.PENDING

    ledger = orchestrator.ledger(user.id)
    assert await ledger.get_balance() == 0
    [txn] = await ledger.list_transactions()
    assert txn.type is TransactionType.DEBIT
    assert txn.amount == Decimal("20")
    assert "Flipkart" in txn.purpose

    provider.lease_number.assert_awaited_once_with("fl", "22")
    provider.set_status.assert_awaited_once_with("9001", STATUS_READY)


@pytest.mark.asyncio
async def test_purchase_insufficient_balance_makes_no_provider_call(
    orchestrator, provider, make_user
):
    user = await make_user("10")

    result = await orchestrator.purchase(user.id, FLIPKART)

    assert not result.success
    assert result.error_code == InsufficientBalance.code
    provider.lease_number.assert_not_awaited()
    provider.set_status.assert_not_awaited()
    ledger = orchestrator.ledger(user.id)
    assert await ledger.get_balance() == Decimal("10")
    assert await ledger.list_transactions() == []


@pytest.mark.asyncio
async def test_purchase_no_numbers_does_not_debit(orchestrator, provider, make_user):
    user = await make_user("100")
    provider.lease_number.side_effect = NoNumbersAvailable("none", raw="NO_NUMBERS")

    result = await orchestrator.purchase(user.id, FLIPKART)

    assert not result.success
    assert result.error_code == "NO_NUMBERS"
    assert await orchestrator.ledger(user.id).get_balance() == Decimal("100")
    assert (await orchestrator.list_sessions(user.id)).data == []


@pytest.mark.asyncio
async def test_debit_failure_after_lease_cancels_number(orchestrator, provider, make_user):
    user = await make_user("100")

    with patch.object(
        WalletLedger, "debit", AsyncMock(side_effect=InsufficientBalance("drained"))
    ):
        result = await orchestrator.purchase(user.id, FLIPKART)

    assert not result.success
    assert result.error_code == InsufficientBalance.code
    provider.set_status.assert_awaited_once_with("9001", STATUS_CANCEL)
    assert (await orchestrator.list_sessions(user.id)).data == []


@pytest.mark.asyncio
async def test_purchase_unknown_service(orchestrator, provider, make_user):
    user = await make_user("100")

    result = await orchestrator.purchase(user.id, "404")

    assert not result.success
    assert result.error_code == "SERVICE_NOT_FOUND"
    provider.lease_number.assert_not_awaited()


@pytest.mark.asyncio
async def test_purchase_unknown_user(orchestrator, provider):
    result = await orchestrator.purchase("ghost", FLIPKART)

    assert not result.success
    assert result.error_code == "USER_NOT_FOUND"
    provider.lease_number.assert_not_awaited()


@pytest.mark.asyncio
async def test_ready_signal_failure_is_not_fatal(orchestrator, provider, make_user):
    user = await make_user("50")
    provider.set_status.side_effect = ProviderUnavailable("down")

    result = await orchestrator.purchase(user.id, FLIPKART)

    assert result.success
    assert await orchestrator.ledger(user.id).get_balance() == Decimal("30")


@pytest.mark.asyncio
async def test_unrecorded_session_leaves_wallet_untouched_and_releases_lease(
    orchestrator, provider, make_user
):
    first = await make_user("100")
    second = await make_user("100")
    first_id, second_id = first.id, second.id
    # Provider hands out an id that is already on record.
    provider.lease_number.return_value = Lease("100000", "919800000000")
    assert (await orchestrator.purchase(first_id, FLIPKART)).success
    provider.reset_mock()

    result = await orchestrator.purchase(second_id, FLIPKART)

    assert not result.success
    assert result.error_code == "SESSION_NOT_RECORDED"
    provider.set_status.assert_awaited_once_with("100000", STATUS_CANCEL)
    ledger = orchestrator.ledger(second_id)
    assert await ledger.get_balance() == Decimal("100.00")
    assert await ledger.list_transactions() == []
    assert (await orchestrator.list_sessions(second_id)).data == []
    assert await orchestrator.ledger(first_id).get_balance() == Decimal("80.00")


@pytest.mark.asyncio
async def test_fractional_price_exact_balance(db_session, provider, make_user):
    catalog = ServiceCatalog(definitions=(Service("9", "Paise", "pz", Decimal("0.20")),))
    orchestrator = SessionOrchestrator(db_session, provider, catalog, "22")
    user = await make_user("0.30")
    await orchestrator.ledger(user.id).debit(Decimal("0.10"), "earlier")

    result = await orchestrator.purchase(user.id, "9")

    assert result.success, result.error
    assert await orchestrator.ledger(user.id).get_balance() == 0


# ──────────────────────────────────────────────────────────
# Refresh / cancel
# ──────────────────────────────────────────────────────────
@pytest_asyncio.fixture
async def pending(orchestrator, provider, make_user):
    user = await make_user("20")
    result = await orchestrator.purchase(user.id, FLIPKART)
    provider.reset_mock()
    return result.data


@pytest.mark.asyncio
async def test_refresh_code_received(orchestrator, provider, pending):
    provider.poll_status.return_value = StatusPoll(PollState.CODE_RECEIVED, "483920")

    result = await orchestrator.refresh(pending.id)

    assert result.success
    assert result.data.status is SessionStatus.SUCCESS
    assert result.data.otp == "483920"


@pytest.mark.asyncio
async def test_refresh_still_waiting(orchestrator, provider, pending):
    result = await orchestrator.refresh(pending.id)

    assert result.success
    assert result.data.status is SessionStatus.PENDING
    assert result.data.otp is None


@pytest.mark.asyncio
async def test_refresh_provider_canceled(orchestrator, provider, pending):
    provider.poll_status.return_value = StatusPoll(PollState.CANCELED)

    result = await orchestrator.refresh(pending.id)

    assert result.data.status is SessionStatus.CANCELED


@pytest.mark.asyncio
async def test_refresh_provider_down_keeps_session(orchestrator, provider, pending):
    provider.poll_status.side_effect = ProviderUnavailable("timeout")

    result = await orchestrator.refresh(pending.id)

    assert not result.success
    assert result.error_code == "PROVIDER_UNAVAILABLE"
    assert result.data.status is SessionStatus.PENDING


@pytest.mark.asyncio
async def test_cancel_then_poll_is_rejected(orchestrator, provider, pending):
    result = await orchestrator.cancel(pending.id)

    assert result.success
    assert result.data.status is SessionStatus.CANCELED
    provider.set_status.assert_awaited_once_with(pending.id, STATUS_CANCEL)

    poll = await orchestrator.refresh(pending.id)
    assert not poll.success
    assert poll.error_code == "SESSION_TERMINAL"
    assert poll.data.status is SessionStatus.CANCELED
    provider.poll_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_after_success_is_rejected(orchestrator, provider, pending):
    provider.poll_status.return_value = StatusPoll(PollState.CODE_RECEIVED, "111222")
    await orchestrator.refresh(pending.id)

    result = await orchestrator.cancel(pending.id)

    assert not result.success
    assert result.data.otp == "111222"
    provider.set_status.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_provider_failure_leaves_pending(orchestrator, provider, pending):
    provider.set_status.side_effect = ProviderUnavailable("down")

    result = await orchestrator.cancel(pending.id)

    assert not result.success
    assert result.data.status is SessionStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_session(orchestrator):
    refresh = await orchestrator.refresh("missing")
    cancel = await orchestrator.cancel("missing")
    lookup = await orchestrator.get_session("missing")

    assert refresh.error_code == cancel.error_code == lookup.error_code == "SESSION_NOT_FOUND"
    assert refresh.data is None
