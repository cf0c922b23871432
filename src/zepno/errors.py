"""Exception hierarchy shared by the provider client, ledger and orchestrator."""

from __future__ import annotations


class ZepnoError(Exception):
    """Base exception for Zepno.

    ``code`` is a stable machine-readable identifier that is surfaced to
    API clients alongside the human-readable message; ``status_code`` is
    the HTTP status used when the error reaches the API layer.
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ── Provider ─────────────────────────────────────────────

class ProviderError(ZepnoError):
    code = "PROVIDER_ERROR"
    status_code = 502


class ProviderUnavailable(ProviderError):
    """Network failure, timeout or non-2xx HTTP response from the provider."""

    code = "PROVIDER_UNAVAILABLE"
    status_code = 503


class ProviderSentinelError(ProviderError):
    """The provider answered with a sentinel the caller did not expect."""

    code = "PROVIDER_SENTINEL"

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class NoNumbersAvailable(ProviderSentinelError):
    code = "NO_NUMBERS"


class InsufficientProviderBalance(ProviderSentinelError):
    code = "NO_BALANCE"


class InvalidCredentials(ProviderSentinelError):
    code = "BAD_KEY"


class ProviderServerError(ProviderSentinelError):
    code = "ERROR_SQL"


# ── Ledger ───────────────────────────────────────────────

class InsufficientBalance(ZepnoError):
    code = "INSUFFICIENT_BALANCE"
    status_code = 402


class InvalidAmount(ZepnoError):
    code = "INVALID_AMOUNT"
    status_code = 422


class UserNotFound(ZepnoError):
    code = "USER_NOT_FOUND"
    status_code = 404


# ── Sessions / catalog ───────────────────────────────────

class SessionNotFound(ZepnoError):
    code = "SESSION_NOT_FOUND"
    status_code = 404


class SessionAlreadyTerminal(ZepnoError):
    """Attempt to move a session out of ``success`` or ``canceled``."""

    code = "SESSION_TERMINAL"
    status_code = 409


class ServiceNotFound(ZepnoError):
    code = "SERVICE_NOT_FOUND"
    status_code = 404


class ServiceUnavailable(ZepnoError):
    code = "SERVICE_UNAVAILABLE"
    status_code = 409


class CatalogError(ZepnoError):
    code = "CATALOG_INVALID"


class SessionPersistenceError(ZepnoError):
    """The purchase could not be recorded; nothing was charged."""

    code = "SESSION_NOT_RECORDED"


# ── Payments ─────────────────────────────────────────────

class WebhookSignatureInvalid(ZepnoError):
    code = "WEBHOOK_SIGNATURE_INVALID"
    status_code = 400


class PaymentGatewayError(ZepnoError):
    code = "PAYMENT_GATEWAY_ERROR"
    status_code = 502


class WebhookPayloadInvalid(ZepnoError):
    code = "WEBHOOK_PAYLOAD_INVALID"
    status_code = 400
