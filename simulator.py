"""Interactive CLI simulator — buy a number and watch for the OTP without a browser.

Runs the app (with the mock SMS provider) in the background and drives
the orchestrator directly.  Run ``seed.py`` first.
"""

import asyncio
import os

os.environ.setdefault("SMS_ACTIVATE_API_KEY", "mock-key")
os.environ.setdefault(
    "SMS_ACTIVATE_BASE_URL",
    "http://127.0.0.1:8000/mock/sms-activate/stubs/handler_api.php",
)

from zepno.config import settings  # noqa: E402
from zepno.database.engine import async_session_factory, init_db  # noqa: E402
from zepno.errors import UserNotFound  # noqa: E402
from zepno.services.catalog import ServiceCatalog  # noqa: E402
from zepno.services.orchestrator import SessionOrchestrator  # noqa: E402
from zepno.services.poller import SessionPoller  # noqa: E402
from zepno.services.sms_provider import SmsActivateClient  # noqa: E402

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"

DEFAULT_USER = "11111111-1111-1111-1111-111111111111"


async def main() -> None:
    print(f"\n{BOLD}{'=' * 52}")
    print(f"  📱  {settings.app_name} — OTP Simulator")
    print(f"{'=' * 52}{RESET}\n")

    await init_db()

    # ── Start the app (and its mock provider) in the background ─
    import uvicorn
    from zepno.main import app

    config = uvicorn.Config(app, host="127.0.0.1", port=8000, log_level="warning")
    server = uvicorn.Server(config)
    server_task = asyncio.create_task(server.serve())
    await asyncio.sleep(0.5)

    provider = SmsActivateClient(
        api_key=settings.sms_activate_api_key,
        base_url=settings.sms_activate_base_url,
        timeout=settings.provider_timeout_seconds,
    )
    catalog = ServiceCatalog(provider, country_code=settings.sms_country_code)

    print(f"{DIM}Commands: list | buy <service_id> | balance | quit{RESET}\n")
    user_id = input(f"{YELLOW}User id [{DEFAULT_USER}]: {RESET}").strip() or DEFAULT_USER

    while True:
        try:
            command = input(f"{BLUE}{BOLD}>{RESET} ").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if not command:
            continue
        if command == "quit":
            print(f"{DIM}Goodbye!{RESET}")
            break

        async with async_session_factory() as db:
            orchestrator = SessionOrchestrator(
                db, provider, catalog, country_code=settings.sms_country_code
            )

            if command == "list":
                for svc in await catalog.list_services():
                    flag = "" if svc.is_active else f" {DIM}(unavailable){RESET}"
                    print(f"  {svc.id}. {svc.name} — ₹{svc.price}{flag}")
                continue

            if command == "balance":
                try:
                    balance = await orchestrator.ledger(user_id).get_balance()
                except UserNotFound as exc:
                    print(f"{RED}✗ {exc.message}{RESET}")
                    continue
                print(f"  Wallet: ₹{balance}")
                continue

            if command.startswith("buy "):
                result = await orchestrator.purchase(user_id, command.split(maxsplit=1)[1])
                if not result.success:
                    print(f"{RED}✗ {result.error}{RESET}\n")
                    continue

                session = result.data
                print(f"{GREEN}✓ Number {session.number} (lease {session.id}){RESET}")
                print(f"{DIM}Waiting for OTP, Ctrl-C to cancel…{RESET}")

                def show(update) -> None:
                    line = f"  status: {update.status.value}"
                    if update.otp:
                        line += f"  OTP: {BOLD}{update.otp}{RESET}"
                    print(line)

                poller = SessionPoller(
                    orchestrator,
                    session.id,
                    interval=settings.poll_interval_seconds,
                    on_update=show,
                )
                poller.start()
                try:
                    await poller.wait()
                except asyncio.CancelledError:
                    await poller.stop()
                    cancel = await orchestrator.cancel(session.id)
                    print(f"{YELLOW}Canceled: {cancel.success}{RESET}")
                print()
                continue

            print(f"{DIM}Unknown command{RESET}")

    server.should_exit = True
    await server_task


if __name__ == "__main__":
    asyncio.run(main())
