#!/usr/bin/env python3
"""
Deliver due reminder jobs and sweep for patients with missed vitals.

Usage:
    python scripts/run_reminders.py            # poll forever
    python scripts/run_reminders.py --once     # single pass, e.g. from cron
    python scripts/run_reminders.py --interval 30
"""

import asyncio
import sys
from pathlib import Path

import structlog
import typer

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.cache import close_cache, init_cache  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.db import init_db  # noqa: E402
from app.core.logging import setup_logging  # noqa: E402
from app.modules.reminders.service import ReminderService  # noqa: E402

log = structlog.get_logger()

cli = typer.Typer(add_completion=False)


async def run_pass(service: ReminderService) -> None:
    sent = await service.run_due()
    warned = await service.sweep_missed_vitals()
    log.info("reminders.pass_complete", sent=sent, missed_vitals=warned)


async def main(once: bool, interval: float) -> None:
    client = await init_db()
    await init_cache()
    service = ReminderService()
    try:
        while True:
            try:
                await run_pass(service)
            except Exception as exc:
                if once:
                    raise
                log.error("reminders.pass_failed", error=str(exc), exc_info=True)
            if once:
                break
            await asyncio.sleep(interval)
    finally:
        client.close()
        await close_cache()


@cli.command()
def poll(
    once: bool = typer.Option(False, "--once", help="Run a single pass and exit"),
    interval: float = typer.Option(
        settings.REMINDER_POLL_SECONDS, "--interval", help="Seconds between passes"
    ),
) -> None:
    """Deliver due reminders and warn doctors about missed vitals."""
    setup_logging()
    try:
        asyncio.run(main(once, interval))
    except KeyboardInterrupt:
        log.info("reminders.stopped")


if __name__ == "__main__":
    cli()
