"""Console entrypoint: one message per stdin line, one JSON reply per stdout line."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, tzinfo

from lumine.app import create_app
from lumine.assistant import handle_message
from lumine.config.logging import configure_logging
from lumine.config.settings import load_settings

logger = logging.getLogger(__name__)


def _parse_now(value: str | None, tz: tzinfo) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)


async def run(sender: str, now: str | None) -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    app = create_app(settings)
    await app.open()
    try:
        for line in sys.stdin:
            text = line.strip()
            if not text:
                continue
            reply = await handle_message(text, sender, app, now=_parse_now(now, settings.tz))
            print(reply.model_dump_json(exclude_none=True), flush=True)
    finally:
        logger.info("shutting down")
        await app.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the assistant over stdin/stdout.")
    parser.add_argument("--sender", default="local", help="Sender id used to scope transactions.")
    parser.add_argument(
        "--now",
        default=None,
        help="Fixed ISO timestamp to resolve relative dates against (default: current time).",
    )
    args = parser.parse_args()
    asyncio.run(run(args.sender, args.now))


if __name__ == "__main__":
    main()
