#!/usr/bin/env python3
"""Terminal chat client for the chat relay.

Usage:
    python chat_cli.py --relay-url https://example.execute-api.aws/prod \
        --first-name Ann --last-name Lee

Type a line to send it, ``/leave`` to end the chat and ``/quit`` to exit.
RELAY_API_URL and LOG_LEVEL may be set in the environment or a .env file.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from controllers.session_controller import SessionController
from controllers.session_events import SessionEventSink
from models.session_models import SessionStatus
from services.errors import ValidationError
from services.relay_client import RelayClient
from utils.settings import ClientSettings


class ConsoleEventSink(SessionEventSink):
    """Print the chat log and status changes to stdout."""

    def __init__(self, stream=None) -> None:
        self.stream = stream or sys.stdout

    def _write(self, line: str) -> None:
        print(line, file=self.stream, flush=True)

    def on_status_change(self, status: SessionStatus) -> None:
        self._write(f"-- {status.value} --")

    def on_message(self, sender: str, text: str) -> None:
        self._write(f"{sender}: {text}")

    def on_sending_changed(self, enabled: bool) -> None:
        if not enabled:
            self._write("-- sending disabled --")

    def on_reset(self) -> None:
        self._write("")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with an agent through the relay.")
    parser.add_argument("--relay-url", help="Relay API base URL (defaults to RELAY_API_URL)")
    parser.add_argument("--first-name", help="Visitor first name")
    parser.add_argument("--last-name", help="Visitor last name")
    parser.add_argument("--participant-token", help="Rejoin an existing chat with this token")
    return parser.parse_args(argv)


async def _read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def run(args: argparse.Namespace) -> int:
    settings = ClientSettings.from_env(args.relay_url)
    controller = SessionController(
        RelayClient(settings.relay_api_url),
        ConsoleEventSink(),
        refresh_margin=settings.refresh_margin_seconds,
    )
    try:
        first = args.first_name or await _read_line("First name: ")
        last = args.last_name or await _read_line("Last name: ")
        try:
            await controller.start(first, last, participant_token=args.participant_token)
        except ValidationError as exc:
            print(exc.detail, file=sys.stderr)
            return 2

        while True:
            try:
                line = await _read_line("")
            except EOFError:
                break
            command = line.strip()
            if command == "/quit":
                break
            if command == "/leave":
                await controller.leave()
                break
            await controller.send(line)
    finally:
        await controller.close()
    return 0


def main(argv=None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
