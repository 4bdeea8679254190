"""Command-line entry point and interactive command loop."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import click

from .client import RtmClient
from .config import DEFAULT_BACKEND, RtmConfig
from .errors import RtmClientError, RtmConnectionError, RtmResolutionError
from .http import DEFAULT_API_URL
from .session import DEFAULT_CONNECT_TIMEOUT
from .ws_client import TRANSPORTS

_LOGGER = logging.getLogger(__name__)

COMMAND_SEND = "s"
COMMAND_INFO = "i"
COMMAND_QUIT = "q"


def run_command_loop(client: RtmClient, lines: Iterable[str]) -> None:
    """Dispatch one-letter commands until ``q`` or end of input.

    ``s`` sends the canned message, ``i`` prints the connection state.
    """
    for line in lines:
        command = line.strip()
        if command == COMMAND_QUIT:
            break
        if command == COMMAND_SEND:
            click.echo("Sending message ...")
            try:
                message = client.send_canned()
            except RtmClientError as err:
                click.echo(f"ERROR - {err}", err=True)
            else:
                _LOGGER.debug("Queued message %d", message.id)
        elif command == COMMAND_INFO:
            state = client.connection.state.value if client.connection else "disconnected"
            click.echo(f"Connection state: {state}")


@click.command()
@click.option("--token", envvar="SLACK_TOKEN", help="Slack token for rtm.connect.")
@click.option(
    "--url",
    "endpoint_url",
    envvar="WEBSOCKET_SERVER_URL",
    help="Known WebSocket URL; skips rtm.connect.",
)
@click.option(
    "--port",
    envvar="WEBSOCKET_SERVER_PORT",
    type=click.IntRange(1, 65535),
    help="Override the WebSocket port.",
)
@click.option(
    "--backend",
    envvar="BACKEND",
    type=click.Choice(sorted(TRANSPORTS), case_sensitive=False),
    default=DEFAULT_BACKEND,
    show_default=True,
    help="WebSocket library to use.",
)
@click.option(
    "--channel",
    envvar="SLACK_CHANNEL",
    default="",
    help="Channel for the canned message sent with 's'.",
)
@click.option("--api-url", default=DEFAULT_API_URL, show_default=True, hidden=True)
@click.option(
    "--connect-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_CONNECT_TIMEOUT,
    show_default=True,
    help="Seconds to wait for the socket to open.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(
    token: str | None,
    endpoint_url: str | None,
    port: int | None,
    backend: str,
    channel: str,
    api_url: str,
    connect_timeout: float,
    verbose: bool,
) -> None:
    """Connect to Slack RTM and thumbs-up every channel message.

    Type 's' to send a canned message, 'i' to show the connection state and
    'q' to quit.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not token and not endpoint_url:
        raise click.UsageError("Missing SLACK_TOKEN (or WEBSOCKET_SERVER_URL)")

    config = RtmConfig(
        token=token,
        endpoint_url=endpoint_url,
        port=port,
        backend=backend.lower(),
        api_url=api_url,
        connect_timeout=connect_timeout,
        channel=channel,
    )
    client = RtmClient(config)

    try:
        client.start()
    except RtmResolutionError as err:
        click.echo(f"ERROR - Cannot resolve RTM endpoint: {err}", err=True)
        raise SystemExit(1) from err
    except RtmConnectionError as err:
        cause = f" ({err.__cause__})" if err.__cause__ else ""
        click.echo(f"ERROR - Cannot connect: {err}{cause}", err=True)
        raise SystemExit(1) from err

    click.echo("Connected. Commands: s = send, i = info, q = quit")
    try:
        with click.open_file("-") as stdin:
            run_command_loop(client, stdin)
    finally:
        click.echo("Exiting ...")
        client.stop()
    click.echo("Bye")
