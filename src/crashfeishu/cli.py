"""CLI entry point for the crashfeishu event listener."""

import sys
from contextlib import ExitStack
from pathlib import Path

import click

from crashfeishu import __version__
from crashfeishu.config import load_config, resolve_webhook
from crashfeishu.errors import ConfigError, ProtocolError
from crashfeishu.listener import EventListener
from crashfeishu.logging import setup_logging
from crashfeishu.notifier import FeishuNotifier
from crashfeishu.protocol import EventListenerProtocol


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.option(
    "--program",
    "-p",
    multiple=True,
    help=(
        "Supervisor process name to monitor; use 'group_name:process_name' "
        "for processes in a group. Can be given multiple times. "
        "If not given, all processes are monitored."
    ),
)
@click.option(
    "--webhook",
    "-w",
    default=None,
    help="Feishu webhook URL to push notifications to "
    "(default: $CRASHFEISHU_WEBHOOK).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.version_option(__version__, prog_name="crashfeishu")
def main(
    config: Path | None,
    program: tuple[str, ...],
    webhook: str | None,
    log_level: str | None,
) -> None:
    """Push a Feishu message when processes that are children of
    supervisord transition unexpectedly to the EXITED state.

    Run this as a supervisord [eventlistener] subscribed to
    PROCESS_STATE_EXITED events.
    """
    try:
        cfg = load_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    logger = setup_logging(cfg, level=log_level)

    programs = [*cfg.programs, *program]
    webhook_url = resolve_webhook(webhook, cfg)

    protocol = EventListenerProtocol(sys.stdin.buffer, sys.stdout.buffer)

    with ExitStack() as stack:
        notifier = None
        if webhook_url:
            notifier = stack.enter_context(
                FeishuNotifier(webhook_url, timeout=cfg.notify_timeout)
            )
        else:
            logger.warning(
                "No webhook configured, notifications will not be pushed"
            )

        listener = EventListener(protocol, programs=programs, notifier=notifier)
        try:
            listener.run()
        except ProtocolError as e:
            logger.error("Event listener stopped: %s", e)
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)
