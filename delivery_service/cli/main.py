"""Main CLI entry point for delivery-service management commands."""

import click

from delivery_service.cli.commands import delivery, server
from delivery_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="delivery-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Notification delivery service CLI.

    \b
    Command Groups:
      delivery   Outbox processing, retention and inspection
      serve      Run the API, realtime socket and worker

    \b
    Quick Start:
      delivery-service serve
      delivery-service delivery depth
      delivery-service delivery process --adapter push
    """
    ctx.ensure_object(dict)


cli.add_command(delivery.delivery)
cli.add_command(server.serve)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
