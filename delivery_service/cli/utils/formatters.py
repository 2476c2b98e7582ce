"""Output formatting utilities for CLI commands."""

import click


def success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    click.secho(f"✗ {message}", fg="red", err=True)


def warning(message: str) -> None:
    click.secho(f"⚠ {message}", fg="yellow")


def info(message: str) -> None:
    click.secho(f"ℹ {message}", fg="blue")


def header(message: str) -> None:
    click.secho(f"\n{message}", fg="cyan", bold=True)


def key_values(rows: dict[str, object], indent: int = 2) -> None:
    """Print aligned ``key: value`` lines."""
    if not rows:
        return
    width = max(len(key) for key in rows)
    pad = " " * indent
    for key, value in rows.items():
        click.echo(f"{pad}{key.ljust(width)}  {value}")
