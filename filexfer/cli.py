#!/usr/bin/env python3
"""
filexfer CLI

Command-line interface for sending and receiving single files.

Usage:
    filexfer send ADDRESS PORT PATH     # Send a file
    filexfer receive PORT               # Receive files until interrupted
"""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from .config import load_config
from .transfer import TransferSession, TransferError, BindError, serve

console = Console()
err_console = Console(stderr=True)

PORT = click.IntRange(1, 65535)


def setup_logging(level: str = 'INFO', verbose: bool = False):
    """Configure logging with rich output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)]
    )


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='JSON config file')
@click.pass_context
def cli(ctx, verbose, config_path):
    """Send a single file to a receiver, or receive files on a port."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}")
    setup_logging(config.log_level, verbose)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.argument('address')
@click.argument('port', type=PORT)
@click.argument('path', type=click.Path(dir_okay=False))
@click.pass_context
def send(ctx, address, port, path):
    """Send the file at PATH to ADDRESS:PORT."""
    config = ctx.obj['config']
    session = TransferSession(address, port, Path(path), chunk_size=config.chunk_size)

    try:
        asyncio.run(session.run())
    except TransferError as e:
        err_console.print(f"[red]Exception: {escape(str(e))}[/red]")
        ctx.exit(1)

    console.print(f"[green]✓ Sent {escape(session.header.file_name)} "
                  f"({session.bytes_sent:,} bytes)[/green]")


@cli.command()
@click.argument('port', type=PORT, required=False)
@click.option('--host', default=None, help='Interface to bind')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False),
              help='Directory for received files')
@click.pass_context
def receive(ctx, port, host, output_dir):
    """Receive files on PORT until interrupted."""
    config = ctx.obj['config']
    output_dir = Path(output_dir) if output_dir else config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    port = port or config.port
    host = host or config.host

    console.print(Panel.fit(
        f"[bold green]Receiver Starting[/bold green]\n\n"
        f"Address: [yellow]{escape(host)}:{port}[/yellow]\n"
        f"Output Dir: [blue]{escape(str(output_dir))}[/blue]",
        title="filexfer"
    ))
    console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

    try:
        asyncio.run(serve(
            port,
            host=host,
            output_dir=output_dir,
            chunk_size=config.chunk_size,
            max_header_size=config.max_header_size,
        ))
    except BindError as e:
        err_console.print(f"[red]Exception: {escape(str(e))}[/red]")
        ctx.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
