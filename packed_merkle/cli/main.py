"""
CLI entry point for packed-merkle.

Provides commands to build a tree from payloads, print inclusion paths and
run a replica reconciliation round between in-memory peers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from packed_merkle._version import __version__
from packed_merkle.cli.context import CLIContext, pass_context
from packed_merkle.config.settings import create_hasher, get_default_config_path, load_config
from packed_merkle.exceptions import InvalidConfigurationError, UnsupportedHashAlgorithmError
from packed_merkle.logging_config import setup_logging


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help=f'Path to configuration file (default: {get_default_config_path()})',
)
@click.option(
    '--log-level',
    '-l',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=None,
    help='Override the configured logging level',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose output',
)
@click.version_option(version=__version__, prog_name='packed-merkle')
@pass_context
def cli(ctx: CLIContext, config: Optional[Path], log_level: Optional[str], verbose: bool):
    """
    Packed Merkle - dynamic array-packed Merkle tree.

    Build trees, print inclusion paths and reconcile replicas.
    """
    ctx.verbose = verbose
    ctx.config_path = str(config) if config else None

    try:
        ctx.config = load_config(ctx.config_path)
        ctx.hasher = create_hasher(ctx.config)
    except (InvalidConfigurationError, UnsupportedHashAlgorithmError) as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(1)

    effective_log_level = log_level.upper() if log_level else ctx.config.logging.level
    log_file = Path(ctx.config.logging.file) if ctx.config.logging.file else None
    setup_logging(
        level=effective_log_level,
        log_file=log_file,
        json_format=ctx.config.logging.json_format,
    )

    if verbose:
        logger = logging.getLogger("packed_merkle")
        logger.info(f"Loaded configuration from: {ctx.config_path or 'defaults'}")
        logger.info(f"Hash algorithm: {ctx.hasher.algorithm}")


from packed_merkle.cli.tree import build, path, sync

cli.add_command(build)
cli.add_command(path)
cli.add_command(sync)


def main():
    cli()


if __name__ == '__main__':
    cli()
