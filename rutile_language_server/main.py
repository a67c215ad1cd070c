"""
Main entry point for the Rutile Language Server.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from . import version
from .cmd import run_cli
from .config import Config
from .server import run_server


logger = logging.getLogger(__name__)


@click.command()
@click.argument(
    "paths",
    nargs=-1,
    type=click.Path(path_type=Path)
)
@click.option(
    "--cli",
    is_flag=True,
    help="Check the given files and directories instead of starting the server"
)
@click.option(
    "--dump-tree",
    is_flag=True,
    help="Print the re-serialized source and tree shape of each file (cli only)"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Optional JSON configuration file"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.version_option(version=version())
def main(
    paths: Tuple[Path, ...],
    cli: bool,
    dump_tree: bool,
    config_path: Optional[Path],
    verbose: bool
) -> None:
    """
    The Rutile language server binary.

    Communicates over stdin/stdout using the Language Server Protocol
    to provide syntax errors, outlines, folding and highlighting for
    Rutile files. With --cli, checks PATHS (default: the current directory).
    """
    # Set up logging
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)

    logger.debug("Rutile Language Server starting")

    if (paths or dump_tree) and not cli:
        raise click.UsageError("PATHS and --dump-tree require --cli")

    try:
        if cli:
            exit_code = run_cli(paths, config_path, dump_tree)
        else:
            logger.info("Starting as LSP server")
            config = Config()
            if config_path:
                config.load_config(config_path)
            exit_code = run_server(config)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Failed with error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
