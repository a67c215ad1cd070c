"""
Command line interface for the Rutile Language Server.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
from pathlib import Path
from pprint import pformat
from typing import Optional, Sequence

from .config import Config
from .file_management import FileManager
from .analysis import DocumentAnalysis, WorkspaceAnalysis
from .analysis.structure import render_source, tree_shape


logger = logging.getLogger(__name__)


def run_cli(
    paths: Sequence[Path] = (),
    config_path: Optional[Path] = None,
    dump_tree: bool = False
) -> int:
    """
    Check Rutile files from the command line.

    Args:
        paths: Files and directories to check; the current directory when empty
        config_path: Optional JSON configuration file
        dump_tree: Print each file's re-serialization and tree shape instead of diagnostics

    Returns:
        Exit code (0 for success, 1 if any file has errors or could not be read)
    """
    logger.debug("Running in CLI mode")

    config = Config()
    if config_path:
        try:
            config.load_config(config_path)
        except (OSError, ValueError) as e:
            print(f"{config_path}: error: cannot load config: {e}")
            return 1

    file_manager = FileManager(config)
    files, missing = file_manager.collect_paths(list(paths) or [Path.cwd()])
    for path in missing:
        print(f"{path}: error: no such file or directory")

    if not files:
        logger.warning("No Rutile files found")
        return 1 if missing else 0

    logger.info(f"Found {len(files)} Rutile files to analyze")

    engine = WorkspaceAnalysis(config)
    try:
        analyses = engine.analyze_files(files)
    finally:
        engine.shutdown()

    total_errors = 0
    failed_files = len(missing)

    for file_path in files:
        analysis = analyses.get(file_path)
        if analysis is None:
            print(f"{file_path}: error: could not be read")
            failed_files += 1
            continue

        if dump_tree:
            _print_tree(analysis)
        else:
            for diagnostic in analysis.get_diagnostics():
                print(diagnostic.format_for_cli(file_path))
        total_errors += len(analysis.errors)

    # Print summary
    if total_errors > 0 or failed_files > 0:
        print(f"\nSummary: {total_errors} errors in {len(files)} files, {failed_files} unreadable")
    else:
        print(f"\nAll {len(files)} files analyzed successfully")

    return 1 if total_errors > 0 or failed_files > 0 else 0


def _print_tree(analysis: DocumentAnalysis) -> None:
    print(f"== {analysis.file_path}")
    print(render_source(analysis.tree))
    print(pformat(tree_shape(analysis.tree)))
