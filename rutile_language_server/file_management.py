"""
File management utilities for the Rutile Language Server.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
from pathlib import Path
from typing import Iterable, List, Tuple

from .config import Config

logger = logging.getLogger(__name__)


class FileManager:
    """Discovers Rutile source files on disk."""

    def __init__(self, config: Config):
        self.config = config

    def discover_source_files(self, root_directory: Path, recursive: bool = True) -> List[Path]:
        """
        Discover all Rutile files in a directory.

        Args:
            root_directory: Directory to search in
            recursive: Whether to search recursively

        Returns:
            Sorted list of resolved file paths
        """
        source_files: List[Path] = []

        if not root_directory.exists() or not root_directory.is_dir():
            logger.warning(f"Directory does not exist or is not a directory: {root_directory}")
            return source_files

        pattern = "**/*" if recursive else "*"
        for file_path in root_directory.glob(pattern):
            if file_path.is_file() and self.is_source_file(file_path):
                source_files.append(file_path.resolve())

        source_files.sort()
        logger.info(f"Discovered {len(source_files)} Rutile files in {root_directory}")
        return source_files

    def collect_paths(self, paths: Iterable[Path]) -> Tuple[List[Path], List[Path]]:
        """
        Expand command line arguments into source files.

        Files are taken as given, whatever their extension; directories are
        searched recursively.

        Returns:
            (files, missing) where ``missing`` lists arguments that do not exist
        """
        files: List[Path] = []
        missing: List[Path] = []
        seen = set()

        for path in paths:
            if path.is_dir():
                candidates = self.discover_source_files(path)
            elif path.is_file():
                candidates = [path.resolve()]
            else:
                logger.error(f"No such file or directory: {path}")
                missing.append(path)
                continue

            for candidate in candidates:
                if candidate not in seen:
                    seen.add(candidate)
                    files.append(candidate)

        return files, missing

    def is_source_file(self, file_path: Path) -> bool:
        """Check if a file is a Rutile file."""
        return self.config.is_source_file(file_path)
