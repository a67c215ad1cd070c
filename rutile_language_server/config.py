"""
Configuration management for the Rutile Language Server.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_FILE_EXTENSIONS = [".rt", ".rutile"]


class LogLevel(Enum):
    """Log levels supported by the server."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"


LOG_LEVEL_MAP = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: logging.DEBUG  # Python doesn't have TRACE, use DEBUG
}


def _is_count(value: Any, minimum: int) -> bool:
    # bool is a subclass of int but never a valid count
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum


@dataclass
class InitializationOptions:
    """Options from a config file or the LSP initialize request."""
    max_diagnostics_per_file: int = 100
    log_level: LogLevel = LogLevel.INFO
    retain_trivia: bool = True
    max_nesting_depth: Optional[int] = None  # None: the parser default
    file_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_FILE_EXTENSIONS))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InitializationOptions':
        """Create InitializationOptions from dictionary, ignoring invalid values."""
        defaults = cls()

        log_level = defaults.log_level
        if 'log_level' in data:
            try:
                log_level = LogLevel(data['log_level'])
            except ValueError:
                logger.warning(f"Invalid log level: {data['log_level']}")

        max_nesting_depth = data.get('max_nesting_depth', defaults.max_nesting_depth)
        if max_nesting_depth is not None and not _is_count(max_nesting_depth, minimum=1):
            logger.warning(f"Invalid max_nesting_depth: {max_nesting_depth}")
            max_nesting_depth = defaults.max_nesting_depth

        max_diagnostics = data.get('max_diagnostics_per_file', defaults.max_diagnostics_per_file)
        if not _is_count(max_diagnostics, minimum=0):
            logger.warning(f"Invalid max_diagnostics_per_file: {max_diagnostics}")
            max_diagnostics = defaults.max_diagnostics_per_file

        extensions = data.get('file_extensions', defaults.file_extensions)
        if not isinstance(extensions, list) or not all(isinstance(ext, str) and ext for ext in extensions):
            logger.warning(f"Invalid file_extensions: {extensions!r}")
            extensions = defaults.file_extensions
        extensions = [(ext if ext.startswith('.') else f".{ext}").lower() for ext in extensions]

        return cls(
            max_diagnostics_per_file=max_diagnostics,
            log_level=log_level,
            retain_trivia=bool(data.get('retain_trivia', defaults.retain_trivia)),
            max_nesting_depth=max_nesting_depth,
            file_extensions=extensions
        )


class Config:
    """Main configuration class for the Rutile Language Server."""

    def __init__(self):
        self._initialization_options: Optional[InitializationOptions] = None
        self._workspace_root: Optional[Path] = None

    @property
    def workspace_root(self) -> Optional[Path]:
        """Get the workspace root directory."""
        return self._workspace_root

    @workspace_root.setter
    def workspace_root(self, path: Optional[Path]) -> None:
        """Set the workspace root directory."""
        self._workspace_root = path.resolve() if path else None
        logger.info(f"Workspace root set to: {self._workspace_root}")

    @property
    def initialization_options(self) -> Optional[InitializationOptions]:
        """Get initialization options."""
        return self._initialization_options

    @property
    def options(self) -> InitializationOptions:
        """Initialization options, or the defaults when none were set."""
        return self._initialization_options or InitializationOptions()

    def set_initialization_options(self, options: Dict[str, Any]) -> None:
        """Set initialization options from a dictionary and apply the log level."""
        self._initialization_options = InitializationOptions.from_dict(options)
        logger.info(f"Initialization options set: {self._initialization_options}")

        logging.getLogger().setLevel(LOG_LEVEL_MAP[self._initialization_options.log_level])

    def load_config(self, path: Path) -> None:
        """
        Load configuration from a JSON file.

        The format is a single object with the InitializationOptions keys:
        {
          "max_diagnostics_per_file": 100,
          "log_level": "info",
          "retain_trivia": true,
          "max_nesting_depth": 200,
          "file_extensions": [".rt"]
        }

        Args:
            path: Path to the JSON config file
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except Exception as e:
            logger.error(f"Failed to load config from {path}: {e}")
            raise

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")

        self.set_initialization_options(data)
        logger.info(f"Loaded config from {path}")

    def is_source_file(self, path: Path) -> bool:
        """Check whether a path has one of the configured source extensions."""
        return path.suffix.lower() in self.options.file_extensions

    def get_max_diagnostics_per_file(self) -> int:
        """Get maximum number of diagnostics per file."""
        return self.options.max_diagnostics_per_file

