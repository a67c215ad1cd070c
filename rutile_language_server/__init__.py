"""
Rutile Language Server

The Rutile Language Server provides a server that runs in the background,
providing editors and other tools with structural information about Rutile
scripts. It supports syntax error reporting, document symbols, folding
ranges, semantic highlighting, hover and same-document goto-definition.

The core is a hand-written lexer and recursive-descent parser that always
produce a complete syntax tree, even for text that is being edited.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

__version__ = "0.3.1"
__author__ = "Intel Corporation"
__license__ = "Apache-2.0 OR MIT"

import logging

# Set up default logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

def version() -> str:
    """Return the version string."""
    return __version__

def internal_error(message: str, *args) -> None:
    """Log an internal error message."""
    logger = logging.getLogger(__name__)
    if args:
        logger.error(f"Internal Error: {message.format(*args)}")
    else:
        logger.error(f"Internal Error: {message}")

# Export commonly used types and functions
__all__ = [
    "version",
    "internal_error",
    "__version__",
    "__author__",
    "__license__",
]
