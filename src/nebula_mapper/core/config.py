#!/usr/bin/env python3
"""
Configuration settings for statement compilation.

These settings can be overridden via environment variables so the same
mapping can be compiled with different batch sizes or log levels without
editing the mapping file.
"""

import logging

from .env_utils import getenv_bool, getenv_clean, getenv_int

logger = logging.getLogger(__name__)

# Batch size used by the original loader configuration
DEFAULT_BATCH_SIZE = 500


class CompilerConfig:
    """Compiler defaults with environment overrides.

    Values are read when an instance is created, so tests (and long-running
    callers) can build a fresh instance after changing the environment.
    """

    def __init__(self):
        # Max tuples per INSERT VERTEX / INSERT EDGE statement
        self.BATCH_SIZE = getenv_int("NEBULA_MAPPER_BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1)

        # Root log level for setup_logging()
        self.LOG_LEVEL = (getenv_clean("NEBULA_MAPPER_LOG_LEVEL", "INFO") or "INFO").upper()

        # Joins the parts of a composite vertex key
        self.KEY_SEPARATOR = getenv_clean("NEBULA_MAPPER_KEY_SEPARATOR", "_", strip=False)

        # Back-tick every identifier in emitted statements
        self.QUOTE_ALL_IDENTIFIERS = getenv_bool("NEBULA_MAPPER_QUOTE_ALL_IDENTIFIERS", True)

    def get_batch_size(self, requested: int = None) -> int:
        """Resolve the batch size for a compile run.

        Args:
            requested: Explicit batch size from the caller, or None

        Returns:
            The requested size when given, otherwise the configured default
        """
        if requested is None:
            return self.BATCH_SIZE
        return requested


# Singleton instance
compiler_config = CompilerConfig()
