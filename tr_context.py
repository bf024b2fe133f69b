"""
Resolver context for cross-cutting options.

This module defines the ResolverContext dataclass which holds options that
affect several resolver stages (diagnostic staging, logging).
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from enum import Enum, IntEnum


class LogLevel(IntEnum):
    """Hierarchical logging levels for the resolver."""
    SILENT = 0      # No logging
    ERROR = 3       # Error messages only
    WARNING = 6     # Warning messages (default)
    INFO = 10       # General progress messages (-v)
    DEBUG = 30      # Detailed diagnostic information (-vvv)


class CompatibilityMode(Enum):
    """
    Staging of target-name diagnostics across language versions.

    The resolution rules are identical in every mode; only the severity of
    missing-binding conditions at function scope changes.
    """
    LEGACY = "legacy"
    WARN = "warn"
    STRICT = "strict"

    @staticmethod
    def parse(text: str) -> 'CompatibilityMode':
        try:
            return CompatibilityMode(text.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in CompatibilityMode)
            raise ValueError(f"unknown compatibility mode '{text}' (expected one of: {choices})") from None


@dataclass
class ResolverContext:
    """
    Holds cross-cutting resolver options.

    Attributes:
        compatibility_mode:     Staging of TargetNameError conditions (legacy, warn, strict).
        log_rich_format:        If True, emit logs in rich format: may include log level, timestamps, etc.
        log_level:              Current logging level.
    """
    compatibility_mode: CompatibilityMode = CompatibilityMode.WARN
    log_rich_format: bool = False
    log_level: LogLevel = LogLevel.WARNING

    @staticmethod
    def default() -> 'ResolverContext':
        """Create a ResolverContext with default settings."""
        return ResolverContext(compatibility_mode=CompatibilityMode.WARN, log_level=LogLevel.WARNING)
