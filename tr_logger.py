"""
Stderr logging for the resolver pipeline.

Every function takes the ResolverContext of the run: its `log_level` decides
what is printed and `log_rich_format` adds a timestamp and level tag.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import sys
import time
from typing import Optional

from tr_context import ResolverContext, LogLevel

_LEVEL_TAGS = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
}


def _rich_prefix(log_level: LogLevel) -> str:
    tag = _LEVEL_TAGS.get(log_level)
    if tag is None:
        return ""
    return f"{time.strftime('%Y-%m-%d %H:%M:%S', time.localtime())} [{tag}] "


def log(context: Optional[ResolverContext], log_level: LogLevel, message: str) -> None:
    """
    Print `message` to stderr when `context` admits `log_level`.

    A missing context still prints, so that failures before a context exists
    are never silent.
    """
    if context is None:
        print(message, file=sys.stderr)
        return
    if context.log_level < log_level:
        return
    prefix = _rich_prefix(log_level) if context.log_rich_format else ""
    print(f"{prefix}{message}", file=sys.stderr)


def log_error(context: ResolverContext, message: str) -> None:
    log(context, LogLevel.ERROR, message)


def log_warning(context: ResolverContext, message: str) -> None:
    log(context, LogLevel.WARNING, message)


def log_info(context: ResolverContext, message: str) -> None:
    log(context, LogLevel.INFO, message)


def log_debug(context: ResolverContext, message: str) -> None:
    log(context, LogLevel.DEBUG, message)


def log_stage(context: ResolverContext, stage: str, unit: Optional[str] = None) -> None:
    """Announce a pipeline stage, naming the unit when it has one."""
    log(context, LogLevel.INFO, f"{stage} unit '{unit}'" if unit else f"{stage}...")
