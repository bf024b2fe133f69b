#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import argparse
import os
from pathlib import Path
from typing import Dict, List

from tr_analysis import AnalysisResult
from tr_context import CompatibilityMode, LogLevel, ResolverContext
from tr_diagnostics import Diagnostic
from tr_driver import ResolverDriver, read_failure_reason
from tr_events import EventSyntaxError, format_event
from tr_internal_error import InternalResolverError
from tr_logger import log_error, log_info
from tr_tree_printer import format_site, format_tree


def _default_mode() -> str:
    return os.getenv("TR_COMPAT_MODE") or CompatibilityMode.WARN.value


def _load_file_lines(path: str, cache: Dict[str, List[str]]) -> List[str]:
    if path not in cache:
        text = Path(path).read_text(encoding="utf-8")
        cache[path] = text.splitlines()
    return cache[path]


def print_diagnostics(result: AnalysisResult, context: ResolverContext) -> None:
    file_cache: Dict[str, List[str]] = {}

    for diag in result.diagnostics:
        print_diagnostic_with_snippet(diag, file_cache, context)


def print_diagnostic_with_snippet(diag: Diagnostic, file_cache: Dict[str, List[str]], context: ResolverContext = None) -> None:
    # First line: header
    log_error(context, diag.format())

    if not diag.filename or diag.line is None:
        return

    try:
        lines = _load_file_lines(diag.filename, file_cache)
    except (OSError, UnicodeDecodeError):
        # Can't read or decode file; fall back to header only
        return

    line_idx = diag.line - 1
    if not (0 <= line_idx < len(lines)):
        return

    src_line = lines[line_idx]

    width = max(5, len(str(diag.line)))
    gutter = f"{diag.line:>{width}} | "

    log_error(context, gutter + src_line)

    if diag.column is None:
        return

    # Underline the target name when known, else a single caret
    start_col = max(1, diag.column)
    caret_width = max(1, len(diag.name)) if diag.name else 1
    caret_prefix = " " * width + " | " + " " * (start_col - 1)
    log_error(context, caret_prefix + "^" * caret_width)


def build_resolver_context(args: argparse.Namespace) -> ResolverContext:
    """Build a ResolverContext from command-line arguments."""
    verbosity = getattr(args, 'verbosity', 0)
    if verbosity >= 3:
        log_level = LogLevel.DEBUG
    elif verbosity >= 1:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.WARNING

    return ResolverContext(
        compatibility_mode=CompatibilityMode.parse(getattr(args, 'mode', None) or _default_mode()),
        log_rich_format=getattr(args, 'log', False),
        log_level=log_level,
    )


def _run_analysis(args):
    """Run the resolver pipeline, returning (result, context, exit_code)."""
    context = build_resolver_context(args)
    driver = ResolverDriver(context=context)
    try:
        result = driver.analyze_file(args.entry)
    except InternalResolverError as e:
        log_error(context, e.format())
        return None, context, 1
    print_diagnostics(result, context=context)
    exit_code = 1 if (result.tree is None or result.has_errors()) else 0
    return result, context, exit_code


def cmd_check(args: argparse.Namespace) -> int:
    result, context, exit_code = _run_analysis(args)
    if result is not None and result.tree is not None:
        errors = sum(1 for d in result.diagnostics if d.kind == "error")
        warnings = sum(1 for d in result.diagnostics if d.kind == "warning")
        log_info(
            context,
            f"Checked {len(result.use_sites)} target(s) in "
            f"'{args.entry}': {errors} error(s), {warnings} warning(s)",
        )
    return exit_code


def cmd_events(args: argparse.Namespace) -> int:
    """Dump the parsed event stream, one event per line."""
    context = build_resolver_context(args)
    driver = ResolverDriver(context=context)
    try:
        stream = driver.load_file(args.entry)
    except (OSError, UnicodeDecodeError) as e:
        log_error(context, f"error: [DRV-0010] cannot read {args.entry}: {read_failure_reason(e)}")
        return 1
    except EventSyntaxError as e:
        log_error(context, f"{e.filename}:{e.line}:{e.column}: error: syntax: {e.message}")
        return 1

    if stream.unit_name is not None:
        print(f"unit {stream.unit_name}")
    if stream.source is not None:
        print(f"source {stream.source}")
    depth = 0
    for event in stream.events:
        text = format_event(event)
        if text == "exit":
            depth = max(0, depth - 1)
        print("  " * depth + text)
        if text.startswith("enter "):
            depth += 1
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    """Pretty-print the annotated scope tree."""
    result, _, exit_code = _run_analysis(args)
    if result is None or result.tree is None:
        return 1
    print(format_tree(result.tree, result.effective_scopes, result.site_diagnostics))
    return exit_code


def cmd_sites(args: argparse.Namespace) -> int:
    """Print the resolution of every augmented/inline assignment target."""
    result, _, exit_code = _run_analysis(args)
    if result is None or result.tree is None:
        return 1
    for site in result.use_sites:
        scope = result.tree.node(site.enclosing_scope)
        print(f"{scope.describe()}: {format_site(result.tree, site, result.effective_scopes, result.site_diagnostics)}")
    return exit_code


def _add_entry_arg(parser: argparse.ArgumentParser) -> None:
    """Add the event file argument."""
    parser.add_argument("entry", help="Event file describing one compilation unit")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="trc", description="Augmented/inline assignment target resolver")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    parser.add_argument("-v", "--verbose",
                        action='count',
                        default=0,
                        dest='verbosity',
                        help="Increase verbosity: -v=INFO, -vvv=DEBUG")
    parser.add_argument("-l", "--log",
                        action='store_true',
                        default=False,
                        help="Enable rich log formatting (timestamps, levels)")
    parser.add_argument(
        "-m", "--mode",
        choices=[m.value for m in CompatibilityMode],
        default=None,
        help="Compatibility mode for target-name diagnostics (default: $TR_COMPAT_MODE or 'warn')",
    )

    ###########################
    # check command
    ###########################
    p_check = subparsers.add_parser("check", help="Resolve targets and report diagnostics", aliases=["analyze"])
    _add_entry_arg(p_check)
    p_check.set_defaults(func=cmd_check)

    ###########################
    # events command
    ###########################
    p_events = subparsers.add_parser("events", help="Dump the parsed event stream")
    _add_entry_arg(p_events)
    p_events.set_defaults(func=cmd_events)

    ###########################
    # tree command
    ###########################
    p_tree = subparsers.add_parser("tree", help="Pretty-print the annotated scope tree")
    _add_entry_arg(p_tree)
    p_tree.set_defaults(func=cmd_tree)

    ###########################
    # sites command
    ###########################
    p_sites = subparsers.add_parser("sites", help="Print the resolution of every target")
    _add_entry_arg(p_sites)
    p_sites.set_defaults(func=cmd_sites)

    args = parser.parse_args(argv)

    # $TR_COMPAT_MODE bypasses argparse choices
    try:
        CompatibilityMode.parse(args.mode or _default_mode())
    except ValueError as e:
        parser.error(str(e))

    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
