#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import sys
from pathlib import Path
from textwrap import dedent

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tr_context import CompatibilityMode, ResolverContext
from tr_driver import ResolverDriver


@pytest.fixture
def repo_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def write_events_file(tmp_path: Path):
    def _write(name: str, content: str) -> Path:
        file_path = tmp_path / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(dedent(content))
        return file_path

    return _write


@pytest.fixture
def analyze_events():
    """Run the full resolver pipeline on an event stream given as text.

    Usage:
        def test_something(analyze_events):
            result = analyze_events('''
                enter module m
                aug total @1:1
                exit
            ''', mode="strict")
            assert not result.has_errors()
    """

    def _analyze(src: str, mode: str = "warn"):
        context = ResolverContext(compatibility_mode=CompatibilityMode.parse(mode))
        driver = ResolverDriver(context=context)
        return driver.analyze_text(dedent(src))

    return _analyze


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Code string like "RES-0110" or "[RES-0110]"

    Returns:
        True if any diagnostic message contains the code
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)


def only_site(result, name: str):
    """Return the single use site targeting `name`."""
    sites = result.sites_named(name)
    assert len(sites) == 1, sites
    return sites[0]
