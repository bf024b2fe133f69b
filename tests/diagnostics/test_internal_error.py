#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from tr_internal_error import ICELocation, InternalResolverError
from tr_reporter import DiagnosticReporter
from tr_context import CompatibilityMode
from tr_scopes import OperatorKind, Position, ScopeKind, ScopeTree


def test_format_without_location():
    ice = InternalResolverError("boom")

    assert ice.format() == "internal resolver error: [ICE-9999] boom"


def test_format_with_filename_only():
    ice = InternalResolverError("boom", ICELocation(filename="foo.py", position=None))

    assert ice.format() == "foo.py: internal resolver error: [ICE-9999] boom"


def test_format_with_position_and_filename():
    ice = InternalResolverError("boom", ICELocation(filename="foo.py", position=Position(3, 15)))

    assert ice.format() == "foo.py:3:15: internal resolver error: [ICE-9999] boom"

def test_format_with_ice_code_position_and_filename():
    ice = InternalResolverError("[ICE-0777] boom", ICELocation(filename="foo.py", position=Position(3, 15)))

    assert ice.format() == "foo.py:3:15: internal resolver error: [ICE-0777] boom"


def test_reporter_rejects_unresolved_use_site():
    tree = ScopeTree(unit_name="m", filename="m.py")
    tree.add_scope(ScopeKind.MODULE)
    tree.add_use_site("x", 0, OperatorKind.AUGMENTED_OP, Position(1, 1), order=2)

    with pytest.raises(InternalResolverError) as exc:
        DiagnosticReporter(tree, CompatibilityMode.WARN).report({})
    assert exc.value.format() == (
        "m.py:1:1: internal resolver error: [ICE-0200] use site 'x' has no resolution result"
    )


def test_code_defaults_when_message_has_none():
    assert InternalResolverError("[ICE-0103] scope index 9 out of range").code == "ICE-0103"
    assert InternalResolverError("no code").code == "ICE-9999"
    assert ICELocation(filename=None, position=Position(1, 1)).prefix() == ""
