#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from conftest import has_error_code, only_site
from tr_classifier import BindingClassifier
from tr_events import BindingEvent, EventRole, ScopeEnter, ScopeExit
from tr_internal_error import InternalResolverError
from tr_resolver import Bound, ErrorReason, ResolutionEngine, ResolutionError, ResolutionErrorKind
from tr_scopes import BindingRole, Position, ScopeKind


# --- module and class scope: implicit declaration ---

def test_module_scope_augmented_assignment_creates_binding(analyze_events):
    result = analyze_events(
        """
        enter module m
        aug counter @1:1
        exit
        """,
        mode="strict",
    )

    assert result.diagnostics == []
    site = only_site(result, "counter")
    assert result.effective_scope_of(site) is result.tree.root

    record = result.tree.root.bindings["counter"]
    assert record.role is BindingRole.PLAIN_BINDING
    assert record.implicit
    assert record.effective_scope == 0


def test_class_body_augmented_assignment_resolves_to_class(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter class C @1:1
        bind x @2:5
        aug x @3:5
        aug y @4:5
        exit
        exit
        """,
        mode="strict",
    )

    assert result.diagnostics == []
    cls = result.tree.node(1)
    assert result.effective_scope_of(only_site(result, "x")) is cls
    assert result.effective_scope_of(only_site(result, "y")) is cls
    assert cls.bindings["y"].implicit


def test_module_comprehension_inline_assignment_reaches_module(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter comprehension @1:1
        iter item @1:20
        walrus last @1:2
        exit
        exit
        """,
        mode="strict",
    )

    assert result.diagnostics == []
    assert result.effective_scope_of(only_site(result, "last")) is result.tree.root
    assert "last" not in result.tree.node(1).bindings


# --- function scope: declared before use ---

def test_function_scope_requires_preceding_binding(analyze_events):
    src = """
    enter module m
    bind x @1:1
    enter function f @2:1
    aug x @3:5
    exit
    exit
    """

    warn = analyze_events(src, mode="warn")
    assert has_error_code(warn.diagnostics, "RES-0110")
    assert not warn.has_errors()

    strict = analyze_events(src, mode="strict")
    assert has_error_code(strict.diagnostics, "RES-0110")
    assert strict.has_errors()
    assert strict.effective_scope_of(only_site(strict, "x")) is None

    # the module-level 'x' is never an implicit target of the function's write
    assert strict.tree.root.bindings["x"].effective_scope is None


def test_binding_after_use_does_not_count(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        aug x @2:5
        bind x @3:5
        aug x @4:5
        exit
        exit
        """,
        mode="strict",
    )

    first, second = result.sites_named("x")
    assert isinstance(result.results[first.index], ResolutionError)
    assert result.results[first.index].kind is ResolutionErrorKind.TARGET_NAME_ERROR
    assert result.results[second.index] == Bound(1)
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].line == 2


def test_type_only_declaration_anchors_target(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        declare total @2:5
        aug total @3:5
        exit
        exit
        """,
        mode="strict",
    )

    assert result.diagnostics == []
    assert result.effective_scope_of(only_site(result, "total")).label == "f"


def test_parameter_is_never_a_target(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        param n @1:7
        aug n @2:5
        exit
        exit
        """,
        mode="legacy",
    )

    assert has_error_code(result.diagnostics, "RES-0120")
    assert result.has_errors()
    diag = result.diagnostics[0]
    assert diag.category == "ShadowedBindingTarget"
    assert diag.name == "n"
    assert "parameter of function 'f'" in diag.message


def test_function_iteration_variable_blocks(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        iter i @2:9
        walrus i @3:9
        exit
        exit
        """,
    )

    assert has_error_code(result.diagnostics, "RES-0120")
    assert "iteration variable" in result.diagnostics[0].message


# --- transparent scopes ---

def test_scenario_b_closure_write_goes_to_function(analyze_events):
    result = analyze_events(
        """
        enter module m
        bind total @1:1
        enter function summarize @2:1
        param data @2:15
        bind total @3:5
        enter comprehension @4:5
        iter value @4:30
        aug total @4:6
        exit
        exit
        exit
        """,
        mode="strict",
    )

    assert result.diagnostics == []
    owner = result.effective_scope_of(only_site(result, "total"))
    assert owner.kind is ScopeKind.FUNCTION
    assert owner.label == "summarize"
    assert result.tree.root.bindings["total"].effective_scope is None


def test_scenario_c_closure_in_class_body(analyze_events):
    src = """
    enter module m
    enter class Counter @1:1
    bind x @2:5
    enter lambda @3:11
    aug x @3:19
    exit
    exit
    exit
    """

    for mode in ("legacy", "warn", "strict"):
        result = analyze_events(src, mode=mode)
        assert has_error_code(result.diagnostics, "RES-0130")
        assert result.has_errors()
        assert result.diagnostics[0].category == "ClassScopeUnsupported"
        assert result.effective_scope_of(only_site(result, "x")) is None


def test_comprehension_in_class_cannot_inline_assign(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter class C @1:1
        enter comprehension @2:11
        iter v @2:30
        walrus seen @2:12
        exit
        exit
        exit
        """,
        mode="legacy",
    )

    assert has_error_code(result.diagnostics, "RES-0130")
    assert "seen" not in result.tree.node(1).bindings


def test_scenario_d_closure_parameter_shadows_outer_binding(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        bind n @2:5
        enter lambda @3:9
        param n @3:16
        aug n @3:19
        exit
        exit
        exit
        """,
    )

    assert has_error_code(result.diagnostics, "RES-0121")
    site = only_site(result, "n")
    error = result.results[site.index]
    assert error.kind is ResolutionErrorKind.SHADOWED_BINDING_TARGET
    assert error.reason is ErrorReason.TRANSPARENT_SCOPE_SHADOW
    assert error.blocking_role is BindingRole.PARAMETER
    assert result.effective_scope_of(site) is None


def test_iteration_variable_of_enclosing_transparent_scope_blocks(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        bind x @2:5
        enter comprehension @3:12
        iter x @3:40
        enter lambda @3:13
        aug x @3:21
        exit
        exit
        exit
        exit
        """,
    )

    assert has_error_code(result.diagnostics, "RES-0121")
    assert "iteration variable of enclosing comprehension at 3:12" in result.diagnostics[0].message


def test_transparent_scope_plain_binding_is_not_a_target(analyze_events):
    # a plain binding inside a transparent scope neither blocks nor anchors
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        enter comprehension @2:5
        bind y @2:6
        aug y @2:8
        exit
        exit
        exit
        """,
        mode="strict",
    )

    assert has_error_code(result.diagnostics, "RES-0110")


def test_inline_assignment_in_function_comprehension(analyze_events):
    src = """
    enter module m
    enter function f @1:1
    enter comprehension @2:12
    iter v @2:30
    walrus best @2:13
    exit
    exit
    exit
    """

    # no preceding binding: only strict mode fails
    assert analyze_events(src, mode="strict").has_errors()
    warn = analyze_events(src, mode="warn")
    assert not warn.has_errors()
    assert warn.diagnostics[0].message.endswith("will be an error in strict mode")
    legacy = analyze_events(src, mode="legacy")
    assert not legacy.has_errors()
    assert has_error_code(legacy.diagnostics, "RES-0111")

    bound = analyze_events(
        """
        enter module m
        enter function f @1:1
        bind best @2:5
        enter comprehension @3:12
        iter v @3:30
        walrus best @3:13
        exit
        exit
        exit
        """,
        mode="strict",
    )
    assert bound.diagnostics == []
    assert bound.effective_scope_of(only_site(bound, "best")).label == "f"


def test_all_use_sites_reported_in_one_pass(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function f @1:1
        param a @1:7
        aug a @2:5
        aug b @3:5
        bind c @4:5
        aug c @5:5
        exit
        enter class K @6:1
        enter lambda @7:9
        aug k @7:17
        exit
        exit
        exit
        """,
        mode="strict",
    )

    codes = [d.code for d in result.diagnostics]
    assert codes == ["RES-0120", "RES-0110", "RES-0130"]
    assert result.effective_scope_of(only_site(result, "c")).label == "f"


def test_sibling_closures_resolve_independently(analyze_events):
    result = analyze_events(
        """
        enter module m
        enter function outer @1:1
        bind x @2:5
        enter function left @3:5
        nonlocal x @4:9
        aug x @5:9
        exit
        enter lambda @6:5
        aug x @6:13
        exit
        enter lambda @7:5
        param x @7:12
        aug x @7:15
        exit
        exit
        exit
        """,
        mode="strict",
    )

    left_site, lambda_site, shadowed_site = result.sites_named("x")
    assert result.effective_scope_of(left_site).label == "outer"
    assert result.effective_scope_of(lambda_site).label == "outer"
    assert result.effective_scope_of(shadowed_site) is None
    assert [d.code for d in result.diagnostics] == ["RES-0121"]


# --- engine used directly ---

def _build(events):
    return BindingClassifier(unit_name="m").classify(events)


def test_engine_requires_promoted_outer_declarations():
    tree = _build([
        ScopeEnter(ScopeKind.MODULE),
        ScopeEnter(ScopeKind.FUNCTION, "f", Position(1, 1)),
        BindingEvent("x", EventRole.GLOBAL, Position(2, 5)),
        BindingEvent("x", EventRole.AUGMENTED, Position(3, 5)),
        ScopeExit(),
        ScopeExit(),
    ])

    engine = ResolutionEngine(tree)
    with pytest.raises(InternalResolverError) as exc:
        engine.resolve()
    assert "[ICE-0102]" in exc.value.format()


def test_engine_results_are_keyed_by_use_site():
    tree = _build([
        ScopeEnter(ScopeKind.MODULE),
        BindingEvent("a", EventRole.AUGMENTED, Position(1, 1)),
        ScopeEnter(ScopeKind.FUNCTION, "f", Position(2, 1)),
        BindingEvent("b", EventRole.INLINE, Position(3, 5)),
        ScopeExit(),
        ScopeExit(),
    ])

    results = ResolutionEngine(tree).resolve()

    assert results[0] == Bound(0)
    assert isinstance(results[1], ResolutionError)
    assert results[1].reason is ErrorReason.MISSING_BINDING
    assert results[1].fallback_scope == 1
    assert results[1].position == Position(3, 5)
