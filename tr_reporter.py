#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from tr_context import CompatibilityMode
from tr_diagnostics import Diagnostic, diag_from_position
from tr_internal_error import ICELocation, InternalResolverError
from tr_resolver import Bound, ErrorReason, ResolutionError, ResolutionErrorKind, ResolutionResult
from tr_scopes import BindingRole, OperatorKind, ScopeTree


_ROLE_WORDS = {
    BindingRole.PARAMETER: "a parameter",
    BindingRole.ITERATION_VAR: "an iteration variable",
}


class DiagnosticReporter:
    """
    Turns resolution results into staged diagnostics.

    Only missing-binding TargetNameErrors are staged by compatibility mode:

        legacy    warning, owner kept as a function local
        warn      warning, marked as deprecated
        strict    error

    The operator only selects the code: RES-0110 for augmented targets,
    RES-0111 for inline ones.

    ShadowedBindingTarget and ClassScopeUnsupported are always errors.

    When a missing binding is downgraded to a warning, the use site keeps
    its legacy owner (the function scope it appears in) as effective scope.
    """

    def __init__(
            self,
            tree: ScopeTree,
            mode: CompatibilityMode,
            filename: Optional[str] = None,
    ) -> None:
        self.tree = tree
        self.mode = mode
        self.filename = filename if filename is not None else tree.filename
        self.diagnostics: List[Diagnostic] = []
        # UseSite index -> effective scope index
        self.effective_scopes: Dict[int, int] = {}
        # UseSite index -> diagnostic attached to it
        self.site_diagnostics: Dict[int, Diagnostic] = {}

    def report(self, results: Mapping[int, ResolutionResult]) -> List[Diagnostic]:
        for site in sorted(self.tree.use_sites, key=lambda s: s.order):
            result = results.get(site.index)
            if result is None:
                raise InternalResolverError(
                    f"[ICE-0200] use site '{site.name}' has no resolution result",
                    ICELocation(filename=self.filename, position=site.position),
                )
            if isinstance(result, Bound):
                self.effective_scopes[site.index] = result.scope
                continue

            diag = self.diagnose(result)
            self.diagnostics.append(diag)
            self.site_diagnostics[site.index] = diag
            if diag.kind == "warning" and result.fallback_scope is not None:
                self.effective_scopes[site.index] = result.fallback_scope
        return self.diagnostics

    def severity_for(self, error: ResolutionError) -> str:
        if error.kind is not ResolutionErrorKind.TARGET_NAME_ERROR:
            return "error"
        if self.mode is CompatibilityMode.STRICT:
            return "error"
        return "warning"

    def diagnose(self, error: ResolutionError) -> Diagnostic:
        return diag_from_position(
            kind=self.severity_for(error),
            message=self._message(error),
            unit_name=self.tree.unit_name,
            filename=self.filename,
            position=error.position,
            category=error.kind.value,
            name=error.site.name,
        )

    # --- internal helpers ---

    def _message(self, error: ResolutionError) -> str:
        site = error.site
        scope = self.tree.node(error.scope)
        op = site.operator.describe()

        if error.reason is ErrorReason.MISSING_BINDING:
            if site.operator is OperatorKind.INLINE_ASSIGN:
                message = (
                    f"[RES-0111] {op} to '{site.name}' in {scope.describe()} requires an existing "
                    f"binding or declaration of '{site.name}'"
                )
            else:
                message = (
                    f"[RES-0110] {op} to '{site.name}' in {scope.describe()} has no preceding "
                    f"binding or declaration"
                )
            if self.severity_for(error) == "warning":
                if self.mode is CompatibilityMode.WARN:
                    message += "; this is deprecated and will be an error in strict mode"
                else:
                    message += f"; '{site.name}' is treated as local to {scope.describe()}"
            return message

        if error.reason is ErrorReason.BLOCK_SCOPE_SHADOW or error.reason is ErrorReason.TRANSPARENT_SCOPE_SHADOW:
            code = "RES-0120" if error.reason is ErrorReason.BLOCK_SCOPE_SHADOW else "RES-0121"
            role = _ROLE_WORDS.get(error.blocking_role, "a blocking binding")
            where = scope.describe()
            if error.reason is ErrorReason.TRANSPARENT_SCOPE_SHADOW and error.scope != site.enclosing_scope:
                where = f"enclosing {where}"
            return f"[{code}] cannot use {op} on '{site.name}': it is {role} of {where}"

        if error.reason is ErrorReason.CLASS_SCOPE:
            inner = self.tree.node(site.enclosing_scope)
            return (
                f"[RES-0130] {op} to '{site.name}' inside {inner.describe()} cannot target "
                f"the body of {scope.describe()}"
            )

        raise InternalResolverError(
            f"[ICE-0201] unhandled resolution error reason {error.reason!r}",
            ICELocation(filename=self.filename, position=site.position),
        )
