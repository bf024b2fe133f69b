#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Optional, Union

from tr_context import ResolverContext
from tr_internal_error import ICELocation, InternalResolverError
from tr_logger import log_debug
from tr_scopes import (
    BindingRecord, BindingRole, OUTER_ROLES, Position, ScopeKind, ScopeNode, ScopeTree, UseSite,
)


class ResolutionErrorKind(Enum):
    TARGET_NAME_ERROR = "TargetNameError"
    SHADOWED_BINDING_TARGET = "ShadowedBindingTarget"
    CLASS_SCOPE_UNSUPPORTED = "ClassScopeUnsupported"


class ErrorReason(Enum):
    MISSING_BINDING = auto()  # no qualifying binding precedes the use site
    BLOCK_SCOPE_SHADOW = auto()  # parameter/iteration variable of the owning block scope
    TRANSPARENT_SCOPE_SHADOW = auto()  # parameter/iteration variable of a transparent scope on the path
    CLASS_SCOPE = auto()  # transparent path ends at a class body


@dataclass(frozen=True)
class Bound:
    scope: int


@dataclass(frozen=True)
class ResolutionError:
    kind: ResolutionErrorKind
    reason: ErrorReason
    site: UseSite
    scope: int  # block scope (or blocking transparent scope) where resolution stopped
    blocking_role: Optional[BindingRole] = None
    fallback_scope: Optional[int] = None  # legacy owner when a missing binding is tolerated

    @property
    def position(self) -> Optional[Position]:
        return self.site.position


ResolutionResult = Union[Bound, ResolutionError]


class ResolutionEngine:
    """
    Computes the owning block scope of every augmented/inline assignment
    target in a ScopeTree.

    Dispatch is on the kind of the enclosing scope:

    - MODULE / CLASS: the target belongs to that scope; a PLAIN_BINDING is
      created when none exists (implicit declaration).
    - FUNCTION: a PLAIN_BINDING or outer declaration must precede the use
      site in program order.
    - CLOSURE_EXPR / COMPREHENSION_LIKE: transparent; walk outward to the
      nearest block scope, failing on any parameter or iteration variable of
      the same name on the way. A class body at the end of the walk is never
      a legal target.

    Parameters and iteration variables block in every scope.
    The promotion pass must have run: outer declarations are bound to their
    already resolved effective scope.
    """

    def __init__(self, tree: ScopeTree, context: Optional[ResolverContext] = None) -> None:
        self.tree = tree
        self.context = context or ResolverContext.default()
        # UseSite index -> result
        self.results: Dict[int, ResolutionResult] = {}

    def resolve(self) -> Dict[int, ResolutionResult]:
        for site in sorted(self.tree.use_sites, key=lambda s: s.order):
            result = self.resolve_site(site)
            self.results[site.index] = result
            if isinstance(result, Bound):
                log_debug(
                    self.context,
                    f"'{site.name}' @{site.position} -> {self.tree.node(result.scope).describe()}",
                )
            else:
                log_debug(self.context, f"'{site.name}' @{site.position} -> {result.kind.value}")
        return self.results

    def resolve_site(self, site: UseSite) -> ResolutionResult:
        scope = self._node(site.enclosing_scope, site)

        if scope.kind is ScopeKind.MODULE or scope.kind is ScopeKind.CLASS:
            return self._resolve_implicit(scope, site)
        if scope.kind is ScopeKind.FUNCTION:
            return self._resolve_in_function(scope, site)
        if scope.kind is ScopeKind.CLOSURE_EXPR or scope.kind is ScopeKind.COMPREHENSION_LIKE:
            return self._resolve_through_transparent(scope, site)

        raise self._ice(f"[ICE-0100] unhandled scope kind {scope.kind!r}", site)

    # --- internal helpers ---

    def _resolve_implicit(self, block: ScopeNode, site: UseSite) -> ResolutionResult:
        record = block.bindings.get(site.name)
        if record is None:
            record = BindingRecord(
                name=site.name,
                role=BindingRole.PLAIN_BINDING,
                declared_at=site.position,
                bound_order=site.order,
                effective_scope=block.index,
                implicit=True,
            )
            block.bindings[site.name] = record
            return Bound(block.index)

        if record.is_blocking:
            return self._shadowed(block, record, site, ErrorReason.BLOCK_SCOPE_SHADOW)
        return Bound(self._owner_of(block, record, site))

    def _resolve_in_function(self, func: ScopeNode, site: UseSite) -> ResolutionResult:
        record = func.bindings.get(site.name)
        if record is not None and record.is_blocking:
            return self._shadowed(func, record, site, ErrorReason.BLOCK_SCOPE_SHADOW)

        if (
            record is None
            or not record.is_anchor
            or record.bound_order is None
            or record.bound_order >= site.order
        ):
            return ResolutionError(
                kind=ResolutionErrorKind.TARGET_NAME_ERROR,
                reason=ErrorReason.MISSING_BINDING,
                site=site,
                scope=func.index,
                fallback_scope=func.index,
            )
        return Bound(self._owner_of(func, record, site))

    def _resolve_through_transparent(self, scope: ScopeNode, site: UseSite) -> ResolutionResult:
        current = scope
        while current.kind.is_transparent:
            record = current.bindings.get(site.name)
            if record is not None and record.is_blocking:
                return self._shadowed(current, record, site, ErrorReason.TRANSPARENT_SCOPE_SHADOW)
            if current.parent is None:
                raise self._ice(f"[ICE-0101] {current.describe()} has no enclosing block scope", site)
            current = self._node(current.parent, site)

        if current.kind is ScopeKind.CLASS:
            return ResolutionError(
                kind=ResolutionErrorKind.CLASS_SCOPE_UNSUPPORTED,
                reason=ErrorReason.CLASS_SCOPE,
                site=site,
                scope=current.index,
            )
        if current.kind is ScopeKind.MODULE:
            return self._resolve_implicit(current, site)
        return self._resolve_in_function(current, site)

    def _owner_of(self, block: ScopeNode, record: BindingRecord, site: UseSite) -> int:
        if record.role in OUTER_ROLES:
            if record.effective_scope is None:
                raise self._ice(
                    f"[ICE-0102] outer declaration of '{record.name}' in {block.describe()} reached resolution unpromoted",
                    site,
                )
            return record.effective_scope
        if record.effective_scope is None:
            record.effective_scope = block.index
        return record.effective_scope

    def _shadowed(self, scope: ScopeNode, record: BindingRecord, site: UseSite, reason: ErrorReason) -> ResolutionError:
        return ResolutionError(
            kind=ResolutionErrorKind.SHADOWED_BINDING_TARGET,
            reason=reason,
            site=site,
            scope=scope.index,
            blocking_role=record.role,
        )

    def _node(self, index: int, site: UseSite) -> ScopeNode:
        if not 0 <= index < len(self.tree.nodes):
            raise self._ice(f"[ICE-0103] scope index {index} out of range", site)
        return self.tree.node(index)

    def _ice(self, message: str, site: UseSite) -> InternalResolverError:
        return InternalResolverError(message, ICELocation(filename=self.tree.filename, position=site.position))
