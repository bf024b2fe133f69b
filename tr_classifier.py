#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from tr_events import BindingEvent, Event, EventRole, ScopeEnter, ScopeExit
from tr_scopes import (
    BindingRecord, BindingRole, OperatorKind, Position, ScopeKind, ScopeNode, ScopeTree,
)


@dataclass
class EventStructureError(Exception):
    """The event stream does not describe a well-formed scope tree."""
    message: str
    origin: Optional[Position] = None


_DECLARATION_ROLES = {
    EventRole.PARAM: BindingRole.PARAMETER,
    EventRole.ITER: BindingRole.ITERATION_VAR,
    EventRole.NONLOCAL: BindingRole.OUTER_FUNCTION_DECLARED,
    EventRole.GLOBAL: BindingRole.OUTER_MODULE_DECLARED,
}


class BindingClassifier:
    """
    Materializes a parser event stream into a ScopeTree and classifies every
    name occurrence into a BindingRecord or a UseSite.

    Public API:

        classifier = BindingClassifier(unit_name="app.main")
        tree = classifier.classify(events)

    Rules:

    - Every event gets a program-order sequence number; a record remembers
      the number of the event that gave it its current role (`bound_order`).
    - PARAMETER / ITERATION_VAR roles are permanent: no later event in the
      same scope changes them.
    - Outer declarations ('nonlocal' / 'global') overwrite any other role;
      the owning scope is left for the promotion pass.
    - Plain assignments and type-only declarations create PLAIN_BINDING;
      they upgrade a TARGET_ONLY record but never demote a declaration.
    - Augmented/inline targets become UseSites. When the nearest block scope
      is a function and has no record for the name, a TARGET_ONLY record is
      left there, unless a parameter or iteration variable of a transparent
      scope in between already blocks the name.
    """

    def __init__(self, unit_name: Optional[str] = None, filename: Optional[str] = None) -> None:
        self.unit_name = unit_name
        self.filename = filename
        self.tree = ScopeTree(unit_name=unit_name, filename=filename)
        self._stack: List[ScopeNode] = []
        self._order = 0

    # --- public API ---

    def classify(self, events: Iterable[Event]) -> ScopeTree:
        for event in events:
            self._order += 1
            if isinstance(event, ScopeEnter):
                self._enter(event)
            elif isinstance(event, ScopeExit):
                self._exit(event)
            elif isinstance(event, BindingEvent):
                self._bind(event)
            else:
                raise TypeError(f"unexpected event {event!r}")

        if self._stack:
            open_scope = self._stack[-1]
            raise EventStructureError(
                f"[DRV-0023] {open_scope.describe()} is never closed",
                open_scope.position,
            )
        if not self.tree.nodes:
            raise EventStructureError("[DRV-0024] event stream contains no scopes")
        return self.tree

    # --- internal helpers ---

    def _enter(self, event: ScopeEnter) -> None:
        if not self._stack:
            if self.tree.nodes:
                raise EventStructureError("[DRV-0022] event stream has more than one root scope", event.origin)
            if event.kind is not ScopeKind.MODULE:
                raise EventStructureError(
                    f"[DRV-0025] root scope must be a module, got {event.kind.name.lower()}",
                    event.origin,
                )
            label = event.label or self.unit_name
            node = self.tree.add_scope(ScopeKind.MODULE, None, label, event.position)
        else:
            parent = self._stack[-1]
            node = self.tree.add_scope(event.kind, parent.index, event.label, event.position)
        self._stack.append(node)

    def _exit(self, event: ScopeExit) -> None:
        if not self._stack:
            raise EventStructureError("[DRV-0020] 'exit' without a matching 'enter'", event.origin)
        self._stack.pop()

    def _bind(self, event: BindingEvent) -> None:
        if not self._stack:
            raise EventStructureError(
                f"[DRV-0021] binding event for '{event.name}' outside any scope",
                event.origin,
            )
        scope = self._stack[-1]

        if event.role in (EventRole.AUGMENTED, EventRole.INLINE):
            self._use(scope, event)
        elif event.role in (EventRole.BIND, EventRole.DECLARE):
            self._plain(scope, event)
        else:
            self._declare(scope, event, _DECLARATION_ROLES[event.role])

    def _plain(self, scope: ScopeNode, event: BindingEvent) -> None:
        record = scope.bindings.get(event.name)
        if record is None:
            scope.bindings[event.name] = BindingRecord(
                name=event.name,
                role=BindingRole.PLAIN_BINDING,
                declared_at=event.position,
                bound_order=self._order,
            )
            return
        if record.role is BindingRole.TARGET_ONLY:
            record.role = BindingRole.PLAIN_BINDING
            record.declared_at = event.position
            record.bound_order = self._order

    def _declare(self, scope: ScopeNode, event: BindingEvent, role: BindingRole) -> None:
        record = scope.bindings.get(event.name)
        if record is None:
            scope.bindings[event.name] = BindingRecord(
                name=event.name,
                role=role,
                declared_at=event.position,
                bound_order=self._order,
            )
            return
        if record.is_blocking:
            return
        record.role = role
        record.declared_at = event.position
        record.effective_scope = None
        record.bound_order = self._order

    def _use(self, scope: ScopeNode, event: BindingEvent) -> None:
        operator = OperatorKind.AUGMENTED_OP if event.role is EventRole.AUGMENTED else OperatorKind.INLINE_ASSIGN
        self.tree.add_use_site(event.name, scope.index, operator, event.position, self._order)

        block = self.tree.nearest_block(scope)
        if (
                block is not None
                and block.kind is ScopeKind.FUNCTION
                and event.name not in block.bindings
                and not self._blocked_before(scope, block, event.name)
        ):
            block.bindings[event.name] = BindingRecord(
                name=event.name,
                role=BindingRole.TARGET_ONLY,
                declared_at=event.position,
            )

    def _blocked_before(self, scope: ScopeNode, block: ScopeNode, name: str) -> bool:
        """True if a transparent scope between `scope` and `block` blocks `name`."""
        current = scope
        while current is not block:
            record = current.bindings.get(name)
            if record is not None and record.is_blocking:
                return True
            current = self.tree.parent_of(current)
        return False
