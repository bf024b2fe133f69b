#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from tr_context import ResolverContext
from tr_logger import log_debug
from tr_scopes import BindingRecord, BindingRole, OUTER_ROLES, ScopeKind, ScopeNode, ScopeTree


@dataclass(frozen=True)
class Promotion:
    """One outer declaration resolved to its owning scope."""
    scope: int  # scope holding the declaration
    name: str
    role: BindingRole  # role after promotion
    owner: int  # effective scope
    promoted_from: Optional[BindingRole] = None
    deferred: bool = False  # no binding found in the chain; lookup deferred to runtime


class PromotionPass:
    """
    Resolves 'nonlocal' (OUTER_FUNCTION_DECLARED) and 'global'
    (OUTER_MODULE_DECLARED) records to concrete owning scopes.

    Scopes are visited in pre-order so an enclosing function's declarations
    are resolved before the ones nested inside it; this makes chains
    transitive:

        def f1():
            global x
            def f2():
                nonlocal x     # -> module, promoted to OUTER_MODULE_DECLARED
                x += 1

    A 'nonlocal' whose name is not bound anywhere in the chain is not an
    error here: the record targets the immediately enclosing function (or
    the module when there is none) and the lookup is left to runtime.
    """

    def __init__(self, tree: ScopeTree, context: Optional[ResolverContext] = None) -> None:
        self.tree = tree
        self.context = context or ResolverContext.default()
        self.promotions: List[Promotion] = []

    def run(self) -> List[Promotion]:
        for node in self.tree.preorder():
            for record in node.bindings.values():
                if record.role in OUTER_ROLES and record.effective_scope is None:
                    self._promote(node, record)
        return self.promotions

    # --- internal helpers ---

    def _promote(self, node: ScopeNode, record: BindingRecord) -> None:
        root = self.tree.root

        if record.role is BindingRole.OUTER_MODULE_DECLARED:
            self._settle(node, record, root.index)
            return

        first_function: Optional[ScopeNode] = None
        for anc in self.tree.ancestors(node):
            if anc.kind is not ScopeKind.FUNCTION:
                continue
            if first_function is None:
                first_function = anc
            outer = anc.bindings.get(record.name)
            if outer is None:
                continue

            if outer.role in OUTER_ROLES:
                if outer.effective_scope is None:
                    self._promote(anc, outer)
                if outer.role is BindingRole.OUTER_MODULE_DECLARED:
                    record.promoted_from = record.role
                    record.role = BindingRole.OUTER_MODULE_DECLARED
                self._settle(node, record, outer.effective_scope, deferred=self._is_deferred(anc, outer))
                return

            self._settle(node, record, anc.index)
            return

        owner = first_function.index if first_function is not None else root.index
        self._settle(node, record, owner, deferred=True)

    def _is_deferred(self, scope: ScopeNode, record: BindingRecord) -> bool:
        return any(
            p.deferred for p in self.promotions
            if p.scope == scope.index and p.name == record.name
        )

    def _settle(self, node: ScopeNode, record: BindingRecord, owner: int, deferred: bool = False) -> None:
        record.effective_scope = owner
        self.promotions.append(
            Promotion(
                scope=node.index,
                name=record.name,
                role=record.role,
                owner=owner,
                promoted_from=record.promoted_from,
                deferred=deferred,
            )
        )
        note = " (deferred)" if deferred else ""
        if record.promoted_from is not None:
            note += f" (promoted from {record.promoted_from.name})"
        log_debug(
            self.context,
            f"Promoted '{record.name}' in {node.describe()} -> {self.tree.node(owner).describe()}{note}",
        )
