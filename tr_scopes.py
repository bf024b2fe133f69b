#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional


# ==========================
# Scope tree data model
# ==========================


@dataclass(frozen=True)
class Position:
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class ScopeKind(Enum):
    MODULE = auto()
    CLASS = auto()
    FUNCTION = auto()
    CLOSURE_EXPR = auto()  # lambda / arrow function
    COMPREHENSION_LIKE = auto()  # comprehensions, generator expressions

    @property
    def is_block(self) -> bool:
        return self in (ScopeKind.MODULE, ScopeKind.CLASS, ScopeKind.FUNCTION)

    @property
    def is_transparent(self) -> bool:
        return not self.is_block


class BindingRole(Enum):
    PLAIN_BINDING = auto()  # assignment or type-only declaration
    OUTER_FUNCTION_DECLARED = auto()  # 'nonlocal'
    OUTER_MODULE_DECLARED = auto()  # 'global'
    PARAMETER = auto()
    ITERATION_VAR = auto()
    TARGET_ONLY = auto()  # only ever used as an augmented/inline target


# Roles that make a name unusable as an augmented/inline target.
BLOCKING_ROLES = frozenset({BindingRole.PARAMETER, BindingRole.ITERATION_VAR})

# Roles that can anchor a later augmented/inline target in a function scope.
ANCHOR_ROLES = frozenset({
    BindingRole.PLAIN_BINDING,
    BindingRole.OUTER_FUNCTION_DECLARED,
    BindingRole.OUTER_MODULE_DECLARED,
})

OUTER_ROLES = frozenset({BindingRole.OUTER_FUNCTION_DECLARED, BindingRole.OUTER_MODULE_DECLARED})


class OperatorKind(Enum):
    AUGMENTED_OP = auto()  # x += e
    INLINE_ASSIGN = auto()  # x := e

    def describe(self) -> str:
        return "augmented assignment" if self is OperatorKind.AUGMENTED_OP else "inline assignment"


@dataclass
class BindingRecord:
    """
    A single name binding inside one scope.

    `bound_order` is the program-order sequence number of the event that
    gave this record its current role (None for TARGET_ONLY records).
    `effective_scope` is the index of the owning block scope; it is filled
    lazily by the promotion pass and the resolution engine and never changes
    once set.
    """
    name: str
    role: BindingRole
    declared_at: Optional[Position] = None
    bound_order: Optional[int] = None
    effective_scope: Optional[int] = None
    promoted_from: Optional[BindingRole] = None  # set when chained promotion upgraded the role
    implicit: bool = False  # created by module/class implicit declaration

    @property
    def is_blocking(self) -> bool:
        return self.role in BLOCKING_ROLES

    @property
    def is_anchor(self) -> bool:
        return self.role in ANCHOR_ROLES


@dataclass
class ScopeNode:
    """
    One lexical scope. Nodes live in a ScopeTree arena; `parent` and
    `children` are arena indices, never owning references.
    """
    index: int
    kind: ScopeKind
    parent: Optional[int] = None
    label: Optional[str] = None
    position: Optional[Position] = None
    children: List[int] = field(default_factory=list)
    bindings: Dict[str, BindingRecord] = field(default_factory=dict)

    def describe(self) -> str:
        kind = {
            ScopeKind.MODULE: "module",
            ScopeKind.CLASS: "class",
            ScopeKind.FUNCTION: "function",
            ScopeKind.CLOSURE_EXPR: "closure",
            ScopeKind.COMPREHENSION_LIKE: "comprehension",
        }[self.kind]
        if self.label:
            return f"{kind} '{self.label}'"
        if self.position is not None:
            return f"{kind} at {self.position}"
        return f"{kind} #{self.index}"


@dataclass(frozen=True)
class UseSite:
    """An augmented or inline assignment occurrence."""
    index: int
    name: str
    enclosing_scope: int
    operator: OperatorKind
    position: Optional[Position]
    order: int  # program-order sequence number


class ScopeTree:
    """
    Arena of ScopeNodes for one compilation unit.

    Index 0 is the root. Scopes are appended in the order the parser enters
    them, so index order is also the pre-order of the tree.
    """

    def __init__(self, unit_name: Optional[str] = None, filename: Optional[str] = None) -> None:
        self.unit_name = unit_name
        self.filename = filename
        self.nodes: List[ScopeNode] = []
        self.use_sites: List[UseSite] = []

    @property
    def root(self) -> ScopeNode:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, index: int) -> ScopeNode:
        return self.nodes[index]

    def add_scope(
            self,
            kind: ScopeKind,
            parent: Optional[int] = None,
            label: Optional[str] = None,
            position: Optional[Position] = None,
    ) -> ScopeNode:
        node = ScopeNode(index=len(self.nodes), kind=kind, parent=parent, label=label, position=position)
        self.nodes.append(node)
        if parent is not None:
            self.nodes[parent].children.append(node.index)
        return node

    def add_use_site(
            self,
            name: str,
            enclosing_scope: int,
            operator: OperatorKind,
            position: Optional[Position],
            order: int,
    ) -> UseSite:
        site = UseSite(
            index=len(self.use_sites),
            name=name,
            enclosing_scope=enclosing_scope,
            operator=operator,
            position=position,
            order=order,
        )
        self.use_sites.append(site)
        return site

    def parent_of(self, node: ScopeNode) -> Optional[ScopeNode]:
        if node.parent is None:
            return None
        return self.nodes[node.parent]

    def ancestors(self, node: ScopeNode) -> Iterator[ScopeNode]:
        """Yield the enclosing scopes of `node`, innermost first (excluding `node`)."""
        current = self.parent_of(node)
        while current is not None:
            yield current
            current = self.parent_of(current)

    def nearest_block(self, node: ScopeNode) -> Optional[ScopeNode]:
        """Return `node` itself if it is a block scope, else its nearest block ancestor."""
        if node.kind.is_block:
            return node
        for anc in self.ancestors(node):
            if anc.kind.is_block:
                return anc
        return None

    def preorder(self) -> Iterator[ScopeNode]:
        if not self.nodes:
            return
        stack = [self.root.index]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def sites_in(self, node: ScopeNode) -> List[UseSite]:
        return [s for s in self.use_sites if s.enclosing_scope == node.index]
