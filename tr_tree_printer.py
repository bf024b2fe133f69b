#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import List, Mapping, Optional

from tr_diagnostics import Diagnostic
from tr_scopes import BindingRecord, OperatorKind, Position, ScopeNode, ScopeTree, UseSite


def _format_pos(position: Optional[Position]) -> str:
    if position is None:
        return ""
    return f" @{position}"


def _format_record(tree: ScopeTree, record: BindingRecord) -> str:
    line = f"{record.name}: {record.role.name}{_format_pos(record.declared_at)}"
    if record.effective_scope is not None:
        line += f" -> {tree.node(record.effective_scope).describe()}"
    if record.promoted_from is not None:
        line += f" (promoted from {record.promoted_from.name})"
    if record.implicit:
        line += " (implicit)"
    return line


def format_site(
        tree: ScopeTree,
        site: UseSite,
        effective_scopes: Optional[Mapping[int, int]] = None,
        site_diagnostics: Optional[Mapping[int, Diagnostic]] = None,
) -> str:
    """One-line summary of a use site and, when known, its resolution."""
    op = "+=" if site.operator is OperatorKind.AUGMENTED_OP else ":="
    line = f"{op} {site.name}{_format_pos(site.position)}"
    if effective_scopes is not None and site.index in effective_scopes:
        line += f" -> {tree.node(effective_scopes[site.index]).describe()}"
    if site_diagnostics is not None and site.index in site_diagnostics:
        diag = site_diagnostics[site.index]
        line += f" [{diag.kind}: {diag.code}]"
    return line


def format_scope(
        tree: ScopeTree,
        node: ScopeNode,
        indent: int = 0,
        effective_scopes: Optional[Mapping[int, int]] = None,
        site_diagnostics: Optional[Mapping[int, Diagnostic]] = None,
) -> List[str]:
    """
    Pretty-print a scope and its descendants:

    - Header with the scope kind, label and position.
    - Bindings sorted by name, with role and effective scope.
    - Use sites in program order, annotated when resolution results are given.
    - Child scopes indented below.
    """
    ind = "  " * indent
    lines: List[str] = [f"{ind}{node.describe()} #{node.index}{_format_pos(node.position)}"]

    if node.bindings:
        lines.append(ind + "  bindings:")
        for name in sorted(node.bindings):
            lines.append(ind + "    " + _format_record(tree, node.bindings[name]))

    sites = tree.sites_in(node)
    if sites:
        lines.append(ind + "  uses:")
        for site in sites:
            lines.append(ind + "    " + format_site(tree, site, effective_scopes, site_diagnostics))

    for child in node.children:
        lines.extend(format_scope(tree, tree.node(child), indent + 1, effective_scopes, site_diagnostics))
    return lines


def format_tree(
        tree: ScopeTree,
        effective_scopes: Optional[Mapping[int, int]] = None,
        site_diagnostics: Optional[Mapping[int, Diagnostic]] = None,
) -> str:
    if not tree.nodes:
        return "<empty>"
    return "\n".join(format_scope(tree, tree.root, 0, effective_scopes, site_diagnostics))
