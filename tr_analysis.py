#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tr_context import ResolverContext
from tr_diagnostics import Diagnostic
from tr_promotion import Promotion
from tr_resolver import ResolutionResult
from tr_scopes import ScopeNode, ScopeTree, UseSite


@dataclass
class AnalysisResult:
    """
    Full resolver result for one compilation unit.

    Contains:
      - the scope tree (bindings annotated with effective scopes)
      - resolver context (compatibility mode, logging)
      - promotions performed for outer declarations
      - per-use-site resolution results and effective scopes
      - diagnostics accumulated from all stages
    """
    tree: Optional[ScopeTree] = None
    context: ResolverContext = field(default_factory=ResolverContext.default)

    promotions: List[Promotion] = field(default_factory=list)

    # Keys are UseSite indices
    results: Dict[int, ResolutionResult] = field(default_factory=dict)
    effective_scopes: Dict[int, int] = field(default_factory=dict)
    site_diagnostics: Dict[int, Diagnostic] = field(default_factory=dict)

    diagnostics: List[Diagnostic] = field(default_factory=list)

    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.diagnostics)

    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.diagnostics)

    @property
    def use_sites(self) -> List[UseSite]:
        return self.tree.use_sites if self.tree is not None else []

    def effective_scope_of(self, site: UseSite) -> Optional[ScopeNode]:
        """Owning block scope of `site`, or None when resolution failed."""
        index = self.effective_scopes.get(site.index)
        if index is None or self.tree is None:
            return None
        return self.tree.node(index)

    def diagnostic_for(self, site: UseSite) -> Optional[Diagnostic]:
        return self.site_diagnostics.get(site.index)

    def sites_named(self, name: str) -> List[UseSite]:
        return [s for s in self.use_sites if s.name == name]
