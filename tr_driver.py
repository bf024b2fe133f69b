#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from pathlib import Path
from typing import Iterable, Optional

from tr_analysis import AnalysisResult
from tr_classifier import BindingClassifier, EventStructureError
from tr_context import ResolverContext
from tr_diagnostics import Diagnostic, diag_from_position
from tr_events import Event, EventReader, EventStream, EventSyntaxError
from tr_logger import log_debug, log_info, log_stage
from tr_promotion import PromotionPass
from tr_reporter import DiagnosticReporter
from tr_resolver import ResolutionEngine
from tr_scopes import ScopeTree


def read_failure_reason(e: Exception) -> str:
    if isinstance(e, UnicodeDecodeError):
        return f"not valid {e.encoding} (byte 0x{e.object[e.start]:02x} at offset {e.start})"
    return e.strerror or str(e)


class ResolverDriver:
    """
    Resolver pipeline driver:
      - read event file / text
      - materialize and classify the scope tree
      - promote outer declarations
      - resolve augmented/inline assignment targets
      - stage diagnostics by compatibility mode

    Entry points:
      - load_file(path) / load_text(text): parse the textual event format.
      - analyze_file(path) / analyze_text(text): full pipeline from text.
      - analyze_events(events): full pipeline from in-memory events.
      - resolve_tree(tree): promotion, resolution and reporting on a built tree.

    Each call works on its own tree and context; independent units can be
    resolved by independent drivers in parallel.
    """

    def __init__(self, context: ResolverContext | None = None):
        self.context = context or ResolverContext.default()

    # --- Public API ---

    def load_file(self, path: Path | str) -> EventStream:
        """Read an event file. Raises OSError, UnicodeDecodeError or EventSyntaxError."""
        path = Path(path)
        log_debug(self.context, f"Reading event file '{path}'")
        text = path.read_text(encoding="utf-8")
        stream = self.load_text(text, filename=str(path))
        if stream.source is not None and not Path(stream.source).is_absolute():
            stream.source = str(path.parent / stream.source)
        return stream

    def load_text(self, text: str, filename: str = "<input>") -> EventStream:
        return EventReader(text, filename=filename).read()

    def analyze_file(self, path: Path | str) -> AnalysisResult:
        log_info(self.context, f"Starting analysis of '{path}'")
        try:
            stream = self.load_file(path)
        except (OSError, UnicodeDecodeError) as e:
            result = AnalysisResult(context=self.context)
            result.diagnostics.append(
                Diagnostic(kind="error", message=f"[DRV-0010] cannot read {path}: {read_failure_reason(e)}")
            )
            return result
        except EventSyntaxError as e:
            return self._syntax_failure(e)
        return self.analyze_stream(stream)

    def analyze_text(self, text: str, filename: str = "<input>") -> AnalysisResult:
        try:
            stream = self.load_text(text, filename=filename)
        except EventSyntaxError as e:
            return self._syntax_failure(e)
        return self.analyze_stream(stream)

    def analyze_stream(self, stream: EventStream) -> AnalysisResult:
        return self.analyze_events(
            stream.events,
            unit_name=stream.unit_name,
            filename=stream.source if stream.source is not None else stream.filename,
        )

    def analyze_events(
            self,
            events: Iterable[Event],
            unit_name: Optional[str] = None,
            filename: Optional[str] = None,
    ) -> AnalysisResult:
        """
        High-level pipeline:

          1. Build and classify the scope tree.
          2. Promote outer declarations.
          3. Resolve every use site.
          4. Stage diagnostics.
        """
        log_stage(self.context, "Classifying bindings", unit_name)
        classifier = BindingClassifier(unit_name=unit_name, filename=filename)
        try:
            tree = classifier.classify(events)
        except EventStructureError as e:
            result = AnalysisResult(context=self.context)
            result.diagnostics.append(
                diag_from_position(
                    kind="error",
                    message=e.message,
                    unit_name=unit_name,
                    filename=filename,
                    position=e.origin,
                )
            )
            return result
        log_debug(self.context, f"Scope tree has {len(tree)} scope(s) and {len(tree.use_sites)} use site(s)")
        return self.resolve_tree(tree)

    def resolve_tree(self, tree: ScopeTree) -> AnalysisResult:
        result = AnalysisResult(tree=tree, context=self.context)

        log_stage(self.context, "Promoting outer declarations", tree.unit_name)
        promotion = PromotionPass(tree, self.context)
        result.promotions = promotion.run()
        log_debug(self.context, f"Promotion pass settled {len(result.promotions)} declaration(s)")

        log_stage(self.context, "Resolving assignment targets", tree.unit_name)
        engine = ResolutionEngine(tree, self.context)
        result.results = engine.resolve()

        log_stage(self.context, "Reporting diagnostics", tree.unit_name)
        reporter = DiagnosticReporter(tree, self.context.compatibility_mode)
        result.diagnostics.extend(reporter.report(result.results))
        result.effective_scopes = reporter.effective_scopes
        result.site_diagnostics = reporter.site_diagnostics
        log_debug(self.context, f"Resolution produced {len(result.diagnostics)} diagnostic(s)")
        return result

    # --- internal helpers ---

    def _syntax_failure(self, e: EventSyntaxError) -> AnalysisResult:
        result = AnalysisResult(context=self.context)
        result.diagnostics.append(
            Diagnostic(
                kind="error",
                message=f"syntax: {e.message}",
                filename=e.filename,
                line=e.line,
                column=e.column,
            )
        )
        return result
