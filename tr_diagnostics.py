#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
import re
from dataclasses import dataclass
from typing import Optional

from tr_scopes import Position


_CODE_RE = re.compile(r"\[([A-Z]{3}-\d{4})\]")

DIAGNOSTIC_CODE_FAMILIES = {
    "EVT": [
        "EVT-0010",  # unknown directive
        "EVT-0020",  # missing argument
        "EVT-0030",  # unknown scope kind
        "EVT-0040",  # malformed position
        "EVT-0050",  # trailing tokens
        "EVT-0060",  # invalid identifier
        "EVT-0070",  # misplaced or duplicate header
    ],
    "DRV": [
        "DRV-0010",  # unreadable input file
        "DRV-0020",  # 'exit' without matching 'enter'
        "DRV-0021",  # binding event outside any scope
        "DRV-0022",  # more than one root scope
        "DRV-0023",  # unclosed scope at end of stream
        "DRV-0024",  # empty event stream
        "DRV-0025",  # root scope is not a module
    ],
    "RES": [
        "RES-0110",  # TargetNameError: augmented target without preceding binding
        "RES-0111",  # TargetNameError: inline target without existing binding
        "RES-0120",  # ShadowedBindingTarget: parameter/iteration variable of the block scope
        "RES-0121",  # ShadowedBindingTarget: parameter/iteration variable of a transparent scope
        "RES-0130",  # ClassScopeUnsupported
    ],
    # ICE codes are internal resolver errors raised as exceptions,
    # not user-facing diagnostics; they are excluded from this registry.
}


@dataclass
class Diagnostic:
    kind: str  # "error" or "warning"
    message: str
    unit_name: Optional[str] = None
    filename: Optional[str] = None

    # Primary location
    line: Optional[int] = None
    column: Optional[int] = None

    # Resolution details (resolver diagnostics only)
    category: Optional[str] = None  # TargetNameError | ShadowedBindingTarget | ClassScopeUnsupported
    name: Optional[str] = None  # target name

    @property
    def code(self) -> Optional[str]:
        m = _CODE_RE.search(self.message)
        return m.group(1) if m else None

    @property
    def position(self) -> Optional[Position]:
        if self.line is None or self.column is None:
            return None
        return Position(self.line, self.column)

    # Return the one-line header; snippets will be printed at the call site
    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += f"{os.path.abspath(str(self.filename))}"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
            if self.unit_name is not None:
                loc += f"({self.unit_name})"
        if loc:
            loc += ": "
        return f"{loc}{self.kind}: {self.message}"


def diag_from_position(
        kind: str,
        message: str,
        *,
        unit_name: Optional[str],
        filename: Optional[str],
        position: Optional[Position],
        category: Optional[str] = None,
        name: Optional[str] = None,
) -> Diagnostic:
    line = column = None
    if position is not None:
        line = position.line
        column = position.column
    return Diagnostic(
        kind=kind,
        message=message,
        unit_name=unit_name,
        filename=filename,
        line=line,
        column=column,
        category=category,
        name=name,
    )
