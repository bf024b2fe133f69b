#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from tr_scopes import Position

_ICE_CODE_RE = re.compile(r"\[(ICE-\d{4})\]")
DEFAULT_ICE_CODE = "ICE-9999"


@dataclass(frozen=True)
class ICELocation:
    """Source location at which a broken invariant was observed."""
    filename: Optional[str]
    position: Optional[Position] = None

    def prefix(self) -> str:
        if not self.filename:
            return ""
        if self.position is None:
            return f"{self.filename}: "
        return f"{self.filename}:{self.position}: "


class InternalResolverError(RuntimeError):
    """
    A pipeline stage received a tree or result that an earlier stage must
    never produce. Mistakes in the event stream are Diagnostics, never this.
    """

    def __init__(self, message: str, loc: Optional[ICELocation] = None):
        super().__init__(message)
        self.message = message
        self.loc = loc

    @property
    def code(self) -> str:
        match = _ICE_CODE_RE.search(self.message)
        return match.group(1) if match else DEFAULT_ICE_CODE

    def format(self) -> str:
        message = self.message
        if _ICE_CODE_RE.search(message) is None:
            message = f"[{DEFAULT_ICE_CODE}] {message}"
        where = self.loc.prefix() if self.loc is not None else ""
        return f"{where}internal resolver error: {message}"
