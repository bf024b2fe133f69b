#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Tuple, Union

from tr_scopes import Position, ScopeKind


# ==========================
# Parser event stream
# ==========================

class EventRole(Enum):
    PARAM = auto()
    ITER = auto()
    BIND = auto()  # plain assignment
    DECLARE = auto()  # type-only declaration
    NONLOCAL = auto()
    GLOBAL = auto()
    AUGMENTED = auto()  # augmented assignment target
    INLINE = auto()  # inline assignment target


@dataclass
class ScopeEnter:
    kind: ScopeKind
    label: Optional[str] = None
    position: Optional[Position] = None
    origin: Optional[Position] = field(default=None, repr=False, compare=False)  # location in the event file


@dataclass
class BindingEvent:
    name: str
    role: EventRole
    position: Optional[Position] = None
    origin: Optional[Position] = field(default=None, repr=False, compare=False)


@dataclass
class ScopeExit:
    origin: Optional[Position] = field(default=None, repr=False, compare=False)


Event = Union[ScopeEnter, BindingEvent, ScopeExit]


@dataclass
class EventStream:
    """Events for one compilation unit, plus the optional header values."""
    events: List[Event]
    unit_name: Optional[str] = None
    source: Optional[str] = None  # source file the positions refer to
    filename: Optional[str] = None  # event file the stream was read from


# ==========================
# Textual event format
# ==========================

SCOPE_KEYWORDS = {
    "module": ScopeKind.MODULE,
    "class": ScopeKind.CLASS,
    "function": ScopeKind.FUNCTION,
    "def": ScopeKind.FUNCTION,
    "lambda": ScopeKind.CLOSURE_EXPR,
    "closure": ScopeKind.CLOSURE_EXPR,
    "comprehension": ScopeKind.COMPREHENSION_LIKE,
    "genexpr": ScopeKind.COMPREHENSION_LIKE,
}

ROLE_KEYWORDS = {
    "param": EventRole.PARAM,
    "iter": EventRole.ITER,
    "bind": EventRole.BIND,
    "declare": EventRole.DECLARE,
    "nonlocal": EventRole.NONLOCAL,
    "global": EventRole.GLOBAL,
    "aug": EventRole.AUGMENTED,
    "walrus": EventRole.INLINE,
}

SCOPE_NAMES = {
    ScopeKind.MODULE: "module",
    ScopeKind.CLASS: "class",
    ScopeKind.FUNCTION: "function",
    ScopeKind.CLOSURE_EXPR: "lambda",
    ScopeKind.COMPREHENSION_LIKE: "comprehension",
}

ROLE_NAMES = {role: word for word, role in ROLE_KEYWORDS.items()}


@dataclass
class EventSyntaxError(Exception):
    message: str
    filename: str
    line: int
    column: int


def _is_identifier(text: str) -> bool:
    return text.replace(".", "_").isidentifier()


def _is_number(text: str) -> bool:
    return text.isascii() and text.isdecimal()


class EventReader:
    """
    Reads the line-oriented event format:

        # comment
        unit app.main
        source app/main.py
        enter function f @3:1
        param n @3:7
        aug total @5:9
        exit

    Every line holds one directive; `@LINE:COL` (optional) is the position
    in the original source. Errors are reported against the event file.
    """

    def __init__(self, text: str, filename: str = "<input>") -> None:
        self.text = text
        self.filename = filename

    def read(self) -> EventStream:
        stream = EventStream(events=[], filename=self.filename)
        for line_no, raw in enumerate(self.text.splitlines(), start=1):
            words = self._split(raw)
            if not words:
                continue
            self._read_directive(stream, words, line_no)
        return stream

    # --- internal helpers ---

    def _error(self, message: str, line: int, column: int) -> EventSyntaxError:
        return EventSyntaxError(message=message, filename=self.filename, line=line, column=column)

    def _split(self, raw: str) -> List[Tuple[str, int]]:
        """Split a line into (word, column) pairs, dropping comments."""
        words: List[Tuple[str, int]] = []
        i = 0
        n = len(raw)
        while i < n:
            c = raw[i]
            if c == "#":
                break
            if c.isspace():
                i += 1
                continue
            start = i
            while i < n and not raw[i].isspace() and raw[i] != "#":
                i += 1
            words.append((raw[start:i], start + 1))
        return words

    def _read_directive(self, stream: EventStream, words: List[Tuple[str, int]], line_no: int) -> None:
        head, head_col = words[0]
        origin = Position(line_no, head_col)

        position: Optional[Position] = None
        if len(words) > 1 and words[-1][0].startswith("@"):
            position = self._read_position(words[-1], line_no)
            words = words[:-1]
        args = words[1:]

        if head in ("unit", "source"):
            self._read_header(stream, head, args, origin)
            return

        if head == "enter":
            if not args:
                raise self._error("[EVT-0020] 'enter' requires a scope kind", line_no, head_col)
            kind_word, kind_col = args[0]
            kind = SCOPE_KEYWORDS.get(kind_word)
            if kind is None:
                raise self._error(f"[EVT-0030] unknown scope kind '{kind_word}'", line_no, kind_col)
            label = None
            if len(args) > 1:
                label, label_col = args[1]
                if not _is_identifier(label):
                    raise self._error(f"[EVT-0060] invalid scope label '{label}'", line_no, label_col)
            self._expect_end(args[2:], line_no)
            stream.events.append(ScopeEnter(kind=kind, label=label, position=position, origin=origin))
            return

        if head == "exit":
            self._expect_end(args, line_no)
            stream.events.append(ScopeExit(origin=origin))
            return

        role = ROLE_KEYWORDS.get(head)
        if role is None:
            raise self._error(f"[EVT-0010] unknown directive '{head}'", line_no, head_col)
        if not args:
            raise self._error(f"[EVT-0020] '{head}' requires a name", line_no, head_col)
        name, name_col = args[0]
        if not name.isidentifier():
            raise self._error(f"[EVT-0060] invalid name '{name}'", line_no, name_col)
        self._expect_end(args[1:], line_no)
        stream.events.append(BindingEvent(name=name, role=role, position=position, origin=origin))

    def _read_header(self, stream: EventStream, head: str, args, origin: Position) -> None:
        if not args:
            raise self._error(f"[EVT-0020] '{head}' requires a value", origin.line, origin.column)
        self._expect_end(args[1:], origin.line)
        if stream.events:
            raise self._error(f"[EVT-0070] '{head}' must appear before the first event", origin.line, origin.column)
        value, value_col = args[0]
        if head == "unit":
            if stream.unit_name is not None:
                raise self._error("[EVT-0070] duplicate 'unit' header", origin.line, origin.column)
            if not _is_identifier(value):
                raise self._error(f"[EVT-0060] invalid unit name '{value}'", origin.line, value_col)
            stream.unit_name = value
        else:
            if stream.source is not None:
                raise self._error("[EVT-0070] duplicate 'source' header", origin.line, origin.column)
            stream.source = value

    def _read_position(self, word: Tuple[str, int], line_no: int) -> Position:
        text, col = word
        line_text, sep, col_text = text[1:].partition(":")
        if not sep or not _is_number(line_text) or not _is_number(col_text):
            raise self._error(f"[EVT-0040] malformed position '{text}' (expected @LINE:COL)", line_no, col)
        line, column = int(line_text), int(col_text)
        if line < 1 or column < 1:
            raise self._error(f"[EVT-0040] position '{text}' out of range", line_no, col)
        return Position(line, column)

    def _expect_end(self, rest, line_no: int) -> None:
        if rest:
            word, col = rest[0]
            raise self._error(f"[EVT-0050] unexpected '{word}'", line_no, col)


def format_event(event: Event) -> str:
    """Render one event back into the textual format."""
    if isinstance(event, ScopeEnter):
        parts = ["enter", SCOPE_NAMES[event.kind]]
        if event.label:
            parts.append(event.label)
    elif isinstance(event, ScopeExit):
        return "exit"
    else:
        parts = [ROLE_NAMES[event.role], event.name]
    if event.position is not None:
        parts.append(f"@{event.position}")
    return " ".join(parts)
