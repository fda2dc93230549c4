"""
Minimal Lisp reader.

Scans Clojure-style source one character at a time and keeps just enough
state to find indentation points and parens:

- Parens:     (round), [square], {curly}
- Comments:   ; rest of line
- Strings:    "string" (may span lines)
- Characters: \\c

Callers plug in behavior through a Hooks value; the reader itself knows
nothing about indentation.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

BACKSLASH = "\\"
SPACE = " "
TAB = "\t"
DOUBLE_QUOTE = '"'
SEMICOLON = ";"

LINE_ENDING_RE = re.compile(r"\r?\n")

OPEN_PARENS = "([{"
CLOSE_PARENS = ")]}"
MATCH_PAREN = {
    "{": "}",
    "}": "{",
    "[": "]",
    "]": "[",
    "(": ")",
    ")": "(",
}


class ErrorKind(Enum):
    UNCLOSED_QUOTE = "unclosed-quote"
    UNCLOSED_PAREN = "unclosed-paren"
    UNMATCHED_CLOSE_PAREN = "unmatched-close-paren"
    UNMATCHED_OPEN_PAREN = "unmatched-open-paren"
    UNHANDLED = "unhandled"


ERROR_MESSAGES = {
    ErrorKind.UNCLOSED_QUOTE: "String is missing a closing quote.",
    ErrorKind.UNCLOSED_PAREN: "Unclosed open-paren.",
    ErrorKind.UNMATCHED_CLOSE_PAREN: "Unmatched close-paren.",
    ErrorKind.UNMATCHED_OPEN_PAREN: "Unmatched open-paren.",
    ErrorKind.UNHANDLED: "Unhandled error.",
}


@dataclass
class ErrorPosition:
    line_no: int
    x: int
    kind: Optional[ErrorKind] = None


class ReaderError(Exception):
    """A structural problem in the text (bad quotes or parens)."""

    def __init__(self, kind: ErrorKind, line_no: int, x: int, extra: Optional[ErrorPosition] = None):
        self.kind = kind
        self.line_no = line_no
        self.x = x
        self.message = ERROR_MESSAGES[kind]
        self.extra = extra
        super().__init__(f"{self.message} (line {line_no + 1}, column {x})")


class UnhandledError(RuntimeError):
    """Anything that went wrong during a scan that is not a ReaderError.

    This signals a bug in the reader or in a hook, so it is never turned
    into a formatting failure.
    """

    kind = ErrorKind.UNHANDLED

    def __init__(self, line_no: int, x: int, message: str):
        self.line_no = line_no
        self.x = x
        self.message = message
        super().__init__(f"{ERROR_MESSAGES[self.kind]} {message}")


@dataclass
class Opener:
    ch: str
    line_no: int
    x: int
    # set by the indent engine when the opener is created
    indent_delta: int = 0
    child_indent_x: Optional[int] = None


@dataclass(frozen=True)
class Hooks:
    on_scan_start: Optional[Callable[["ScanState"], None]] = None
    on_line_start: Optional[Callable[["ScanState"], None]] = None
    on_indent_point: Optional[Callable[["ScanState"], None]] = None
    on_opener_created: Optional[Callable[["ScanState", Opener], None]] = None
    on_scan_end: Optional[Callable[["ScanState"], None]] = None


@dataclass
class ScanState:
    lines: List[str]
    hooks: Hooks = field(default_factory=Hooks)

    line_no: int = -1
    x: int = -1
    ch: str = ""

    # innermost opener last
    paren_stack: List[Opener] = field(default_factory=list)

    is_in_string: bool = False
    is_in_comment: bool = False
    is_escaping: bool = False
    tracking_indent: bool = False

    success: bool = False
    error: Optional[Exception] = None
    error_pos_cache: Dict[ErrorKind, ErrorPosition] = field(default_factory=dict)

    @property
    def is_in_code(self) -> bool:
        return not self.is_in_string and not self.is_in_comment


def peek(stack: List[Opener]) -> Optional[Opener]:
    return stack[-1] if stack else None


def is_open_paren(ch: str) -> bool:
    return ch != "" and ch in OPEN_PARENS


def is_close_paren(ch: str) -> bool:
    return ch != "" and ch in CLOSE_PARENS


def is_valid_close_paren(stack: List[Opener], ch: str) -> bool:
    opener = peek(stack)
    return opener is not None and opener.ch == MATCH_PAREN[ch]


def cache_error_pos(state: ScanState, kind: ErrorKind) -> ErrorPosition:
    pos = ErrorPosition(state.line_no, state.x)
    state.error_pos_cache[kind] = pos
    return pos


def make_error(state: ScanState, kind: ErrorKind) -> ReaderError:
    """Build an error that points at the origin of the problem when it is known."""
    cached = state.error_pos_cache.get(kind)
    line_no, x = (cached.line_no, cached.x) if cached else (state.line_no, state.x)
    extra = None

    if kind is ErrorKind.UNMATCHED_CLOSE_PAREN:
        # where the open-paren it should have matched lives
        open_cached = state.error_pos_cache.get(ErrorKind.UNMATCHED_OPEN_PAREN)
        opener = peek(state.paren_stack)
        if open_cached:
            extra = ErrorPosition(open_cached.line_no, open_cached.x, ErrorKind.UNMATCHED_OPEN_PAREN)
        elif opener:
            extra = ErrorPosition(opener.line_no, opener.x, ErrorKind.UNMATCHED_OPEN_PAREN)
    elif kind is ErrorKind.UNCLOSED_PAREN:
        outermost = state.paren_stack[0]
        line_no, x = outermost.line_no, outermost.x

    return ReaderError(kind, line_no, x, extra)


def init_line(state: ScanState) -> None:
    state.error_pos_cache.pop(ErrorKind.UNMATCHED_CLOSE_PAREN, None)
    state.error_pos_cache.pop(ErrorKind.UNMATCHED_OPEN_PAREN, None)

    state.is_in_comment = False
    state.is_escaping = False
    state.tracking_indent = not state.is_in_string

    if state.hooks.on_line_start:
        state.hooks.on_line_start(state)


def on_open_paren(state: ScanState) -> None:
    if state.is_in_code:
        opener = Opener(ch=state.ch, line_no=state.line_no, x=state.x)
        if state.hooks.on_opener_created:
            state.hooks.on_opener_created(state, opener)
        state.paren_stack.append(opener)


def on_close_paren(state: ScanState) -> None:
    if state.is_in_code:
        if is_valid_close_paren(state.paren_stack, state.ch):
            state.paren_stack.pop()
        else:
            raise make_error(state, ErrorKind.UNMATCHED_CLOSE_PAREN)


def on_quote(state: ScanState) -> None:
    if state.is_in_string:
        state.is_in_string = False
    elif not state.is_in_comment:
        state.is_in_string = True
        cache_error_pos(state, ErrorKind.UNCLOSED_QUOTE)


def on_semicolon(state: ScanState) -> None:
    if state.is_in_code:
        state.is_in_comment = True


def on_tab(state: ScanState) -> None:
    if state.is_in_code:
        logger.warning("TAB character found at line %d, column %d", state.line_no + 1, state.x)


def on_char(state: ScanState) -> None:
    ch = state.ch

    if state.is_escaping:
        state.is_escaping = False
    elif is_open_paren(ch):
        on_open_paren(state)
    elif is_close_paren(ch):
        on_close_paren(state)
    elif ch == DOUBLE_QUOTE:
        on_quote(state)
    elif ch == SEMICOLON:
        on_semicolon(state)
    elif ch == BACKSLASH:
        state.is_escaping = True
    elif ch == TAB:
        on_tab(state)


def check_indent(state: ScanState) -> None:
    if state.tracking_indent and state.ch != SPACE and state.ch != TAB:
        state.tracking_indent = False
        if state.hooks.on_indent_point:
            state.hooks.on_indent_point(state)


def read_char(state: ScanState, ch: str) -> None:
    state.ch = ch
    check_indent(state)
    on_char(state)


def read_line(state: ScanState, line: str) -> None:
    init_line(state)
    for x, ch in enumerate(line):
        state.x = x
        read_char(state, ch)


def finalize_state(state: ScanState) -> None:
    if state.is_in_string:
        raise make_error(state, ErrorKind.UNCLOSED_QUOTE)
    if state.paren_stack:
        raise make_error(state, ErrorKind.UNCLOSED_PAREN)
    state.success = True

    if state.hooks.on_scan_end:
        state.hooks.on_scan_end(state)


def split_lines(text: str) -> List[str]:
    return LINE_ENDING_RE.split(text)


def read_text(text: str, hooks: Optional[Hooks] = None) -> ScanState:
    """Scan text and return the final state.

    Structural problems end the scan and are left on state.error with
    state.success set to False. Anything else is re-raised as UnhandledError.
    """
    state = ScanState(lines=split_lines(text), hooks=hooks or Hooks())
    try:
        if state.hooks.on_scan_start:
            state.hooks.on_scan_start(state)
        for line_no, line in enumerate(state.lines):
            state.line_no = line_no
            read_line(state, line)
        finalize_state(state)
    except ReaderError as e:
        state.success = False
        state.error = e
    except Exception as e:
        state.success = False
        state.error = UnhandledError(state.line_no, state.x, f"{type(e).__name__}: {e}")
        raise state.error from e
    return state
