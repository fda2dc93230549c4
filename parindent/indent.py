"""
Minimal Lisp indenter built on the reader.

Every line is moved to the column given by a few simple rules:

- top-level lines start at column 0
- children of [ and { line up one column past the bracket
- children of ( line up two columns past it when the form starts with a
  symbol, one column otherwise, unless the first child line is already
  aligned under the first argument, in which case that alignment is kept
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from parindent.reader import (
    CLOSE_PARENS,
    DOUBLE_QUOTE,
    OPEN_PARENS,
    SEMICOLON,
    SPACE,
    TAB,
    Hooks,
    Opener,
    ReaderError,
    ScanState,
    peek,
    read_text,
)

logger = logging.getLogger(__name__)

SYMBOL_PUNCTUATION = ".*+!-_?$%&=<>:#/"
TOKEN_END_CHARS = SPACE + TAB + OPEN_PARENS + CLOSE_PARENS + SEMICOLON + DOUBLE_QUOTE


@dataclass
class IndentFix:
    line_no: int
    indent_delta: int


@dataclass
class IndentResult:
    success: bool
    text: Optional[str] = None
    fixes: List[IndentFix] = field(default_factory=list)
    error: Optional[ReaderError] = None


def is_symbol(token: str) -> bool:
    if not token:
        return False
    first = token[0]
    if first.isdigit() or first in ":#":
        return False
    # numbers like -1, +2, .5
    if first in "-+." and len(token) > 1 and token[1].isdigit():
        return False
    return all(c.isalnum() or c in SYMBOL_PUNCTUATION for c in token)


def scan_for_code(line: str, x: int) -> Optional[int]:
    """Return the column of the next token at or after x, or None if the line
    ends (or a comment starts) first."""
    while x < len(line) and line[x] in (SPACE, TAB):
        x += 1
    if x >= len(line) or line[x] == SEMICOLON:
        return None
    return x


def scan_for_space(line: str, x: int) -> int:
    """Return the column where the token starting at x ends."""
    while x < len(line) and line[x] not in TOKEN_END_CHARS:
        x += 1
    return x


def opener_indent_size(state: ScanState, opener: Opener) -> int:
    if opener.ch in "[{":
        return 1

    line = state.lines[opener.line_no]
    code_x = scan_for_code(line, opener.x + 1)
    if code_x is not None:
        space_x = scan_for_space(line, code_x)
        if is_symbol(line[code_x:space_x]):
            arg_x = scan_for_code(line, space_x)
            if arg_x is not None and arg_x == state.x:
                return arg_x - opener.x
            return 2
    return 1


def correct_column(state: ScanState) -> int:
    opener = peek(state.paren_stack)
    if opener is None:
        return 0
    # first child line decides; later lines follow it
    if opener.child_indent_x is None:
        opener.child_indent_x = opener.x + opener.indent_delta + opener_indent_size(state, opener)
    return opener.child_indent_x


class IndentEngine:
    """Reader hooks that record the indentation fix for each line."""

    def __init__(self):
        self.fixes: List[IndentFix] = []
        self.indent_delta = 0

    def hooks(self) -> Hooks:
        return Hooks(
            on_scan_start=self.on_scan_start,
            on_line_start=self.on_line_start,
            on_indent_point=self.on_indent_point,
            on_opener_created=self.on_opener_created,
        )

    def on_scan_start(self, state: ScanState) -> None:
        self.fixes = []
        self.indent_delta = 0

    def on_line_start(self, state: ScanState) -> None:
        self.indent_delta = 0

    def on_opener_created(self, state: ScanState, opener: Opener) -> None:
        opener.indent_delta = self.indent_delta
        opener.child_indent_x = None

    def on_indent_point(self, state: ScanState) -> None:
        correct_x = correct_column(state)
        if state.x != correct_x:
            self.indent_delta = correct_x - state.x
            self.fixes.append(IndentFix(state.line_no, self.indent_delta))
            logger.debug("line %d: column %d -> %d", state.line_no + 1, state.x, correct_x)


def apply_fixes(lines: List[str], fixes: List[IndentFix]) -> str:
    # FIXME: CRLF line-endings are written back as LF
    out = list(lines)
    for fix in fixes:
        line = out[fix.line_no]
        if fix.indent_delta < 0:
            out[fix.line_no] = line[-fix.indent_delta:]
        else:
            out[fix.line_no] = SPACE * fix.indent_delta + line
    return "\n".join(out)


def fix_indent(text: str) -> IndentResult:
    """Reindent text. On a structural error no fixes or text are returned."""
    engine = IndentEngine()
    state = read_text(text, engine.hooks())
    if not state.success:
        return IndentResult(success=False, error=state.error)
    return IndentResult(
        success=True,
        text=apply_fixes(state.lines, engine.fixes),
        fixes=engine.fixes,
    )
