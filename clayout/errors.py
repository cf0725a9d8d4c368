"""Error types and conversion of byte offsets into line and column positions."""

from __future__ import annotations


class ParseError(Exception):
    """A syntax error located at a byte span of the input."""

    def __init__(self, msg, span):
        super().__init__(msg)
        self.msg = msg
        self.span = span

    def __str__(self):
        return self.msg


class LayoutError(Exception):
    """Raised when type layouts or constant values cannot be computed."""


def _as_bytes(text):
    if isinstance(text, str):
        return text.encode("utf-8")
    return bytes(text)


def line_column(text, pos):
    """Return the 1-based line and 0-based byte column of byte offset ``pos``."""
    data = _as_bytes(text)
    if not 0 <= pos <= len(data):
        raise ValueError(f"position {pos} is outside the input")
    head = data[:pos]
    line = head.count(b"\n") + 1
    last_newline = head.rfind(b"\n")
    column = pos - last_newline - 1 if last_newline >= 0 else pos
    return line, column


def format_span(text, span):
    """Render a byte span as ``line:col`` or ``line:col - line:col``."""
    lo, hi = span
    start_line, start_col = line_column(text, lo)
    end_line, end_col = line_column(text, hi)
    if start_line == end_line and start_col + 1 > end_col:
        return f"{start_line}:{start_col}"
    return f"{start_line}:{start_col} - {end_line}:{end_col}"