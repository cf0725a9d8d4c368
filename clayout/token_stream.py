"""Cursor over a token list with the shared pieces of the grammar."""

from __future__ import annotations

from .ast import Span
from .errors import ParseError
from .lexer import TokenKind

U64_LIMIT = 1 << 64

_TYPE_LAYOUT_KEYS = (
    "size",
    "alignment",
    "required_alignment",
    "pointer_alignment",
    "field_alignment",
)


class TokenStream:
    """A position in a token list, raising ParseError on unexpected input."""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.pos = 0

    def at_end(self):
        return self.pos >= len(self.tokens)

    def peek(self):
        """Return the current token without consuming it."""
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        span = self.tokens[-1].span if self.tokens else Span(0, 0)
        raise ParseError("Unexpected end of input", span)

    def advance(self):
        """Consume and return the current token."""
        token = self.peek()
        self.pos += 1
        return token

    def expect(self, kind):
        """Consume a token of ``kind`` and return it."""
        cur = self.advance()
        if cur.kind != kind:
            raise ParseError(
                f"Unexpected {cur.kind.describe()}. Expected {kind.describe()}.",
                cur.span,
            )
        return cur

    def expect_ident(self):
        """Consume an identifier and return its text and span."""
        cur = self.expect(TokenKind.IDENT)
        return cur.value, cur.span

    def expect_u64(self):
        """Consume an integer literal that fits into an unsigned 64-bit value."""
        cur = self.expect(TokenKind.NUMBER)
        if not 0 <= cur.value < U64_LIMIT:
            raise ParseError(f"Out of bounds integer literal {cur.value}", cur.span)
        return cur.value

    def brace_list(self, parse_item):
        """Parse ``{ item, item, ... }`` with an optional trailing comma.

        ``parse_item`` is called with no arguments for each item. Returns the
        list of its results and the span from ``{`` to ``}``.
        """
        lo = self.expect(TokenKind.LEFT_BRACE).span.lo
        items = []
        while True:
            nxt = self.peek()
            if nxt.kind == TokenKind.RIGHT_BRACE:
                self.pos += 1
                return items, Span(lo, nxt.span.hi)
            items.append(parse_item())
            nxt = self.peek()
            if nxt.kind == TokenKind.COMMA:
                self.pos += 1
            elif nxt.kind != TokenKind.RIGHT_BRACE:
                raise ParseError(
                    f"Unexpected {nxt.kind.describe()}. Expected `,` or `}}`",
                    nxt.span,
                )

    def key_value_list(self, parse_value, keys):
        """Parse ``{ key: value, ... }`` restricted to the names in ``keys``.

        Returns a dict of the keys present and the span of the list.
        """
        allowed = frozenset(keys)
        values = {}

        def item():
            cur = self.advance()
            if cur.kind != TokenKind.IDENT:
                raise ParseError(
                    f"Unexpected {cur.kind.describe()}. Expected identifier or `}}`",
                    cur.span,
                )
            key = cur.value
            self.expect(TokenKind.COLON)
            value = parse_value()
            if key not in allowed:
                raise ParseError(f"Unknown key {key}", cur.span)
            if key in values:
                raise ParseError(f"{key} specified multiple times", cur.span)
            values[key] = value

        _, span = self.brace_list(item)
        return values, span

    def type_layout(self, parse_value):
        """Parse a type layout specification.

        Returns ``(size, field_alignment, pointer_alignment,
        required_alignment, span)``; ``required_alignment`` is ``None`` when
        absent. ``alignment`` stands for both field and pointer alignment.
        """
        values, span = self.key_value_list(parse_value, _TYPE_LAYOUT_KEYS)
        if "size" not in values:
            raise ParseError("Missing key size", span)
        has_align = "alignment" in values
        has_field = "field_alignment" in values
        has_pointer = "pointer_alignment" in values
        if has_align and has_field:
            raise ParseError("alignment and field_alignment are both specified", span)
        if has_align and has_pointer:
            raise ParseError("alignment and pointer_alignment are both specified", span)
        if has_align:
            field_alignment = pointer_alignment = values["alignment"]
        elif has_field and has_pointer:
            field_alignment = values["field_alignment"]
            pointer_alignment = values["pointer_alignment"]
        elif has_field:
            raise ParseError("Missing key pointer_alignment", span)
        elif has_pointer:
            raise ParseError("Missing key field_alignment", span)
        else:
            raise ParseError("Missing alignment specification", span)
        return (
            values["size"],
            field_alignment,
            pointer_alignment,
            values.get("required_alignment"),
            span,
        )