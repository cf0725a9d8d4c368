"""Tokenizer for layout description files."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .ast import Span
from .errors import ParseError

I128_MAX = (1 << 127) - 1


class TokenKind(Enum):
    IDENT = "identifier"
    NUMBER = "integer literal"
    CONST = "const"
    TYPEDEF = "typedef"
    UNNAMED = "_"
    BITS_PER_BYTE = "BITS_PER_BYTE"
    PRAGMA_PACK = "pragma_pack"
    ATTR_PACKED = "attr_packed"
    ALIGN = "align"
    SIZEOF = "sizeof"
    SIZEOF_BITS = "sizeof_bits"
    OFFSETOF = "offsetof"
    OFFSETOF_BITS = "offsetof_bits"
    OPAQUE = "opaque"
    ENUM = "enum"
    STRUCT = "struct"
    UNION = "union"
    UNIT = "unit"
    BOOL = "bool"
    U8 = "u8"
    I8 = "i8"
    U16 = "u16"
    I16 = "i16"
    U32 = "u32"
    I32 = "i32"
    U64 = "u64"
    I64 = "i64"
    U128 = "u128"
    I128 = "i128"
    CHAR = "char"
    SIGNED = "signed"
    UNSIGNED = "unsigned"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    F32 = "f32"
    F64 = "f64"
    FLOAT = "float"
    DOUBLE = "double"
    PTR = "ptr"
    LEFT_PAREN = "("
    LEFT_BRACE = "{"
    LEFT_BRACKET = "["
    RIGHT_PAREN = ")"
    RIGHT_BRACE = "}"
    RIGHT_BRACKET = "]"
    COMMA = ","
    DOT = "."
    EQ = "="
    EQ_EQ = "=="
    NOT_EQ = "!="
    LE = "<="
    LT = "<"
    GE = ">="
    GT = ">"
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    DIV = "/"
    MOD = "%"
    NOT = "!"
    OR_OR = "||"
    AND_AND = "&&"
    AT = "@"
    COLON = ":"

    def describe(self):
        """Describe the token kind for error messages."""
        if self in (TokenKind.IDENT, TokenKind.NUMBER):
            return self.value
        return f"token `{self.value}`"


_KEYWORDS = {
    kind.value: kind
    for kind in (
        TokenKind.CONST, TokenKind.TYPEDEF, TokenKind.BITS_PER_BYTE,
        TokenKind.PRAGMA_PACK, TokenKind.ATTR_PACKED, TokenKind.ALIGN,
        TokenKind.SIZEOF, TokenKind.SIZEOF_BITS, TokenKind.OFFSETOF,
        TokenKind.OFFSETOF_BITS, TokenKind.OPAQUE, TokenKind.ENUM,
        TokenKind.STRUCT, TokenKind.UNION, TokenKind.UNIT, TokenKind.BOOL,
        TokenKind.U8, TokenKind.I8, TokenKind.U16, TokenKind.I16,
        TokenKind.U32, TokenKind.I32, TokenKind.U64, TokenKind.I64,
        TokenKind.U128, TokenKind.I128, TokenKind.CHAR, TokenKind.SIGNED,
        TokenKind.UNSIGNED, TokenKind.SHORT, TokenKind.INT, TokenKind.LONG,
        TokenKind.F32, TokenKind.F64, TokenKind.FLOAT, TokenKind.DOUBLE,
        TokenKind.PTR,
    )
}

_TWO_CHAR = {
    kind.value.encode("ascii"): kind
    for kind in (
        TokenKind.EQ_EQ, TokenKind.NOT_EQ, TokenKind.LE,
        TokenKind.GE, TokenKind.OR_OR, TokenKind.AND_AND,
    )
}

_ONE_CHAR = {
    ord(kind.value): kind
    for kind in (
        TokenKind.COMMA, TokenKind.DOT, TokenKind.LEFT_PAREN,
        TokenKind.LEFT_BRACE, TokenKind.LEFT_BRACKET, TokenKind.RIGHT_PAREN,
        TokenKind.RIGHT_BRACE, TokenKind.RIGHT_BRACKET, TokenKind.EQ,
        TokenKind.GT, TokenKind.LT, TokenKind.PLUS, TokenKind.MINUS,
        TokenKind.STAR, TokenKind.DIV, TokenKind.MOD, TokenKind.NOT,
        TokenKind.AT, TokenKind.COLON,
    )
}

_RADIX_PREFIXES = {ord("b"): 2, ord("o"): 8, ord("x"): 16}
_WHITESPACE = frozenset(b" \t\n\r")
_IDENT_CHARS = frozenset(
    b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_0123456789"
)
_DIGITS = frozenset(b"0123456789")


@dataclass(frozen=True)
class Token:
    """A token; ``value`` is the text of an identifier or a number's value."""

    kind: TokenKind
    span: Span
    value: Optional[Union[int, str]] = None


def _is_ident_cont(c):
    return c in _IDENT_CHARS


def _digit_allowed(c, base):
    if c in b"01":
        return True
    if c in b"234567":
        return base > 2
    if c in b"89":
        return base > 8
    if c in b"abcdefABCDEF":
        return base > 10
    return False


def _char_debug(c):
    ch = chr(c)
    escapes = {"\t": "\\t", "\r": "\\r", "\n": "\\n", "'": "\\'", "\\": "\\\\", "\0": "\\0"}
    if ch in escapes:
        body = escapes[ch]
    elif ch.isprintable():
        body = ch
    else:
        body = f"\\u{{{c:x}}}"
    return f"'{body}'"


class _Lexer:
    def __init__(self, data):
        self.data = data
        self.pos = 0

    def tokens(self):
        while (token := self._next_token()) is not None:
            yield token

    def _skip_whitespace(self):
        data = self.data
        while self.pos < len(data):
            c = data[self.pos]
            if c in _WHITESPACE:
                self.pos += 1
            elif data.startswith(b"//", self.pos):
                end = data.find(b"\n", self.pos + 2)
                self.pos = len(data) if end < 0 else end
            else:
                return

    def _next_token(self):
        self._skip_whitespace()
        data = self.data
        if self.pos == len(data):
            return None

        start = self.pos
        cur = data[start]
        self.pos += 1

        kind = _TWO_CHAR.get(data[start:start + 2])
        if kind is not None:
            self.pos += 1
            return Token(kind, Span(start, start + 2))

        if cur == ord("_"):
            if not (self.pos < len(data) and _is_ident_cont(data[self.pos])):
                return Token(TokenKind.UNNAMED, Span(start, start + 1))
        else:
            kind = _ONE_CHAR.get(cur)
            if kind is not None:
                return Token(kind, Span(start, start + 1))

        if not _is_ident_cont(cur):
            raise ParseError(f"Unknown symbol {_char_debug(cur)}", Span(start, start + 1))

        if cur in _DIGITS:
            return self._number(start, cur)
        return self._ident(start)

    def _number(self, start, cur):
        data = self.data
        base = 10
        if cur == ord("0") and self.pos < len(data):
            base = _RADIX_PREFIXES.get(data[self.pos], 10)
        digits = []
        if base == 10:
            digits.append(chr(cur))
        else:
            self.pos += 1
        while self.pos < len(data):
            c = data[self.pos]
            if c != ord("_"):
                if not _digit_allowed(c, base):
                    break
                digits.append(chr(c))
            self.pos += 1
        span = Span(start, self.pos)
        if not digits:
            raise ParseError("Empty number literal", span)
        value = int("".join(digits), base)
        if value > I128_MAX:
            raise ParseError("Out of bounds number literal", span)
        return Token(TokenKind.NUMBER, span, value)

    def _ident(self, start):
        data = self.data
        while self.pos < len(data) and _is_ident_cont(data[self.pos]):
            self.pos += 1
        text = data[start:self.pos].decode("ascii")
        span = Span(start, self.pos)
        keyword = _KEYWORDS.get(text)
        if keyword is not None:
            return Token(keyword, span)
        return Token(TokenKind.IDENT, span, text)


def lex(data):
    """Split ``data`` (bytes or str) into tokens with byte spans.

    Raises ParseError on unknown symbols and malformed number literals.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return list(_Lexer(bytes(data)).tokens())