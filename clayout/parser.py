"""Parser turning layout description text into declarations."""

from __future__ import annotations

from .ast import (
    Aligned,
    Array,
    ArrayIndex,
    AttrPacked,
    Binary,
    BinaryOp,
    BuiltinConst,
    Declaration,
    EnumType,
    Expr,
    FieldIndex,
    Index,
    Lit,
    Name,
    NamedType,
    Offsetof,
    OffsetofKind,
    OpaqueLayout,
    PragmaPack,
    Record,
    RecordField,
    Span,
    Type,
    TypeExpr,
    TypeExprKind,
    Typedef,
    Unary,
    UnaryOp,
)
from .errors import ParseError, format_span
from .layout import BITS_PER_BYTE, BuiltinType, FieldLayout, RecordKind, TypeLayout
from .lexer import TokenKind, lex
from .token_stream import TokenStream

_BINARY_OPS = {
    TokenKind.EQ_EQ: BinaryOp.EQ,
    TokenKind.NOT_EQ: BinaryOp.NOT_EQ,
    TokenKind.LE: BinaryOp.LE,
    TokenKind.LT: BinaryOp.LT,
    TokenKind.GE: BinaryOp.GE,
    TokenKind.GT: BinaryOp.GT,
    TokenKind.PLUS: BinaryOp.ADD,
    TokenKind.MINUS: BinaryOp.SUB,
    TokenKind.STAR: BinaryOp.MUL,
    TokenKind.DIV: BinaryOp.DIV,
    TokenKind.MOD: BinaryOp.MOD,
    TokenKind.OR_OR: BinaryOp.LOGICAL_OR,
    TokenKind.AND_AND: BinaryOp.LOGICAL_AND,
}

_PRECEDENCE = {
    TokenKind.STAR: 90,
    TokenKind.DIV: 90,
    TokenKind.MOD: 90,
    TokenKind.PLUS: 80,
    TokenKind.MINUS: 80,
    TokenKind.EQ_EQ: 70,
    TokenKind.NOT_EQ: 70,
    TokenKind.LE: 70,
    TokenKind.LT: 70,
    TokenKind.GE: 70,
    TokenKind.GT: 70,
    TokenKind.AND_AND: 60,
    TokenKind.OR_OR: 50,
}

_THREE_WORD_BUILTINS = {
    (TokenKind.UNSIGNED, TokenKind.LONG, TokenKind.LONG): BuiltinType.UNSIGNED_LONG_LONG,
    (TokenKind.SIGNED, TokenKind.LONG, TokenKind.LONG): BuiltinType.LONG_LONG,
}

_TWO_WORD_BUILTINS = {
    (TokenKind.LONG, TokenKind.LONG): BuiltinType.LONG_LONG,
    (TokenKind.SIGNED, TokenKind.CHAR): BuiltinType.SIGNED_CHAR,
    (TokenKind.SIGNED, TokenKind.SHORT): BuiltinType.SHORT,
    (TokenKind.SIGNED, TokenKind.INT): BuiltinType.INT,
    (TokenKind.SIGNED, TokenKind.LONG): BuiltinType.LONG,
    (TokenKind.UNSIGNED, TokenKind.CHAR): BuiltinType.UNSIGNED_CHAR,
    (TokenKind.UNSIGNED, TokenKind.SHORT): BuiltinType.UNSIGNED_SHORT,
    (TokenKind.UNSIGNED, TokenKind.INT): BuiltinType.UNSIGNED_INT,
    (TokenKind.UNSIGNED, TokenKind.LONG): BuiltinType.UNSIGNED_LONG,
}

_ONE_WORD_BUILTINS = {
    TokenKind.UNIT: BuiltinType.UNIT,
    TokenKind.BOOL: BuiltinType.BOOL,
    TokenKind.U8: BuiltinType.U8,
    TokenKind.I8: BuiltinType.I8,
    TokenKind.U16: BuiltinType.U16,
    TokenKind.I16: BuiltinType.I16,
    TokenKind.U32: BuiltinType.U32,
    TokenKind.I32: BuiltinType.I32,
    TokenKind.U64: BuiltinType.U64,
    TokenKind.I64: BuiltinType.I64,
    TokenKind.U128: BuiltinType.U128,
    TokenKind.I128: BuiltinType.I128,
    TokenKind.CHAR: BuiltinType.CHAR,
    TokenKind.SIGNED: BuiltinType.INT,
    TokenKind.UNSIGNED: BuiltinType.UNSIGNED_INT,
    TokenKind.SHORT: BuiltinType.SHORT,
    TokenKind.INT: BuiltinType.INT,
    TokenKind.LONG: BuiltinType.LONG,
    TokenKind.F32: BuiltinType.F32,
    TokenKind.F64: BuiltinType.F64,
    TokenKind.FLOAT: BuiltinType.FLOAT,
    TokenKind.DOUBLE: BuiltinType.DOUBLE,
    TokenKind.PTR: BuiltinType.POINTER,
}


def _unexpected(token, expected):
    return ParseError(f"Unexpected {token.kind.describe()}. {expected}", token.span)


class _Parser:
    def __init__(self, tokens):
        self.stream = TokenStream(tokens)
        self.type_id = 0

    @property
    def _tokens(self):
        return self.stream.tokens

    def _previous_hi(self):
        return self._tokens[self.stream.pos - 1].span.hi

    def declarations(self):
        result = []
        while not self.stream.at_end():
            result.append(self._declaration())
        return result

    def _declaration(self):
        cur = self.stream.peek()
        if cur.kind == TokenKind.IDENT:
            name, span = self.stream.expect_ident()
            self.stream.expect(TokenKind.EQ)
            return Declaration(name, span, self._type())
        if cur.kind == TokenKind.CONST:
            self.stream.expect(TokenKind.CONST)
            name, span = self.stream.expect_ident()
            self.stream.expect(TokenKind.EQ)
            return Declaration(name, span, self._top_level_expr())
        raise _unexpected(cur, "Expected `const` or identifier.")

    # Expressions

    def _top_level_expr(self):
        lo = self.stream.peek().span.lo
        value, hi = self._expr_value()
        expr = self._expr()
        if value is not None:
            expr.value = value
        elif isinstance(expr.node, Lit):
            expr.value = expr.node.value
        expr.span = Span(lo, expr.span.hi)
        expr.value_hi = lo if hi is None else hi
        return expr

    def _expr_value(self):
        stream = self.stream
        if stream.peek().kind != TokenKind.LEFT_BRACE:
            return None, None
        stream.advance()
        negative = stream.peek().kind == TokenKind.MINUS
        if negative:
            stream.advance()
        number = stream.expect(TokenKind.NUMBER).value
        hi = stream.expect(TokenKind.RIGHT_BRACE).span.hi
        return (-number if negative else number), hi

    def _expr(self):
        operands = [self._atomic_expr()]
        operators = []

        def reduce(next_precedence):
            while operators and _PRECEDENCE[operators[-1]] >= next_precedence:
                op = operators.pop()
                right = operands.pop()
                left = operands.pop()
                operands.append(
                    Expr(
                        Span(left.span.lo, right.span.hi),
                        None,
                        0,
                        Binary(_BINARY_OPS[op], left, right),
                    )
                )

        while not self.stream.at_end():
            kind = self.stream.peek().kind
            if kind not in _BINARY_OPS:
                break
            self.stream.advance()
            reduce(_PRECEDENCE[kind])
            operators.append(kind)
            operands.append(self._atomic_expr())

        reduce(0)
        return operands.pop()

    def _atomic_expr(self):
        stream = self.stream
        cur = stream.advance()
        kind = cur.kind
        if kind == TokenKind.NOT:
            node = Unary(UnaryOp.NOT, self._atomic_expr())
        elif kind == TokenKind.MINUS:
            node = Unary(UnaryOp.NEG, self._atomic_expr())
        elif kind == TokenKind.LEFT_PAREN:
            inner = self._expr()
            stream.expect(TokenKind.RIGHT_PAREN)
            node = inner.node
        elif kind == TokenKind.BITS_PER_BYTE:
            node = BuiltinConst.BITS_PER_BYTE
        elif kind == TokenKind.NUMBER:
            node = Lit(cur.value)
        elif kind in (TokenKind.SIZEOF, TokenKind.SIZEOF_BITS):
            which = TypeExprKind.SIZEOF if kind == TokenKind.SIZEOF else TypeExprKind.SIZEOF_BITS
            stream.expect(TokenKind.LEFT_PAREN)
            ty = self._type()
            stream.expect(TokenKind.RIGHT_PAREN)
            node = TypeExpr(which, ty)
        elif kind in (TokenKind.OFFSETOF, TokenKind.OFFSETOF_BITS):
            which = OffsetofKind.BYTES if kind == TokenKind.OFFSETOF else OffsetofKind.BITS
            stream.expect(TokenKind.LEFT_PAREN)
            ty = self._type()
            stream.expect(TokenKind.COMMA)
            path = self._offsetof_path()
            stream.expect(TokenKind.RIGHT_PAREN)
            node = Offsetof(which, ty, path)
        elif kind == TokenKind.IDENT:
            node = Name(cur.value)
        else:
            raise _unexpected(cur, "Expected an expression.")
        return Expr(Span(cur.span.lo, self._previous_hi()), None, 0, node)

    def _offsetof_path(self):
        stream = self.stream
        path = []
        while True:
            cur = stream.advance()
            if cur.kind == TokenKind.LEFT_BRACKET:
                index = self._top_level_expr()
                stream.expect(TokenKind.RIGHT_BRACKET)
                target = ArrayIndex(index)
            elif cur.kind == TokenKind.IDENT:
                target = FieldIndex(cur.value)
            else:
                raise _unexpected(cur, "Expected `[` or an identifier")
            path.append(Index(Span(cur.span.lo, self._previous_hi()), target))
            nxt = stream.peek()
            if nxt.kind == TokenKind.LEFT_BRACKET:
                continue
            if nxt.kind == TokenKind.DOT:
                stream.advance()
            elif nxt.kind == TokenKind.RIGHT_PAREN:
                return path
            else:
                raise _unexpected(cur, "Expected `[`, `.`, or `)`")

    # Types

    def _type(self):
        self.type_id += 1
        type_id = self.type_id
        lo = self.stream.peek().span.lo
        layout, hi = self._static_type_layout()
        annotations = self._annotations()
        variant = self._type_variant(type_id)
        return Type(
            id=type_id,
            lo=lo,
            layout=layout,
            layout_hi=lo if hi is None else hi,
            annotations=annotations,
            variant=variant,
        )

    def _type_variant(self, parent_id):
        stream = self.stream
        nxt = stream.peek()
        kind = nxt.kind
        if kind == TokenKind.IDENT:
            stream.advance()
            return NamedType(nxt.value, nxt.span)
        if kind == TokenKind.TYPEDEF:
            stream.expect(TokenKind.TYPEDEF)
            return Typedef(self._type())
        if kind == TokenKind.OPAQUE:
            return self._opaque()
        if kind == TokenKind.ENUM:
            stream.expect(TokenKind.ENUM)
            values, _ = stream.brace_list(self._top_level_expr)
            return EnumType(values)
        if kind in (TokenKind.STRUCT, TokenKind.UNION):
            return self._record(parent_id)
        if kind == TokenKind.LEFT_BRACKET:
            return self._array()
        return self._builtin_type()

    def _builtin_type(self):
        stream = self.stream
        tokens = self._tokens
        cur = stream.advance()
        pos = stream.pos
        if pos + 1 < len(tokens):
            key = (cur.kind, tokens[pos].kind, tokens[pos + 1].kind)
            builtin = _THREE_WORD_BUILTINS.get(key)
            if builtin is not None:
                stream.pos += 2
                return builtin
        if pos < len(tokens):
            builtin = _TWO_WORD_BUILTINS.get((cur.kind, tokens[pos].kind))
            if builtin is not None:
                stream.pos += 1
                return builtin
        builtin = _ONE_WORD_BUILTINS.get(cur.kind)
        if builtin is None:
            raise _unexpected(cur, "Expected a type.")
        return builtin

    def _static_type_layout(self):
        stream = self.stream
        if stream.peek().kind != TokenKind.LEFT_BRACE:
            return None, None
        size, field_align, pointer_align, required, span = stream.type_layout(
            stream.expect_u64
        )
        layout = TypeLayout(
            size_bits=size,
            field_alignment_bits=field_align,
            pointer_alignment_bits=pointer_align,
            required_alignment_bits=BITS_PER_BYTE if required is None else required,
        )
        return layout, span.hi

    def _opaque(self):
        self.stream.expect(TokenKind.OPAQUE)
        size, field_align, pointer_align, required, span = self.stream.type_layout(self._expr)
        if required is None:
            required = Expr(span, BITS_PER_BYTE, span.hi, Lit(BITS_PER_BYTE))
        return OpaqueLayout(
            size_bits=size,
            pointer_alignment_bits=pointer_align,
            field_alignment_bits=field_align,
            required_alignment_bits=required,
        )

    def _annotations(self):
        result = []
        while self.stream.peek().kind == TokenKind.AT:
            result.append(self._annotation())
        return result

    def _parenthesized_expr(self):
        self.stream.expect(TokenKind.LEFT_PAREN)
        value = self._top_level_expr()
        self.stream.expect(TokenKind.RIGHT_PAREN)
        return value

    def _annotation(self):
        stream = self.stream
        stream.expect(TokenKind.AT)
        cur = stream.advance()
        if cur.kind == TokenKind.PRAGMA_PACK:
            return PragmaPack(self._parenthesized_expr())
        if cur.kind == TokenKind.ATTR_PACKED:
            return AttrPacked()
        if cur.kind == TokenKind.ALIGN:
            if stream.peek().kind == TokenKind.LEFT_PAREN:
                return Aligned(self._parenthesized_expr())
            return Aligned(None)
        raise _unexpected(cur, "Expected `pragma_pack`, `attr_packed`, or `align`.")

    def _array(self):
        stream = self.stream
        stream.expect(TokenKind.LEFT_BRACKET)
        num_elements = None
        if stream.peek().kind != TokenKind.RIGHT_BRACKET:
            num_elements = self._top_level_expr()
        stream.expect(TokenKind.RIGHT_BRACKET)
        return Array(self._type(), num_elements)

    def _record(self, parent_id):
        cur = self.stream.advance()
        kind = RecordKind.STRUCT if cur.kind == TokenKind.STRUCT else RecordKind.UNION
        fields, _ = self.stream.brace_list(lambda: self._record_field(parent_id))
        named = (f for f in fields if f.name is not None)
        for position, field in enumerate(named):
            field.pos = position
        return Record(kind, fields)

    def _record_field(self, parent_id):
        stream = self.stream
        lo = stream.peek().span.lo
        layout, hi = self._field_layout()
        annotations = self._annotations()
        cur = stream.advance()
        if cur.kind == TokenKind.UNNAMED:
            name = None
        elif cur.kind == TokenKind.IDENT:
            name = cur.value
        else:
            raise _unexpected(cur, "Expected `_` or identifier.")
        ty = self._type()
        bit_width = None
        if stream.peek().kind == TokenKind.COLON:
            stream.advance()
            bit_width = self._top_level_expr()
        return RecordField(
            parent_id=parent_id,
            pos=None,
            lo=lo,
            layout=layout,
            layout_hi=lo if hi is None else hi,
            annotations=annotations,
            name=name,
            bit_width=bit_width,
            ty=ty,
        )

    def _field_layout(self):
        stream = self.stream
        if stream.peek().kind != TokenKind.LEFT_BRACE:
            return None, None
        values, span = stream.key_value_list(stream.expect_u64, ("size", "offset"))
        for key in ("size", "offset"):
            if key not in values:
                raise ParseError(f"Missing key {key}", span)
        return FieldLayout(offset_bits=values["offset"], size_bits=values["size"]), span.hi


def parse_raw(data):
    """Parse ``data`` into declarations; errors carry the raw message and byte span."""
    return _Parser(lex(data)).declarations()


def parse(text):
    """Parse ``text`` into declarations.

    Raises ParseError whose message starts with ``At line:col:``.
    """
    try:
        return parse_raw(text)
    except ParseError as e:
        raise ParseError(f"At {format_span(text, e.span)}: {e.msg}", e.span) from e