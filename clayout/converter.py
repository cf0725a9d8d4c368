"""Evaluation of declarations into layout model types and constant values.

The declarations are expected to carry their layouts explicitly, as in the
output format of this package: every type has a ``{ size: ..., ... }``
prefix and every named record field an ``{ offset: ..., size: ... }`` prefix.
Expressions with an explicit ``{value}`` prefix use that value.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from . import ast
from . import layout as lm
from .errors import LayoutError, format_span
from .layout import BITS_PER_BYTE, BuiltinType, TypeLayout

I128_MIN = -(1 << 127)
I128_MAX = (1 << 127) - 1
U64_LIMIT = 1 << 64


@dataclass
class ConversionResult:
    """Layouts of the declared types and values of the declared constants."""

    types: dict = field(default_factory=dict)
    consts: dict = field(default_factory=dict)


def _trunc_div(left, right):
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


class _Computer:
    def __init__(self, text, declarations):
        self.text = text
        self.declaration_list = list(declarations)
        self.declarations = {}
        for d in self.declaration_list:
            old = self.declarations.get(d.name)
            if old is not None:
                raise LayoutError(
                    f"At {self._span(d.span)}: Type {d.name} is declared multiple times. "
                    f"Previous declaration at {self._span(old.span)}"
                )
            self.declarations[d.name] = d
        self.type_layouts = {}
        self.constants = {}
        self.converting = set()

    def _span(self, span):
        return format_span(self.text, span)

    def compute(self):
        for d in self.declaration_list:
            if d.is_const():
                self._decl_const(d, d.span)
            else:
                self._decl_type_layout(d, d.span)
        return ConversionResult(types=self.type_layouts, consts=self.constants)

    # Declarations

    def _decl_const(self, d, site):
        if d.name in self.constants:
            return self.constants[d.name]
        if d.name in self.converting:
            raise LayoutError(
                f"At {self._span(d.span)}: The value of {d.name} depends on itself"
            )
        if not d.is_const():
            raise LayoutError(
                f"At {self._span(d.span)}: {d.name} is declared as a type but must be "
                f"a constant at {self._span(site)}"
            )
        self.converting.add(d.name)
        try:
            value = self._eval(d.body)
        finally:
            self.converting.discard(d.name)
        self.constants[d.name] = value
        return value

    def _decl_type_layout(self, d, site):
        if d.name in self.type_layouts:
            return self.type_layouts[d.name].layout
        if d.is_const():
            raise LayoutError(
                f"At {self._span(d.span)}: {d.name} is declared as a constant but must be "
                f"a type at {self._span(site)}"
            )
        if d.name in self.converting:
            raise LayoutError(
                f"At {self._span(d.span)}: The layout of {d.name} depends on itself"
            )
        self.converting.add(d.name)
        try:
            ty = self._type(d.body)
        finally:
            self.converting.discard(d.name)
        self.type_layouts[d.name] = ty
        return ty.layout

    def _lookup_type(self, name, span):
        d = self.declarations.get(name)
        if d is None:
            raise LayoutError(
                f"At {self._span(span)}: The referenced type {name} is not declared"
            )
        return d

    # Types

    def _type(self, t):
        variant = t.variant
        if isinstance(variant, ast.OpaqueLayout):
            if t.layout is not None:
                opaque = t.layout
            else:
                opaque = TypeLayout(
                    size_bits=self._eval_u64(variant.size_bits),
                    field_alignment_bits=self._eval_u64(variant.field_alignment_bits),
                    pointer_alignment_bits=self._eval_u64(variant.pointer_alignment_bits),
                    required_alignment_bits=self._eval_u64(variant.required_alignment_bits),
                )
            converted = lm.Opaque(opaque)
        elif isinstance(variant, BuiltinType):
            converted = variant
        elif isinstance(variant, ast.Record):
            converted = lm.Record(variant.kind, [self._field(f) for f in variant.fields])
        elif isinstance(variant, ast.Array):
            element = self._type(variant.element_type)
            count = None
            if variant.num_elements is not None:
                count = self._eval_u64(variant.num_elements)
            converted = lm.Array(element, count)
        elif isinstance(variant, ast.NamedType):
            d = self._lookup_type(variant.name, variant.span)
            converted = lm.Opaque(self._decl_type_layout(d, variant.span))
        elif isinstance(variant, ast.Typedef):
            converted = lm.Typedef(self._type(variant.target))
        elif isinstance(variant, ast.EnumType):
            converted = lm.Enum([self._eval(e) for e in variant.values])
        else:
            raise TypeError(f"unknown type variant {variant!r}")
        if t.layout is None:
            raise LayoutError(
                f"At {self._span(ast.Span(t.lo, t.lo))}: Missing type layout"
            )
        return lm.Type(
            layout=t.layout,
            annotations=self._annotations(t.annotations),
            variant=converted,
        )

    def _field(self, f):
        field_layout = None
        if f.pos is not None:
            if f.layout is None:
                raise LayoutError(
                    f"At {self._span(ast.Span(f.lo, f.lo))}: Missing field layout"
                )
            field_layout = f.layout
        annotations = self._annotations(f.annotations)
        bit_width = None if f.bit_width is None else self._eval_u64(f.bit_width)
        return lm.RecordField(
            layout=field_layout,
            annotations=annotations,
            named=f.name is not None,
            bit_width=bit_width,
            ty=self._type(f.ty),
        )

    def _annotations(self, annotations):
        result = []
        for a in annotations:
            if isinstance(a, ast.PragmaPack):
                result.append(lm.PragmaPack(BITS_PER_BYTE * self._eval_u64(a.expr)))
            elif isinstance(a, ast.AttrPacked):
                result.append(lm.AttrPacked())
            elif isinstance(a, ast.Aligned):
                if a.expr is None:
                    result.append(lm.Align(None))
                else:
                    result.append(lm.Align(BITS_PER_BYTE * self._eval_u64(a.expr)))
            else:
                raise TypeError(f"unknown annotation {a!r}")
        return result

    # Expressions

    def _eval_u64(self, e):
        value = self._eval(e)
        if not 0 <= value < U64_LIMIT:
            raise LayoutError(
                f"At {self._span(e.span)}: Expression value does not fit into u64"
            )
        return value

    def _checked(self, value, e):
        if not I128_MIN <= value <= I128_MAX:
            raise LayoutError(f"At {self._span(e.span)}: Expression overflow")
        return value

    def _eval(self, e):
        if e.value is not None:
            return e.value
        node = e.node
        if isinstance(node, ast.Lit):
            return node.value
        if isinstance(node, ast.BuiltinConst):
            return BITS_PER_BYTE
        if isinstance(node, ast.Unary):
            operand = self._eval(node.operand)
            if node.op is ast.UnaryOp.NEG:
                return self._checked(-operand, e)
            return 0 if operand != 0 else 1
        if isinstance(node, ast.Binary):
            return self._eval_binary(e, node)
        if isinstance(node, ast.TypeExpr):
            size_bits = self._type(node.ty).layout.size_bits
            if node.kind is ast.TypeExprKind.SIZEOF:
                return size_bits // BITS_PER_BYTE
            return size_bits
        if isinstance(node, ast.Name):
            d = self.declarations.get(node.name)
            if d is None:
                raise LayoutError(
                    f"At {self._span(e.span)}: The referenced constant {node.name} "
                    "is not declared"
                )
            return self._decl_const(d, e.span)
        if isinstance(node, ast.Offsetof):
            ty = self._type(node.ty)
            bits = self._offsetof(node.kind, node.ty, ty, node.path[0], node.path[1:])
            if node.kind is ast.OffsetofKind.BYTES:
                return bits // BITS_PER_BYTE
            return bits
        raise TypeError(f"unknown expression {node!r}")

    def _eval_binary(self, e, node):
        op = node.op
        left = self._eval(node.left)
        right = self._eval(node.right)
        if op is ast.BinaryOp.ADD:
            return self._checked(left + right, e)
        if op is ast.BinaryOp.SUB:
            return self._checked(left - right, e)
        if op is ast.BinaryOp.MUL:
            return self._checked(left * right, e)
        if op in (ast.BinaryOp.DIV, ast.BinaryOp.MOD):
            if right == 0:
                raise LayoutError(f"At {self._span(node.right.span)}: Division by zero")
            quotient = self._checked(_trunc_div(left, right), e)
            if op is ast.BinaryOp.DIV:
                return quotient
            return left - right * quotient
        comparisons = {
            ast.BinaryOp.LOGICAL_AND: lambda: left != 0 and right != 0,
            ast.BinaryOp.LOGICAL_OR: lambda: left != 0 or right != 0,
            ast.BinaryOp.EQ: lambda: left == right,
            ast.BinaryOp.NOT_EQ: lambda: left != right,
            ast.BinaryOp.LT: lambda: left < right,
            ast.BinaryOp.LE: lambda: left <= right,
            ast.BinaryOp.GT: lambda: left > right,
            ast.BinaryOp.GE: lambda: left >= right,
        }
        return int(comparisons[op]())

    def _offsetof(self, kind, aty, ty, head, rest):
        avariant = aty.variant
        variant = ty.variant
        target = head.target
        if (
            isinstance(avariant, ast.Record)
            and isinstance(variant, lm.Record)
            and isinstance(target, ast.FieldIndex)
        ):
            position = next(
                (i for i, f in enumerate(avariant.fields) if f.name == target.name), None
            )
            if position is None:
                raise LayoutError(
                    f"At {self._span(head.span)}: Type has no field {target.name}"
                )
            converted = variant.fields[position]
            if converted.bit_width is not None and kind is ast.OffsetofKind.BYTES:
                raise LayoutError(
                    f"At {self._span(head.span)}: Cannot compute bytewise offset of bit field"
                )
            next_aty = avariant.fields[position].ty
            next_ty = converted.ty
            base = converted.layout.offset_bits
        elif (
            isinstance(avariant, ast.Array)
            and isinstance(variant, lm.Array)
            and isinstance(target, ast.ArrayIndex)
        ):
            index = self._eval_u64(target.index)
            if variant.num_elements is not None and index > variant.num_elements:
                raise LayoutError(f"At {self._span(head.span)}: Out of bounds")
            base = variant.element_type.layout.size_bits * index
            if base >= U64_LIMIT:
                raise LayoutError(f"At {self._span(head.span)}: Offset overflow")
            next_aty = avariant.element_type
            next_ty = variant.element_type
        elif isinstance(avariant, ast.NamedType):
            d = self._lookup_type(avariant.name, avariant.span)
            self._decl_type_layout(d, head.span)
            return self._offsetof(kind, d.body, self.type_layouts[avariant.name], head, rest)
        elif isinstance(target, ast.FieldIndex):
            raise LayoutError(f"At {self._span(head.span)}: Type is not a record")
        else:
            raise LayoutError(f"At {self._span(head.span)}: Type is not an array")
        if rest:
            base += self._offsetof(kind, next_aty, next_ty, rest[0], rest[1:])
        return base


def extract_layouts(text, declarations):
    """Collect the explicit layouts and values written in ``declarations``.

    ``text`` is the input the declarations were parsed from; it is used for
    error positions. Raises LayoutError when a layout is missing or a value
    cannot be evaluated.
    """
    return _Computer(text, declarations).compute()