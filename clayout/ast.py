"""Syntax tree of layout description files."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Union


class Span(NamedTuple):
    """A half-open byte range ``[lo, hi)`` of the input."""

    lo: int
    hi: int


class UnaryOp(Enum):
    NEG = "-"
    NOT = "!"


class BinaryOp(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    LOGICAL_AND = "&&"
    LOGICAL_OR = "||"
    EQ = "=="
    NOT_EQ = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="


class TypeExprKind(Enum):
    SIZEOF = "sizeof"
    SIZEOF_BITS = "sizeof_bits"


class OffsetofKind(Enum):
    BYTES = "offsetof"
    BITS = "offsetof_bits"


class BuiltinConst(Enum):
    """Built-in named constants usable in expressions."""

    BITS_PER_BYTE = "BITS_PER_BYTE"


@dataclass
class Lit:
    value: int


@dataclass
class Unary:
    op: UnaryOp
    operand: Expr


@dataclass
class Binary:
    op: BinaryOp
    left: Expr
    right: Expr


@dataclass
class TypeExpr:
    kind: TypeExprKind
    ty: Type


@dataclass
class Name:
    name: str


@dataclass
class FieldIndex:
    name: str


@dataclass
class ArrayIndex:
    index: Expr


@dataclass
class Index:
    """One step of an ``offsetof`` path."""

    span: Span
    target: Union[FieldIndex, ArrayIndex]


@dataclass
class Offsetof:
    kind: OffsetofKind
    ty: Type
    path: list[Index]


ExprNode = Union[Lit, Unary, Binary, TypeExpr, BuiltinConst, Name, Offsetof]


@dataclass
class Expr:
    """An expression with its source span and, once known, its evaluated value.

    ``value_hi`` is the end of an explicit ``{value}`` prefix in the source,
    which is replaced when the expression is printed with its value.
    """

    span: Span
    value: Optional[int]
    value_hi: int
    node: ExprNode


@dataclass
class PragmaPack:
    expr: Expr


@dataclass
class AttrPacked:
    pass


@dataclass
class Aligned:
    expr: Optional[Expr] = None


Annotation = Union[PragmaPack, AttrPacked, Aligned]


@dataclass
class OpaqueLayout:
    size_bits: Expr
    pointer_alignment_bits: Expr
    field_alignment_bits: Expr
    required_alignment_bits: Expr


@dataclass
class NamedType:
    """A reference to a type declared elsewhere."""

    name: str
    span: Span


@dataclass
class EnumType:
    values: list[Expr]


@dataclass
class Typedef:
    target: Type


@dataclass
class Array:
    element_type: Type
    num_elements: Optional[Expr] = None


@dataclass
class RecordField:
    """A struct or union field.

    ``pos`` is the index among the named fields of the record, or ``None``
    for an unnamed field. ``layout`` holds a field layout when one was given
    explicitly or computed.
    """

    parent_id: int
    pos: Optional[int]
    lo: int
    layout: Optional[object]
    layout_hi: int
    annotations: list
    name: Optional[str]
    bit_width: Optional[Expr]
    ty: Type


@dataclass
class Record:
    """A struct or union; ``kind`` is a record kind from the layout model."""

    kind: object
    fields: list[RecordField] = field(default_factory=list)


@dataclass
class Type:
    """A type with its annotations.

    ``variant`` is a builtin type value from the layout model or one of
    ``Record``, ``Typedef``, ``Array``, ``OpaqueLayout``, ``NamedType`` and
    ``EnumType``.
    """

    id: int
    lo: int
    layout: Optional[object]
    layout_hi: int
    annotations: list
    variant: object


@dataclass
class Declaration:
    """A named type (``name = type``) or constant (``const name = expr``)."""

    name: str
    span: Span
    body: Union[Type, Expr]

    def is_const(self):
        """Return whether this declares a constant rather than a type."""
        return isinstance(self.body, Expr)