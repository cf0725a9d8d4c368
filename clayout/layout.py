"""Layout model of C types: the types themselves with their computed layouts."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum as _Enum
from typing import Generic, Optional, TypeVar, Union

BITS_PER_BYTE = 8

L = TypeVar("L")


@dataclass(frozen=True)
class TypeLayout:
    """Size and alignments of a type, all in bits."""

    size_bits: int
    field_alignment_bits: int
    pointer_alignment_bits: int
    required_alignment_bits: int


@dataclass(frozen=True)
class FieldLayout:
    """Offset and size of a record field, in bits."""

    offset_bits: int
    size_bits: int


class BuiltinType(_Enum):
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
    SIGNED_CHAR = "signed char"
    UNSIGNED_CHAR = "unsigned char"
    SHORT = "short"
    UNSIGNED_SHORT = "unsigned short"
    INT = "int"
    UNSIGNED_INT = "unsigned int"
    LONG = "long"
    UNSIGNED_LONG = "unsigned long"
    LONG_LONG = "long long"
    UNSIGNED_LONG_LONG = "unsigned long long"
    F32 = "f32"
    F64 = "f64"
    FLOAT = "float"
    DOUBLE = "double"
    POINTER = "ptr"


class RecordKind(_Enum):
    STRUCT = "struct"
    UNION = "union"


@dataclass(frozen=True)
class PragmaPack:
    """``#pragma pack`` with its packing in bits."""

    bits: int


@dataclass(frozen=True)
class AttrPacked:
    """``__attribute__((packed))``."""


@dataclass(frozen=True)
class Align:
    """An alignment attribute; ``bits`` is ``None`` for the target's maximum."""

    bits: Optional[int] = None


Annotation = Union[PragmaPack, AttrPacked, Align]


@dataclass
class Type(Generic[L]):
    """A type with its layout (or ``None`` when not known) and annotations."""

    layout: L
    annotations: list = field(default_factory=list)
    variant: object = BuiltinType.UNIT


@dataclass
class RecordField(Generic[L]):
    """A struct or union field; ``layout`` is ``None`` for unnamed fields."""

    layout: Optional[FieldLayout]
    annotations: list
    named: bool
    bit_width: Optional[int]
    ty: Type


@dataclass
class Record(Generic[L]):
    kind: RecordKind
    fields: list = field(default_factory=list)


@dataclass
class Array(Generic[L]):
    element_type: Type
    num_elements: Optional[int] = None


@dataclass
class Typedef(Generic[L]):
    target: Type


@dataclass(frozen=True)
class Opaque:
    """A type known only by its layout."""

    layout: TypeLayout


@dataclass
class Enum:
    """An enumeration with its evaluated values."""

    values: list = field(default_factory=list)