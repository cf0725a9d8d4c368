from dataclasses import FrozenInstanceError, replace

import pytest

from clayout.layout import (
    Align,
    Array,
    AttrPacked,
    BuiltinType,
    Enum,
    FieldLayout,
    Opaque,
    PragmaPack,
    Record,
    RecordField,
    RecordKind,
    Type,
    TypeLayout,
    Typedef,
)


def _layout(size):
    return TypeLayout(
        size_bits=size,
        field_alignment_bits=size,
        pointer_alignment_bits=size,
        required_alignment_bits=8,
    )


def _record(offset):
    inner = Type(_layout(32), [], BuiltinType.INT)
    f = RecordField(FieldLayout(offset, 32), [], True, None, inner)
    return Type(_layout(64), [AttrPacked()], Record(RecordKind.STRUCT, [f]))


def test_type_layout_is_immutable():
    layout = _layout(32)
    with pytest.raises(FrozenInstanceError):
        layout.size_bits = 64
    assert layout.size_bits == 32
    assert layout == _layout(32)


def test_type_layout_replace_keeps_other_fields():
    layout = replace(_layout(32), pointer_alignment_bits=8)
    assert layout.field_alignment_bits == 32
    assert layout.pointer_alignment_bits == 8
    assert layout != _layout(32)


def test_nested_types_compare_structurally():
    assert _record(0) == _record(0)
    assert _record(0) != _record(32)


def test_annotations_compare_by_value():
    assert Align() == Align(None)
    assert Align(128) != Align(64)
    assert PragmaPack(8) == PragmaPack(8)
    assert AttrPacked() == AttrPacked()


def test_builtin_lookup_by_name():
    assert BuiltinType("ptr") is BuiltinType.POINTER
    assert BuiltinType("unsigned long long") is BuiltinType.UNSIGNED_LONG_LONG
    assert RecordKind("union") is RecordKind.UNION


def test_array_and_typedef_wrap_types():
    elem = Type(_layout(8), [], BuiltinType.CHAR)
    arr = Array(elem, 4)
    td = Typedef(Type(_layout(32), [], arr))
    assert td.target.variant.element_type.variant is BuiltinType.CHAR
    assert Array(elem) != arr
    assert Array(elem).num_elements is None


def test_opaque_and_enum_equality():
    assert Opaque(_layout(16)) == Opaque(_layout(16))
    assert Opaque(_layout(16)) != Opaque(_layout(32))
    assert Enum([1, 2]) == Enum([1, 2])
    assert Enum() == Enum([])