import pytest

from clayout import layout as lm
from clayout.converter import ConversionResult, extract_layouts
from clayout.errors import LayoutError
from clayout.layout import BITS_PER_BYTE, BuiltinType, FieldLayout, RecordKind, TypeLayout
from clayout.parser import parse

INT = "{ size: 32, alignment: 32 } int"

S_TEXT = (
    "S = { size: 64, alignment: 32 } struct {\n"
    "    { offset: 0, size: 8 } a { size: 8, alignment: 8 } char,\n"
    "    { offset: 32, size: 32 } b { size: 32, alignment: 32 } int,\n"
    "}\n"
)
S_REF = "{ size: 64, alignment: 32 } S"


def extract(text):
    return extract_layouts(text, parse(text))


def test_builtin_type_layout():
    result = extract(f"A = {INT}")
    assert result.types["A"] == lm.Type(
        TypeLayout(32, 32, 32, BITS_PER_BYTE), [], BuiltinType.INT
    )
    assert result.consts == {}


def test_result_equality():
    text = f"A = {INT}\nconst C = 3"
    result = extract(text)
    assert isinstance(result, ConversionResult)
    assert result == extract(text)
    assert result.consts == {"C": 3}
    assert sorted(result.types) == ["A"]
    assert (result == extract(f"A = {INT}\nconst C = 4")) is False


def test_struct_fields():
    result = extract(S_TEXT)
    record = result.types["S"].variant
    assert record.kind is RecordKind.STRUCT
    assert [f.layout for f in record.fields] == [FieldLayout(0, 8), FieldLayout(32, 32)]
    assert all(f.named for f in record.fields)
    assert record.fields[1].bit_width is None


def test_offsetof_and_sizeof():
    text = S_TEXT + (
        f"const OB = offsetof_bits({S_REF}, b)\n"
        f"const O = offsetof({S_REF}, b)\n"
        f"const ZB = sizeof_bits({S_REF})\n"
        f"const Z = sizeof({S_REF})\n"
    )
    consts = extract(text).consts
    assert consts["OB"] == 32
    assert consts["O"] * BITS_PER_BYTE == consts["OB"]
    assert consts["ZB"] == 64
    assert consts["Z"] * BITS_PER_BYTE == consts["ZB"]


def test_array_offsetof():
    arr = "{ size: 128, alignment: 32 } Arr"
    text = (
        f"Arr = {{ size: 128, alignment: 32 }} [4] {INT}\n"
        f"const O = offsetof_bits({arr}, [2])\n"
        "const P = 2 * 32\n"
    )
    consts = extract(text).consts
    assert consts["O"] == consts["P"]


def test_array_out_of_bounds():
    arr = "{ size: 128, alignment: 32 } Arr"
    text = f"Arr = {{ size: 128, alignment: 32 }} [4] {INT}\nconst O = offsetof_bits({arr}, [5])\n"
    with pytest.raises(LayoutError, match="Out of bounds"):
        extract(text)


@pytest.mark.parametrize(
    "left, right",
    [
        ("2 + 3", "5"),
        ("!0", "1"),
        ("!7", "0"),
        ("-(3)", "0 - 3"),
        ("-7 / 2", "0 - 3"),
        ("-7 % 2", "0 - 1"),
        ("1 + 2 * 3 == 7 && 1", "1"),
        ("0 || 0", "0"),
        ("BITS_PER_BYTE", "8"),
    ],
)
def test_expression_evaluation(left, right):
    consts = extract(f"const A = {left}\nconst B = {right}\n").consts
    assert consts["A"] == consts["B"]


def test_explicit_value_is_used():
    assert extract("const X = {42} 1 + 1").consts["X"] == 42


def test_constant_reference():
    consts = extract("const A = B + 1\nconst B = 2\nconst C = 3").consts
    assert consts["A"] == consts["C"]


def test_enum_values():
    result = extract(f"E = {{ size: 32, alignment: 32 }} enum {{ 1, 2 + 3 }}\nconst F = 5")
    values = result.types["E"].variant.values
    assert values[0] == 1
    assert values[1] == result.consts["F"]


def test_annotations():
    result = extract("A = { size: 8, alignment: 8 } @attr_packed @align u8")
    assert result.types["A"].annotations == [lm.AttrPacked(), lm.Align(None)]


def test_pragma_pack_in_bits():
    result = extract("A = { size: 8, alignment: 8 } @pragma_pack(2) u8\nconst T = 2 * BITS_PER_BYTE")
    assert result.types["A"].annotations == [lm.PragmaPack(result.consts["T"])]


def test_opaque_uses_type_layout():
    result = extract("O = { size: 16, alignment: 16 } opaque { size: 16, alignment: 16 }")
    assert result.types["O"].variant == lm.Opaque(result.types["O"].layout)


def test_offsetof_errors():
    with pytest.raises(LayoutError, match="Type has no field c"):
        extract(S_TEXT + f"const O = offsetof({S_REF}, c)")
    with pytest.raises(LayoutError, match="Type is not a record"):
        extract(f"const O = offsetof({INT}, a)")
    with pytest.raises(LayoutError, match="Type is not an array"):
        extract(f"const O = offsetof({INT}, [0])")


def test_bytewise_offset_of_bit_field():
    text = (
        "S = { size: 32, alignment: 32 } struct {\n"
        "    { offset: 0, size: 3 } a { size: 32, alignment: 32 } int : 3,\n"
        "}\n"
        "const O = offsetof({ size: 32, alignment: 32 } S, a)\n"
    )
    with pytest.raises(LayoutError, match="bytewise offset of bit field"):
        extract(text)