from clayout import layout as lm
from clayout.converter import ConversionResult, extract_layouts
from clayout.enhancer import enhance_declarations
from clayout.layout import BITS_PER_BYTE, BuiltinType, FieldLayout, RecordKind, TypeLayout
from clayout.parser import parse
from clayout.printer import render

INT_LAYOUT = TypeLayout(32, 32, 32, BITS_PER_BYTE)
U8_LAYOUT = TypeLayout(8, 8, 8, BITS_PER_BYTE)


def round_trip(text, result):
    enhanced = enhance_declarations(parse(text), result)
    output = render(text, enhanced)
    return extract_layouts(output, parse(output))


def test_type_and_const_round_trip():
    text = "A = int\nconst C = 2 + 3\n"
    result = ConversionResult(
        types={"A": lm.Type(INT_LAYOUT, [], BuiltinType.INT)},
        consts={"C": 5},
    )
    assert round_trip(text, result) == result


def test_values_are_attached():
    text = "A = int\nconst C = 2 + 3\n"
    result = ConversionResult(
        types={"A": lm.Type(INT_LAYOUT, [], BuiltinType.INT)},
        consts={"C": 5},
    )
    enhanced = enhance_declarations(parse(text), result)
    assert enhanced[0].body.layout == INT_LAYOUT
    assert enhanced[1].body.value == result.consts["C"]
    assert [d.name for d in enhanced] == ["A", "C"]


def test_input_is_not_modified():
    text = "A = int\nconst C = 2 + 3\n"
    declarations = parse(text)
    result = ConversionResult(
        types={"A": lm.Type(INT_LAYOUT, [], BuiltinType.INT)},
        consts={"C": 5},
    )
    enhance_declarations(declarations, result)
    assert declarations[0].body.layout is None
    assert declarations[1].body.value is None


def test_struct_with_bit_field():
    text = "S = struct { a u8 : 1 + 2 }"
    result = ConversionResult(
        types={
            "S": lm.Type(
                U8_LAYOUT,
                [],
                lm.Record(
                    RecordKind.STRUCT,
                    [
                        lm.RecordField(
                            FieldLayout(0, 3), [], True, 3, lm.Type(U8_LAYOUT, [], BuiltinType.U8)
                        )
                    ],
                ),
            )
        },
        consts={},
    )
    enhanced = enhance_declarations(parse(text), result)
    field = enhanced[0].body.variant.fields[0]
    assert field.layout == FieldLayout(0, 3)
    assert field.bit_width.value == 3
    assert field.ty.layout == U8_LAYOUT
    assert round_trip(text, result) == result


def test_alignment_annotation_round_trip():
    text = "A = @align(2 + 2) @attr_packed u8"
    result = ConversionResult(
        types={
            "A": lm.Type(
                U8_LAYOUT, [lm.Align(4 * BITS_PER_BYTE), lm.AttrPacked()], BuiltinType.U8
            )
        },
        consts={},
    )
    assert round_trip(text, result) == result


def test_array_enum_and_typedef():
    text = "A = [1 + 1] u8\nE = enum { 1, 1 + 1 }\nT = typedef u8\n"
    result = ConversionResult(
        types={
            "A": lm.Type(
                TypeLayout(16, 8, 8, BITS_PER_BYTE),
                [],
                lm.Array(lm.Type(U8_LAYOUT, [], BuiltinType.U8), 2),
            ),
            "E": lm.Type(INT_LAYOUT, [], lm.Enum([1, 2])),
            "T": lm.Type(U8_LAYOUT, [], lm.Typedef(lm.Type(U8_LAYOUT, [], BuiltinType.U8))),
        },
        consts={},
    )
    enhanced = enhance_declarations(parse(text), result)
    assert enhanced[0].body.variant.num_elements.value == result.types["A"].variant.num_elements
    assert [e.value for e in enhanced[1].body.variant.values] == result.types["E"].variant.values
    assert enhanced[2].body.variant.target.layout == U8_LAYOUT
    assert round_trip(text, result) == result