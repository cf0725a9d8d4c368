import pytest

from clayout.layout import BITS_PER_BYTE, FieldLayout, TypeLayout
from clayout.parser import parse
from clayout.printer import render

CANONICAL = (
    "// comment\n"
    "A = { size: 32, field_alignment: 32, pointer_alignment: 16, required_alignment: 16 } int\n"
    "S = { size: 64, alignment: 32 } struct {\n"
    "    { offset: 0, size: 8 } a { size: 8, alignment: 8 } char,\n"
    "    { offset: 32, size: 3 } b { size: 32, alignment: 32 } int : 3,\n"
    "}\n"
    "const C = {5} 2 + 3\n"
    "E = { size: 32, alignment: 32 } enum { 1, {4} 2 * 2 }\n"
    "P = { size: 8, alignment: 8 } @pragma_pack({1} 2 - 1) @align({2} 1 + 1) u8\n"
    "R = { size: 16, alignment: 8 } [{2} 1 + 1] { size: 8, alignment: 8 } u8\n"
)


@pytest.mark.parametrize(
    "text",
    [
        CANONICAL,
        "A = struct { a int, _ char : 3, b [4] u8 }\nconst C = 1 + 2\n",
        "",
        "const C = 7\n",
    ],
)
def test_render_is_identity_on_parsed_input(text):
    assert render(text, parse(text)) == text


def test_type_layout_inserted():
    text = "A = int"
    declarations = parse(text)
    layout = TypeLayout(32, 32, 32, BITS_PER_BYTE)
    declarations[0].body.layout = layout
    output = render(text, declarations)
    assert output == "A = { size: 32, alignment: 32 }int"
    assert parse(output)[0].body.layout == layout


def test_field_layout_inserted():
    text = "S = struct { a u8 }"
    declarations = parse(text)
    declarations[0].body.variant.fields[0].layout = FieldLayout(0, 8)
    output = render(text, declarations)
    assert output == "S = struct { { offset: 0, size: 8 }a u8 }"
    assert parse(output)[0].body.variant.fields[0].layout == FieldLayout(0, 8)


def test_value_inserted_before_expression():
    text = "const C = 1 + 1"
    declarations = parse(text)
    declarations[0].body.value = 2
    output = render(text, declarations)
    assert output == "const C = {2}1 + 1"
    assert parse(output)[0].body.value == 2


def test_literal_values_are_not_printed():
    text = "const C = 7"
    declarations = parse(text)
    declarations[0].body.value = 9
    assert render(text, declarations) == text


def test_required_alignment_only_when_not_a_byte():
    text = "A = u8"
    declarations = parse(text)
    declarations[0].body.layout = TypeLayout(8, 8, 8, 16)
    output = render(text, declarations)
    assert "required_alignment: 16" in output
    assert parse(output)[0].body.layout == TypeLayout(8, 8, 8, 16)