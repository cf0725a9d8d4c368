# clayout

`clayout` reads a small declaration language that describes C types:
structs, unions, arrays, enums, typedefs, opaque types and named constants,
together with their sizes, alignments and field offsets. It parses the text,
evaluates every constant expression and collects the layouts that the text
states. It can also write those layouts and values back into the same text,
keeping its formatting and comments intact.

All sizes, offsets and alignments are given in bits.

## The description language

```text
// A constant, computed from an expression.
const N = 2 * 2

// A type whose layout is spelled out in braces.
Point = { size: 64, alignment: 32 } struct {
    { offset: 0, size: 32 } x { size: 32, alignment: 32 } i32,
    { offset: 32, size: 32 } y { size: 32, alignment: 32 } i32,
}
```

A type may carry a layout block (`size`, plus either `alignment` or both
`field_alignment` and `pointer_alignment`, and optionally
`required_alignment`, which defaults to 8) and annotations such as
`@pragma_pack(2)`, `@attr_packed` and `@align(16)`. Record fields may carry an
`{ offset: ..., size: ... }` block and a bit width after a colon; `_` names an
unnamed field. Expressions support `+ - * / %`, comparisons, `&&`, `||`, `!`,
unary minus, `BITS_PER_BYTE`, `sizeof`, `sizeof_bits`, `offsetof` and
`offsetof_bits`. An expression may be preceded by its value in braces, such
as `{4}`. Text after `//` up to the end of the line is a comment.

## Modules

- `clayout.lexer`: `lex(data)` splits text into `Token`s of a `TokenKind`.
- `clayout.parser`: `parse(text)` returns a list of `clayout.ast.Declaration`;
  `parse_raw(data)` does the same but leaves error messages without a position
  prefix.
- `clayout.converter`: `extract_layouts(text, declarations)` returns a
  `ConversionResult` whose `types` maps type names to `clayout.layout.Type`
  values and whose `consts` maps constant names to integers.
- `clayout.enhancer`: `enhance_declarations(declarations, result)` returns
  copies of the declarations carrying the layouts and values of a
  `ConversionResult`.
- `clayout.printer`: `render(text, declarations)` writes the layouts and values
  of the declarations into the text.
- `clayout.errors`: `ParseError`, `LayoutError`, `line_column` and
  `format_span`.

## Usage

```python
from clayout.parser import parse
from clayout.converter import extract_layouts
from clayout.enhancer import enhance_declarations
from clayout.printer import render

text = """
const N = 2 * 2
Point = { size: 64, alignment: 32 } struct {
    { offset: 0, size: 32 } x { size: 32, alignment: 32 } i32,
    { offset: 32, size: 32 } y { size: 32, alignment: 32 } i32,
}
"""

declarations = parse(text)
result = extract_layouts(text, declarations)

print(result.consts["N"])                      # 4
print(result.types["Point"].layout.size_bits)  # 64

print(render(text, enhance_declarations(declarations, result)))
```

`render` returns the text with each non-literal top-level expression given
its value in braces directly in front of it (`const N = {4}2 * 2`); a value
prefix already present is replaced. Every layout block is written from the
layouts held by the declarations.

## Errors

Syntax errors raise `clayout.errors.ParseError`. Problems found while
evaluating the declarations (undeclared names, declarations that depend on
themselves, division by zero, overflow, values that do not fit into an
unsigned 64-bit integer, missing layouts) raise `clayout.errors.LayoutError`.
Messages from `parse` and `extract_layouts` begin with the position in the
input as `line:column` or `line:column - line:column`.

## What it does not do

`clayout` does not work out layouts from the rules of a target platform: every
type handed to `extract_layouts` must state its layout in the text. There is
no command-line tool; the package is used as a library.

## Running the tests

Install the package with its `test` extra and run `pytest`.