"""Rendering of declarations back into their source text with layouts inserted."""

from __future__ import annotations

from . import ast


class _Printer:
    def __init__(self, data):
        self.data = data
        self.pos = 0
        self.out = []

    def write(self, text):
        self.out.append(text.encode("utf-8"))

    def set_pos(self, pos):
        self.out.append(self.data[self.pos:pos])
        self.pos = pos

    def declaration(self, d):
        if d.is_const():
            self.top_level_expr(d.body)
        else:
            self.type(d.body)

    def type(self, t):
        self.set_pos(t.lo)
        layout = t.layout
        if layout is not None:
            parts = [f"{{ size: {layout.size_bits}, "]
            if layout.field_alignment_bits == layout.pointer_alignment_bits:
                parts.append(f"alignment: {layout.field_alignment_bits}")
            else:
                parts.append(
                    f"field_alignment: {layout.field_alignment_bits}, "
                    f"pointer_alignment: {layout.pointer_alignment_bits}"
                )
            if layout.required_alignment_bits != 8:
                parts.append(f", required_alignment: {layout.required_alignment_bits}")
            parts.append(" }")
            self.write("".join(parts))
        self.pos = t.layout_hi
        self.annotations(t.annotations)
        variant = t.variant
        if isinstance(variant, ast.Record):
            for f in variant.fields:
                self.field(f)
        elif isinstance(variant, ast.Typedef):
            self.type(variant.target)
        elif isinstance(variant, ast.Array):
            if variant.num_elements is not None:
                self.top_level_expr(variant.num_elements)
            self.type(variant.element_type)
        elif isinstance(variant, ast.EnumType):
            for e in variant.values:
                self.top_level_expr(e)

    def annotations(self, annotations):
        for a in annotations:
            if isinstance(a, ast.PragmaPack):
                self.top_level_expr(a.expr)
            elif isinstance(a, ast.Aligned) and a.expr is not None:
                self.top_level_expr(a.expr)

    def field(self, f):
        self.set_pos(f.lo)
        if f.layout is not None:
            self.write(f"{{ offset: {f.layout.offset_bits}, size: {f.layout.size_bits} }}")
        self.pos = f.layout_hi
        self.annotations(f.annotations)
        self.type(f.ty)
        if f.bit_width is not None:
            self.top_level_expr(f.bit_width)

    def top_level_expr(self, e):
        if isinstance(e.node, ast.Lit):
            return
        self.set_pos(e.span.lo)
        if e.value is not None:
            self.write(f"{{{e.value}}}")
        self.pos = e.value_hi


def render(text, declarations):
    """Return ``text`` with the layouts and values held by ``declarations`` written in.

    Existing layout and value prefixes are replaced; everything else of the
    input is kept as it is.
    """
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    printer = _Printer(data)
    for d in declarations:
        printer.declaration(d)
    printer.out.append(data[printer.pos:])
    return b"".join(printer.out).decode("utf-8")