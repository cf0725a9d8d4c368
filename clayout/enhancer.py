"""Attaching computed layouts and values to parsed declarations."""

from __future__ import annotations

import copy

from . import ast
from . import layout as lm
from .layout import BITS_PER_BYTE


def enhance_declarations(declarations, result):
    """Return copies of ``declarations`` carrying the layouts and values of ``result``."""
    enhanced = []
    for d in declarations:
        if d.is_const():
            body = _with_value(d.body, result.consts[d.name])
        else:
            body = _enhance_type(d.body, result.types[d.name])
        enhanced.append(ast.Declaration(d.name, d.span, body))
    return enhanced


def _with_value(expr, value):
    expr = copy.deepcopy(expr)
    expr.value = value
    return expr


def _enhance_type(t, ty):
    av, cv = t.variant, ty.variant
    if isinstance(av, ast.Record) and isinstance(cv, lm.Record):
        variant = ast.Record(
            av.kind, [_enhance_field(f, fc) for f, fc in zip(av.fields, cv.fields)]
        )
    elif isinstance(av, ast.Typedef) and isinstance(cv, lm.Typedef):
        variant = ast.Typedef(_enhance_type(av.target, cv.target))
    elif isinstance(av, ast.Array) and isinstance(cv, lm.Array):
        count = None
        if av.num_elements is not None and cv.num_elements is not None:
            count = _with_value(av.num_elements, cv.num_elements)
        variant = ast.Array(_enhance_type(av.element_type, cv.element_type), count)
    elif isinstance(av, ast.EnumType) and isinstance(cv, lm.Enum):
        variant = ast.EnumType([_with_value(e, v) for e, v in zip(av.values, cv.values)])
    else:
        variant = copy.deepcopy(av)
    return ast.Type(
        id=t.id,
        lo=t.lo,
        layout=ty.layout,
        layout_hi=t.layout_hi,
        annotations=_enhance_annotations(t.annotations, ty.annotations),
        variant=variant,
    )


def _enhance_field(f, fc):
    bit_width = copy.deepcopy(f.bit_width)
    if bit_width is not None and fc.bit_width is not None:
        bit_width.value = fc.bit_width
    return ast.RecordField(
        parent_id=f.parent_id,
        pos=f.pos,
        lo=f.lo,
        layout=fc.layout,
        layout_hi=f.layout_hi,
        annotations=_enhance_annotations(f.annotations, fc.annotations),
        name=f.name,
        bit_width=bit_width,
        ty=_enhance_type(f.ty, fc.ty),
    )


def _enhance_annotations(annotations, converted):
    return [_enhance_annotation(a, c) for a, c in zip(annotations, converted)]


def _enhance_annotation(a, c):
    if isinstance(a, ast.Aligned) and a.expr is not None and isinstance(c, lm.Align) and c.bits is not None:
        return ast.Aligned(_with_value(a.expr, c.bits // BITS_PER_BYTE))
    if isinstance(a, ast.PragmaPack) and isinstance(c, lm.PragmaPack):
        return ast.PragmaPack(_with_value(a.expr, c.bits // BITS_PER_BYTE))
    return copy.deepcopy(a)