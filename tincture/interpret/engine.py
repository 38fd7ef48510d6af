# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Main interpretation API.

Turns a coordinate and a validated schema into named semantic parameters
plus a confidence score. The path from coordinate to result is pure: no
randomness, no clock, no mutable state. The only side effect available is
the optional audit recorder, which sees the finished result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Union

from tincture.schema.interpretation_schema import (
    Coordinate,
    Dimension,
    InterpretationResult,
    OutOfGamutCondition,
    Schema,
)
from tincture.interpret.colorspace import CIRCULAR_PERIOD, decode, is_circular
from tincture.interpret.confidence import score

if TYPE_CHECKING:
    from tincture.runtime.audit import AuditRecorder


def rescale(value: float, dim: Dimension) -> float:
    """
    Affinely map a native value from the dimension's native range to its
    semantic range, clamped to the semantic bounds.

    Hue is first wrapped into ``[native_min, native_min + 360)`` so the
    mapping has no jump at the wrap point.
    """
    n_lo, n_hi = dim.native_range
    s_lo, s_hi = dim.semantic_range
    if is_circular(dim.axis_id):
        value = n_lo + (value - n_lo) % CIRCULAR_PERIOD
    t = (value - n_lo) / (n_hi - n_lo)
    mapped = s_lo + t * (s_hi - s_lo)
    mapped = min(max(mapped, min(s_lo, s_hi)), max(s_lo, s_hi))
    if dim.precision is not None:
        mapped = round(mapped, dim.precision)
    return mapped


def interpret_native(
    native: Sequence[float],
    schema: Schema,
    *,
    transform_fidelity: float = 1.0,
    coordinate: Optional[Coordinate] = None,
    out_of_gamut: Optional[OutOfGamutCondition] = None,
) -> InterpretationResult:
    """
    Interpret an already-decoded native triple.

    Used directly by traversal for points that have no coordinate;
    ``interpret`` is the normal entry point.
    """
    native = tuple(float(v) for v in native)
    parameters = {
        dim.param_name: rescale(value, dim)
        for dim, value in zip(schema.dimensions, native)
    }

    index = schema.anchor_index
    match = index.nearest(native, k=1)[0]
    confidence = score(
        transform_fidelity,
        gap=match.distance,
        spacing=index.average_spacing,
        quality=schema.quality_config,
    )

    return InterpretationResult(
        coordinate=coordinate,
        native=native,
        parameters=parameters,
        confidence=confidence.total,
        breakdown=confidence.breakdown,
        nearest_anchor=match.anchor.id,
        nearest_distance=match.distance,
        low_confidence=confidence.low_confidence,
        warning=confidence.warning,
        schema_hash=schema.content_hash,
        out_of_gamut=out_of_gamut,
    )


def interpret(
    coordinate: Union[Coordinate, str],
    schema: Schema,
    *,
    recorder: Optional[AuditRecorder] = None,
) -> InterpretationResult:
    """
    Interpret a coordinate under a schema.

    Args:
        coordinate: Coordinate or ``#RRGGBB`` string
        schema: A validated Schema
        recorder: Optional audit recorder; it only emits when the schema's
            audit_mode is enabled

    Returns:
        InterpretationResult with parameters, confidence and flags

    Raises:
        InvalidCoordinateFormat: malformed hex string

    Example:
        >>> result = interpret("#FF3300", schema)
        >>> sorted(result.parameters)
        ['scope', 'severity', 'urgency']
        >>> 0.0 <= result.confidence <= 1.0
        True
    """
    coordinate = Coordinate.parse(coordinate)
    decoded = decode(coordinate, schema.transform)
    result = interpret_native(
        decoded.native,
        schema,
        transform_fidelity=decoded.fidelity,
        coordinate=coordinate,
    )
    if recorder is not None:
        recorder.record(result, schema)
    return result


def interpret_many(
    coordinates: Iterable[Union[Coordinate, str]],
    schema: Schema,
    *,
    recorder: Optional[AuditRecorder] = None,
) -> list[InterpretationResult]:
    """Interpret each coordinate independently, in input order."""
    return [interpret(c, schema, recorder=recorder) for c in coordinates]
