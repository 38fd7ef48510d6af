# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Traversal between two coordinates.

Both ends are decoded, each native axis is interpolated independently (hue
along the shorter arc), and every intermediate triple is re-encoded under
the schema's clipping policy and interpreted.
"""

from __future__ import annotations

from typing import Union

import numpy as np

from tincture.schema.interpretation_schema import Coordinate, InterpretationResult, Schema
from tincture.interpret.colorspace import (
    CIRCULAR_PERIOD,
    axis_ids,
    decode,
    encode,
    is_circular,
)
from tincture.interpret.engine import interpret, interpret_native


def interpolate(
    start: tuple[float, float, float],
    end: tuple[float, float, float],
    axes: tuple[str, str, str],
    steps: int,
) -> np.ndarray:
    """
    Evenly spaced native triples from ``start`` to ``end`` inclusive.

    Returns:
        Array of shape (steps, 3)
    """
    t = np.linspace(0.0, 1.0, steps)[:, None]
    a = np.asarray(start, dtype=np.float64)
    b = np.asarray(end, dtype=np.float64)
    delta = b - a
    circular = np.array([is_circular(axis) for axis in axes])
    half = CIRCULAR_PERIOD / 2.0
    delta = np.where(circular, (delta + half) % CIRCULAR_PERIOD - half, delta)
    points = a + t * delta
    points = np.where(circular, points % CIRCULAR_PERIOD, points)
    # Pin the ends so rounding in the arc arithmetic cannot move them
    points[0] = a
    points[-1] = b
    return points


def traverse(
    start: Union[Coordinate, str],
    end: Union[Coordinate, str],
    schema: Schema,
    steps: int,
) -> tuple[InterpretationResult, ...]:
    """
    Interpret ``steps`` evenly spaced points between two coordinates.

    The first element is ``interpret(start)`` and the last is
    ``interpret(end)``. A point that falls outside sRGB under
    ``flag_and_warn`` has no coordinate; its result carries the
    out-of-gamut condition, parameters from the unclamped native triple,
    and confidence 0.

    Raises:
        ValueError: steps < 2
        InvalidCoordinateFormat: malformed start or end
    """
    if isinstance(steps, bool) or not isinstance(steps, int) or steps < 2:
        raise ValueError(f"steps must be an int >= 2, got {steps!r}")
    start = Coordinate.parse(start)
    end = Coordinate.parse(end)
    transform = schema.transform

    points = interpolate(
        decode(start, transform).native,
        decode(end, transform).native,
        axis_ids(transform.colorspace),
        steps,
    )

    results = []
    for i, point in enumerate(points):
        if i == 0 or i == steps - 1:
            results.append(interpret(start if i == 0 else end, schema))
            continue
        encoded = encode(point, transform)
        if encoded.coordinate is None:
            results.append(interpret_native(
                point, schema,
                transform_fidelity=0.0,
                out_of_gamut=encoded.out_of_gamut,
            ))
            continue
        decoded = decode(encoded.coordinate, transform)
        results.append(interpret_native(
            decoded.native, schema,
            transform_fidelity=encoded.fidelity * decoded.fidelity,
            coordinate=encoded.coordinate,
        ))
    return tuple(results)
