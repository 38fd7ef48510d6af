# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Anchor geometry: nearest-anchor lookup in normalized native space.

Each axis is normalized by its native range before distances are combined,
so L in [0,100] and a in [-128,127] contribute comparably. The hue axis
wraps: its per-axis distance is the shorter arc, normalized by 180°.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from tincture.schema.interpretation_schema import Anchor, Transform
from tincture.interpret.colorspace import (
    CIRCULAR_PERIOD,
    axis_ids,
    decode,
    is_circular,
    native_bounds,
)

# Spacing used when fewer than two distinct anchors exist: one full
# normalized axis
FALLBACK_SPACING = 1.0


@dataclass(frozen=True, slots=True)
class AnchorMatch:
    """An anchor and its normalized distance from a query point."""
    anchor: Anchor
    distance: float


class AnchorIndex:
    """
    Read-only index over a schema's anchors.

    Built once at schema validation; safe to query from many threads.

    Args:
        anchors: Anchors, in any order
        natives: Decoded native triple for each anchor, same order
        axes: Axis ids of the colorspace
        ranges: Native (min, max) per axis, used for normalization
    """

    def __init__(
        self,
        anchors: Sequence[Anchor],
        natives: Sequence[Sequence[float]],
        axes: Sequence[str],
        ranges: Sequence[tuple[float, float]],
    ) -> None:
        if len(anchors) != len(natives):
            raise ValueError("Each anchor needs exactly one native value")
        self._anchors = tuple(anchors)
        self._ids = tuple(a.id for a in self._anchors)
        self._points = np.array(natives, dtype=np.float64).reshape(len(self._anchors), 3)
        self._spans = np.array([hi - lo for lo, hi in ranges], dtype=np.float64)
        self._circular = np.array([is_circular(axis) for axis in axes], dtype=bool)
        self._points.setflags(write=False)
        self.average_spacing = self._mean_pairwise_distance()

    @property
    def anchors(self) -> tuple[Anchor, ...]:
        return self._anchors

    def __len__(self) -> int:
        return len(self._anchors)

    def _normalized_deltas(self, deltas: NDArray[np.float64]) -> NDArray[np.float64]:
        deltas = np.abs(deltas)
        wrapped = deltas % CIRCULAR_PERIOD
        arc = np.minimum(wrapped, CIRCULAR_PERIOD - wrapped) / (CIRCULAR_PERIOD / 2.0)
        return np.where(self._circular, arc, deltas / self._spans)

    def distance(self, p: Sequence[float], q: Sequence[float]) -> float:
        """Normalized distance between two native triples."""
        delta = np.asarray(p, dtype=np.float64) - np.asarray(q, dtype=np.float64)
        return float(np.sqrt(np.sum(self._normalized_deltas(delta) ** 2)))

    def distances(self, point: Sequence[float]) -> NDArray[np.float64]:
        """Normalized distance from ``point`` to every anchor, in index order."""
        delta = self._points - np.asarray(point, dtype=np.float64)
        return np.sqrt(np.sum(self._normalized_deltas(delta) ** 2, axis=-1))

    def _mean_pairwise_distance(self) -> float:
        n = len(self._anchors)
        if n < 2:
            return FALLBACK_SPACING
        deltas = self._points[:, None, :] - self._points[None, :, :]
        pairwise = np.sqrt(np.sum(self._normalized_deltas(deltas) ** 2, axis=-1))
        upper = pairwise[np.triu_indices(n, k=1)]
        mean = float(np.mean(upper))
        if mean <= 1e-12:
            return FALLBACK_SPACING
        return mean

    def nearest(self, point: Sequence[float], k: int = 1) -> tuple[AnchorMatch, ...]:
        """
        The ``k`` nearest anchors to a native point.

        Ordered by distance ascending, ties broken by anchor id. Returns a
        tuple, so the sequence can be iterated any number of times.
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        dist = self.distances(point)
        order = sorted(range(len(self._anchors)), key=lambda i: (float(dist[i]), self._ids[i]))
        return tuple(AnchorMatch(self._anchors[i], float(dist[i])) for i in order[:k])


def build_index(anchors: Sequence[Anchor], transform: Transform) -> AnchorIndex:
    """Index anchors using the colorspace's natural bounds for normalization."""
    natives = [decode(a.coordinate, transform).native for a in anchors]
    return AnchorIndex(anchors, natives, axis_ids(transform.colorspace), native_bounds(transform))


def nearest(
    point: Sequence[float],
    anchors: Sequence[Anchor],
    k: int = 1,
    *,
    transform: Transform,
) -> tuple[AnchorMatch, ...]:
    """
    Standalone nearest-anchor query, without a schema.

    Schemas carry a prebuilt index (``schema.anchor_index``); use that when
    one is available, since it normalizes by the schema's declared ranges.
    """
    return build_index(anchors, transform).nearest(point, k)
