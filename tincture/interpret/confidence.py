# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Confidence scoring.

    ρ_total = ρ_transform × ρ_schema × ρ_proximity

- ρ_transform: fidelity of the decode/encode step
- ρ_schema: coverage density, 1 - clamp(gap / spacing, 0, 1), floored
- ρ_proximity: exp(-gap / scale), exactly 1.0 at an anchor

``gap`` is the normalized distance to the nearest anchor and ``spacing``
is the schema's mean inter-anchor distance. Low confidence is an expected
outcome, so it is reported through flags, never raised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from tincture.schema.interpretation_schema import ConfidenceBreakdown, QualityConfig


def coverage_density(gap: float, spacing: float, floor: float = 0.05) -> float:
    """Coverage factor: 1 at an anchor, falling to ``floor`` one spacing away."""
    ratio = min(1.0, max(0.0, gap / spacing))
    return max(floor, 1.0 - ratio)


def proximity(gap: float, scale: float) -> float:
    """Exponential decay with distance to the nearest anchor."""
    return math.exp(-gap / scale)


@dataclass(frozen=True, slots=True)
class ConfidenceScore:
    """A scored confidence with its threshold flags."""
    breakdown: ConfidenceBreakdown
    low_confidence: bool
    warning: bool

    @property
    def total(self) -> float:
        return self.breakdown.total


def score(
    transform_fidelity: float,
    gap: float,
    spacing: float,
    quality: QualityConfig,
) -> ConfidenceScore:
    """
    Combine the three factors and classify against the quality thresholds.

    Args:
        transform_fidelity: ρ_transform from decode/encode
        gap: Normalized distance to the nearest anchor
        spacing: Mean inter-anchor distance of the schema
        quality: Thresholds, coverage floor and optional proximity scale

    Returns:
        ConfidenceScore; ``low_confidence`` when below min_confidence,
        ``warning`` when at/above min_confidence but below warning_threshold
    """
    scale = quality.proximity_scale if quality.proximity_scale is not None else spacing
    breakdown = ConfidenceBreakdown(
        transform=min(1.0, max(0.0, transform_fidelity)),
        schema=coverage_density(gap, spacing, quality.coverage_floor),
        proximity=proximity(gap, scale),
    )
    total = breakdown.total
    low = total < quality.min_confidence
    return ConfidenceScore(
        breakdown=breakdown,
        low_confidence=low,
        warning=not low and total < quality.warning_threshold,
    )
