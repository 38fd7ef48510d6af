# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""Tests for confidence scoring (coverage density, proximity, thresholds)."""

import math

import numpy as np
import pytest

from tincture.schema import QualityConfig
from tincture.interpret.confidence import coverage_density, proximity, score


QUALITY = QualityConfig(min_confidence=0.5, warning_threshold=0.7)


class TestFactors:

    def test_coverage_at_anchor(self):
        assert coverage_density(0.0, 0.4) == 1.0

    def test_coverage_halfway(self):
        assert coverage_density(0.2, 0.4) == pytest.approx(0.5)

    def test_coverage_floor(self):
        assert coverage_density(0.4, 0.4) == 0.05
        assert coverage_density(5.0, 0.4, floor=0.1) == 0.1

    def test_proximity_at_anchor(self):
        assert proximity(0.0, 0.3) == 1.0

    def test_proximity_decays(self):
        assert proximity(0.3, 0.3) == pytest.approx(math.exp(-1.0))
        assert proximity(0.6, 0.3) < proximity(0.3, 0.3)


class TestScore:

    def test_product(self):
        result = score(0.9, gap=0.1, spacing=0.4, quality=QUALITY)
        expected = 0.9 * 0.75 * math.exp(-0.25)
        assert result.total == pytest.approx(expected)
        assert result.breakdown.transform == 0.9

    def test_unflagged(self):
        result = score(0.8, gap=0.0, spacing=0.4, quality=QUALITY)
        assert result.total == pytest.approx(0.8)
        assert not result.low_confidence
        assert not result.warning

    def test_warning_band(self):
        result = score(0.6, gap=0.0, spacing=0.4, quality=QUALITY)
        assert not result.low_confidence
        assert result.warning

    def test_low_confidence(self):
        result = score(0.4, gap=0.0, spacing=0.4, quality=QUALITY)
        assert result.low_confidence
        assert not result.warning

    def test_proximity_scale_override(self):
        quality = QualityConfig(proximity_scale=2.0)
        result = score(1.0, gap=0.5, spacing=0.4, quality=quality)
        assert result.breakdown.proximity == pytest.approx(math.exp(-0.25))

    def test_fidelity_clamped(self):
        assert score(1.5, gap=0.0, spacing=0.4, quality=QUALITY).total == 1.0
        assert score(-0.5, gap=0.0, spacing=0.4, quality=QUALITY).total == 0.0

    def test_bounds(self):
        rng = np.random.RandomState(42)
        for _ in range(500):
            result = score(
                float(rng.uniform(0, 1)),
                gap=float(rng.uniform(0, 3)),
                spacing=float(rng.uniform(0.01, 2)),
                quality=QUALITY,
            )
            assert 0.0 <= result.total <= 1.0
