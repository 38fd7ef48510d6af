# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""Tests for colorspace decode/encode (rgb, hsl, hsv, lab, xyz) and gamut policies."""

import numpy as np
import pytest

from tincture.schema import (
    AdaptationMethod,
    Anchor,
    ClippingPolicy,
    Colorspace,
    Coordinate,
    Dimension,
    GammaCurve,
    ReferenceWhite,
    Schema,
    Transform,
)
from tincture.interpret.colorspace import (
    _xyz_matrices,
    decode,
    delta_e_cie76,
    encode,
    hsl_to_srgb,
    linear_to_srgb,
    native_bounds,
    srgb_to_hsl,
    srgb_to_linear,
)


RGB = Transform(Colorspace.RGB)
HSL = Transform(Colorspace.HSL)
HSV = Transform(Colorspace.HSV)
LAB = Transform(Colorspace.LAB)
XYZ = Transform(Colorspace.XYZ)


def _random_coordinates(n, seed=42):
    rng = np.random.RandomState(seed)
    return [Coordinate(*(int(v) for v in row)) for row in rng.randint(0, 256, size=(n, 3))]


def _hue_gap(h1, h2):
    d = abs(h1 - h2) % 360.0
    return min(d, 360.0 - d)


class TestSRGBLinear:
    """sRGB ↔ Linear RGB conversions must roundtrip accurately."""

    def test_roundtrip_mid_gray(self):
        srgb = np.array([0.5, 0.5, 0.5])
        np.testing.assert_allclose(linear_to_srgb(srgb_to_linear(srgb)), srgb, atol=1e-10)

    def test_gamma_threshold(self):
        """Values below 0.04045 use linear segment."""
        linear = srgb_to_linear(np.array([0.03]))
        assert float(linear[0]) == pytest.approx(0.03 / 12.92, abs=1e-10)

    def test_out_of_range_not_clipped(self):
        """Negative and >1 values extend symmetrically so excess stays measurable."""
        np.testing.assert_allclose(linear_to_srgb(np.array([-0.5])), -linear_to_srgb(np.array([0.5])))
        assert float(linear_to_srgb(np.array([1.2]))[0]) > 1.0

    def test_batch_roundtrip(self):
        srgb = np.random.RandomState(42).random((100, 3))
        np.testing.assert_allclose(linear_to_srgb(srgb_to_linear(srgb)), srgb, atol=1e-10)


class TestRGB:

    def test_decode_is_channel_values(self):
        result = decode("#FF3300", RGB)
        assert result.native == (255.0, 51.0, 0.0)
        assert result.fidelity == 1.0

    def test_encode_exact(self):
        result = encode((255.0, 51.0, 0.0), RGB)
        assert result.coordinate == Coordinate(255, 51, 0)
        assert result.fidelity == 1.0
        assert result.out_of_gamut is None

    def test_roundtrip_all_samples(self):
        for c in _random_coordinates(200):
            assert encode(decode(c, RGB).native, RGB).coordinate == c

    def test_encode_clamps_out_of_range(self):
        result = encode((300.0, 51.0, -10.0), RGB)
        assert result.coordinate.hex == "#FF3300"
        assert result.fidelity == pytest.approx(1.0 - 55.0 / 255.0)

    def test_encode_rejects_non_finite(self):
        with pytest.raises(ValueError):
            encode((float("nan"), 0.0, 0.0), RGB)


class TestHSLHSV:

    def test_primaries_hsl(self):
        assert decode("#FF0000", HSL).native == pytest.approx((0.0, 1.0, 0.5))
        assert decode("#00FF00", HSL).native == pytest.approx((120.0, 1.0, 0.5))
        assert decode("#0000FF", HSL).native == pytest.approx((240.0, 1.0, 0.5))

    def test_primaries_hsv(self):
        assert decode("#FF0000", HSV).native == pytest.approx((0.0, 1.0, 1.0))
        assert decode("#00FF00", HSV).native == pytest.approx((120.0, 1.0, 1.0))

    def test_gray_has_zero_hue_and_saturation(self):
        h, s, l = decode("#808080", HSL).native
        assert h == 0.0
        assert s == 0.0
        assert l == pytest.approx(128 / 255)

    def test_hue_range(self):
        for c in _random_coordinates(200, seed=7):
            h = decode(c, HSV).native[0]
            assert 0.0 <= h < 360.0

    def test_hue_wraps_on_encode(self):
        expected = encode((120.0, 1.0, 0.5), HSL).coordinate
        assert expected.hex == "#00FF00"
        assert encode((480.0, 1.0, 0.5), HSL).coordinate == expected
        assert encode((-240.0, 1.0, 0.5), HSL).coordinate == expected

    @pytest.mark.parametrize("transform", [HSL, HSV])
    def test_coordinate_roundtrip(self, transform):
        for c in _random_coordinates(300, seed=3):
            result = encode(decode(c, transform).native, transform)
            assert result.coordinate == c
            assert result.fidelity == 1.0

    @pytest.mark.parametrize("transform", [HSL, HSV])
    def test_native_roundtrip_within_quantization(self, transform):
        rng = np.random.RandomState(11)
        for _ in range(100):
            p = (rng.uniform(0, 360), rng.uniform(0.5, 1.0), rng.uniform(0.35, 0.65))
            back = decode(encode(p, transform).coordinate, transform).native
            assert _hue_gap(back[0], p[0]) < 2.0
            assert back[1] == pytest.approx(p[1], abs=0.03)
            assert back[2] == pytest.approx(p[2], abs=0.01)

    def test_clamp_lowers_fidelity(self):
        result = encode((0.0, 1.5, 1.0), HSV)
        assert result.coordinate.hex == "#FF0000"
        assert result.fidelity == pytest.approx(0.5)

    def test_hsl_array_roundtrip(self):
        rgb = np.random.RandomState(5).random((50, 3))
        np.testing.assert_allclose(hsl_to_srgb(srgb_to_hsl(rgb)), rgb, atol=1e-10)


class TestLABXYZ:

    def test_white_and_black(self):
        L, a, b = decode("#FFFFFF", LAB).native
        assert L == pytest.approx(100.0, abs=0.01)
        assert a == pytest.approx(0.0, abs=0.01)
        assert b == pytest.approx(0.0, abs=0.01)
        assert decode("#000000", LAB).native == pytest.approx((0.0, 0.0, 0.0), abs=1e-9)

    def test_red_reference_value(self):
        L, a, b = decode("#FF0000", LAB).native
        assert L == pytest.approx(53.24, abs=0.05)
        assert a == pytest.approx(80.09, abs=0.05)
        assert b == pytest.approx(67.20, abs=0.05)

    def test_xyz_white_is_reference_white(self):
        assert decode("#FFFFFF", XYZ).native == pytest.approx((95.047, 100.0, 108.883), abs=0.01)

    def test_d50_bradford_white_is_neutral(self):
        transform = Transform(
            Colorspace.LAB,
            reference_white=ReferenceWhite.D50,
            adaptation_method=AdaptationMethod.BRADFORD,
        )
        L, a, b = decode("#FFFFFF", transform).native
        assert L == pytest.approx(100.0, abs=0.01)
        assert a == pytest.approx(0.0, abs=0.01)
        assert b == pytest.approx(0.0, abs=0.01)

    def test_d50_without_adaptation_is_tinted(self):
        transform = Transform(
            Colorspace.LAB,
            reference_white=ReferenceWhite.D50,
            adaptation_method=AdaptationMethod.NONE,
        )
        _, _, b = decode("#FFFFFF", transform).native
        assert b < -10.0  # D65 white looks blue against a D50 reference

    def test_gamma_curve_changes_decode(self):
        srgb_l = decode("#808080", LAB).native[0]
        linear_l = decode("#808080", Transform(Colorspace.LAB, gamma_curve=GammaCurve.LINEAR)).native[0]
        assert linear_l > srgb_l

    @pytest.mark.parametrize("transform", [
        LAB,
        XYZ,
        Transform(Colorspace.LAB, reference_white="D50", adaptation_method="von_kries"),
        Transform(Colorspace.XYZ, gamma_curve="gamma_2.2"),
    ])
    def test_coordinate_roundtrip(self, transform):
        for c in _random_coordinates(200, seed=21):
            result = encode(decode(c, transform).native, transform)
            assert result.coordinate == c
            assert result.fidelity == 1.0
            assert result.out_of_gamut is None

    def test_decode_fidelity_always_one(self):
        for c in _random_coordinates(50):
            assert decode(c, LAB).fidelity == 1.0


class TestGamutPolicies:
    """(50, 120, 0) in LAB is far outside sRGB."""

    OUT_OF_GAMUT = (50.0, 120.0, 0.0)

    def _transform(self, policy):
        return Transform(Colorspace.LAB, clipping_policy=policy)

    def test_hard_clip(self):
        result = encode(self.OUT_OF_GAMUT, self._transform(ClippingPolicy.HARD_CLIP))
        assert result.coordinate is not None
        assert 0.0 <= result.fidelity < 1.0
        assert result.out_of_gamut is None

    def test_flag_and_warn(self):
        result = encode(self.OUT_OF_GAMUT, self._transform(ClippingPolicy.FLAG_AND_WARN))
        assert result.coordinate is None
        assert result.fidelity == 0.0
        assert result.out_of_gamut is not None
        assert result.out_of_gamut.native == self.OUT_OF_GAMUT
        assert result.out_of_gamut.excess > 0.0

    def test_flag_and_warn_logs(self, caplog):
        with caplog.at_level("WARNING", logger="tincture.interpret.colorspace"):
            encode(self.OUT_OF_GAMUT, self._transform(ClippingPolicy.FLAG_AND_WARN))
        assert "Out of gamut" in caplog.text

    def test_perceptual_clamp(self):
        result = encode(self.OUT_OF_GAMUT, self._transform(ClippingPolicy.PERCEPTUAL_CLAMP))
        assert result.coordinate is not None
        assert 0.0 < result.fidelity < 1.0

    def test_perceptual_is_closer_than_hard_clip(self):
        hard = encode(self.OUT_OF_GAMUT, self._transform(ClippingPolicy.HARD_CLIP)).coordinate
        soft = encode(self.OUT_OF_GAMUT, self._transform(ClippingPolicy.PERCEPTUAL_CLAMP)).coordinate
        de_hard = delta_e_cie76(decode(hard, LAB).native, self.OUT_OF_GAMUT)
        de_soft = delta_e_cie76(decode(soft, LAB).native, self.OUT_OF_GAMUT)
        assert de_soft <= de_hard + 0.5

    def test_perceptual_is_deterministic(self):
        transform = self._transform(ClippingPolicy.PERCEPTUAL_CLAMP)
        assert encode(self.OUT_OF_GAMUT, transform) == encode(self.OUT_OF_GAMUT, transform)

    def test_policies_agree_in_gamut(self):
        native = decode("#3366CC", LAB).native
        coords = {encode(native, self._transform(p)).coordinate for p in ClippingPolicy}
        assert coords == {Coordinate.from_hex("#3366CC")}


class TestNativeBounds:

    def test_fixed_bounds(self):
        assert native_bounds(RGB) == ((0.0, 255.0),) * 3
        assert native_bounds(HSV) == ((0.0, 360.0), (0.0, 1.0), (0.0, 1.0))
        assert native_bounds(LAB) == ((0.0, 100.0), (-128.0, 127.0), (-128.0, 127.0))

    def test_xyz_bounds_follow_reference_white(self):
        d65 = native_bounds(XYZ)
        d50 = native_bounds(Transform(Colorspace.XYZ, reference_white="D50"))
        assert d65[2][1] == pytest.approx(108.883, abs=0.01)
        assert d50[2][1] == pytest.approx(82.521, abs=0.05)

    @pytest.mark.parametrize("white", ["D65", "D50"])
    @pytest.mark.parametrize("adaptation", ["bradford", "von_kries", "none"])
    def test_xyz_bounds_rounded(self, white, adaptation):
        bounds = native_bounds(Transform("xyz", reference_white=white, adaptation_method=adaptation))
        for _, hi in bounds:
            assert hi == round(hi, 6)

    def test_schema_at_exact_white_bound(self):
        transform = Transform("xyz", reference_white="D50")
        forward, _ = _xyz_matrices(transform.reference_white, transform.adaptation_method)
        exact = [float(w) * 100.0 for w in forward.sum(axis=1)]
        schema = Schema(
            domain="triage",
            lineage_id="triage-xyz",
            version="1.0.0",
            transform=transform,
            dimensions=tuple(
                Dimension(axis, f"p_{axis}", (0, 1), native_range=(0.0, hi))
                for axis, hi in zip("xyz", exact)
            ),
            anchors=(Anchor("white", "White", Coordinate.from_hex("#FFFFFF"),
                            decode("#FFFFFF", transform).native),),
        )
        assert schema.dimensions[2].native_range[1] == pytest.approx(82.521, abs=0.05)
