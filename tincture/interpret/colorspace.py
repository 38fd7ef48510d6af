# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Color space conversions between coordinates and native triples.

Conversion chains:
- rgb: channel values as-is, [0, 255]
- hsl/hsv: sRGB [0,1] → cylindrical (hue in degrees, circular)
- xyz: sRGB → Linear RGB (gamma) → XYZ (reference white, adaptation)
- lab: ... → XYZ → CIELAB

``decode`` is exact and never clips: every 24-bit coordinate has exactly one
native value. ``encode`` is where gamut matters, and it applies the
transform's clipping policy.

References:
- sRGB: IEC 61966-2-1
- CIELAB: CIE 15:2004
- Bradford / von Kries adaptation: Lindbloom, "Chromatic Adaptation"
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize

from tincture.log import get_logger
from tincture.schema.interpretation_schema import (
    AdaptationMethod,
    ClippingPolicy,
    Colorspace,
    Coordinate,
    GammaCurve,
    OutOfGamutCondition,
    ReferenceWhite,
    Transform,
)

log = get_logger(__name__)


# =============================================================================
# Axes and Bounds
# =============================================================================

AXES: dict[Colorspace, tuple[str, str, str]] = {
    Colorspace.RGB: ("r", "g", "b"),
    Colorspace.HSL: ("h", "s", "l"),
    Colorspace.HSV: ("h", "s", "v"),
    Colorspace.LAB: ("l", "a", "b"),
    Colorspace.XYZ: ("x", "y", "z"),
}

CIRCULAR_PERIOD = 360.0

# Half an 8-bit code value: anything closer than this rounds into range
GAMUT_EPSILON = 0.5 / 255.0

# ΔE (CIE76) that maps to zero fidelity under perceptual_clamp
PERCEPTUAL_DELTA_SCALE = 100.0

# Decimal places kept in derived xyz bounds
XYZ_BOUND_DECIMALS = 6


def axis_ids(colorspace: Colorspace) -> tuple[str, str, str]:
    """Native axis ids for a colorspace, in decode order."""
    return AXES[colorspace]


def is_circular(axis_id: str) -> bool:
    """True for the hue axis, which wraps at 360°."""
    return axis_id == "h"


def native_bounds(transform: Transform) -> tuple[tuple[float, float], ...]:
    """
    Natural per-axis bounds of a colorspace.

    For xyz the upper bounds are the XYZ of sRGB white under the transform's
    reference white and adaptation (Y of white = 100).
    """
    colorspace = transform.colorspace
    if colorspace is Colorspace.RGB:
        return ((0.0, 255.0),) * 3
    if colorspace in (Colorspace.HSL, Colorspace.HSV):
        return ((0.0, CIRCULAR_PERIOD), (0.0, 1.0), (0.0, 1.0))
    if colorspace is Colorspace.LAB:
        return ((0.0, 100.0), (-128.0, 127.0), (-128.0, 127.0))
    forward, _ = _xyz_matrices(transform.reference_white, transform.adaptation_method)
    white = forward.sum(axis=1) * 100.0
    # These bounds feed the content hash; round away LAPACK-level noise
    return tuple((0.0, round(float(w), XYZ_BOUND_DECIMALS)) for w in white)


# =============================================================================
# sRGB ↔ Linear RGB
# =============================================================================


def srgb_to_linear(srgb: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Convert sRGB values [0,1] to linear RGB.

    sRGB uses a piecewise gamma curve:
    - For values <= 0.04045: linear/12.92
    - For values > 0.04045: ((value + 0.055) / 1.055) ^ 2.4
    """
    srgb = np.asarray(srgb, dtype=np.float64)
    magnitude = np.abs(srgb)
    linear = np.where(
        magnitude <= 0.04045,
        magnitude / 12.92,
        np.power((magnitude + 0.055) / 1.055, 2.4)
    )
    return np.sign(srgb) * linear


def linear_to_srgb(linear: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Convert linear RGB to sRGB values.

    Inverse of srgb_to_linear. Out-of-gamut values are extended
    symmetrically rather than clipped, so gamut excess stays measurable.
    """
    linear = np.asarray(linear, dtype=np.float64)
    magnitude = np.abs(linear)
    srgb = np.where(
        magnitude <= 0.0031308,
        magnitude * 12.92,
        1.055 * np.power(magnitude, 1.0 / 2.4) - 0.055
    )
    return np.sign(linear) * srgb


def _decode_gamma(encoded: NDArray[np.float64], curve: GammaCurve) -> NDArray[np.float64]:
    if curve is GammaCurve.SRGB:
        return srgb_to_linear(encoded)
    if curve is GammaCurve.GAMMA_22:
        return np.sign(encoded) * np.power(np.abs(encoded), 2.2)
    return np.asarray(encoded, dtype=np.float64)


def _encode_gamma(linear: NDArray[np.float64], curve: GammaCurve) -> NDArray[np.float64]:
    if curve is GammaCurve.SRGB:
        return linear_to_srgb(linear)
    if curve is GammaCurve.GAMMA_22:
        return np.sign(linear) * np.power(np.abs(linear), 1.0 / 2.2)
    return np.asarray(linear, dtype=np.float64)


# =============================================================================
# Linear RGB ↔ XYZ
# =============================================================================

# Linear sRGB (D65) to XYZ, Y of white = 1
_SRGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
], dtype=np.float64)

WHITE_POINTS: dict[ReferenceWhite, NDArray[np.float64]] = {
    ReferenceWhite.D65: np.array([0.95047, 1.0, 1.08883], dtype=np.float64),
    ReferenceWhite.D50: np.array([0.96422, 1.0, 0.82521], dtype=np.float64),
}

# Cone response matrices for chromatic adaptation
_CONE_RESPONSE = {
    AdaptationMethod.BRADFORD: np.array([
        [0.8951, 0.2664, -0.1614],
        [-0.7502, 1.7135, 0.0367],
        [0.0389, -0.0685, 1.0296],
    ], dtype=np.float64),
    AdaptationMethod.VON_KRIES: np.array([
        [0.40024, 0.70760, -0.08081],
        [-0.22630, 1.16532, 0.04570],
        [0.0, 0.0, 0.91822],
    ], dtype=np.float64),
}


def adaptation_matrix(
    source: NDArray[np.float64],
    destination: NDArray[np.float64],
    method: AdaptationMethod,
) -> NDArray[np.float64]:
    """
    Chromatic adaptation matrix taking XYZ under ``source`` white to XYZ
    under ``destination`` white.
    """
    if method is AdaptationMethod.NONE:
        return np.eye(3)
    cone = _CONE_RESPONSE[method]
    scale = (cone @ destination) / (cone @ source)
    return np.linalg.inv(cone) @ np.diag(scale) @ cone


@lru_cache(maxsize=None)
def _xyz_matrices(
    reference_white: ReferenceWhite,
    adaptation: AdaptationMethod,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Linear RGB → XYZ matrix for a transform, and its inverse."""
    if reference_white is ReferenceWhite.D65 or adaptation is AdaptationMethod.NONE:
        forward = _SRGB_TO_XYZ.copy()
    else:
        forward = adaptation_matrix(
            WHITE_POINTS[ReferenceWhite.D65], WHITE_POINTS[reference_white], adaptation,
        ) @ _SRGB_TO_XYZ
    inverse = np.linalg.inv(forward)
    # Shared across threads
    forward.setflags(write=False)
    inverse.setflags(write=False)
    return forward, inverse


def linear_rgb_to_xyz(rgb: NDArray[np.float64], transform: Transform) -> NDArray[np.float64]:
    """
    Convert linear RGB to XYZ (Y of white = 1).

    Args:
        rgb: Array of shape (..., 3) with linear RGB values
        transform: Supplies reference white and adaptation method
    """
    forward, _ = _xyz_matrices(transform.reference_white, transform.adaptation_method)
    return np.einsum('...j,ij->...i', np.asarray(rgb, dtype=np.float64), forward)


def xyz_to_linear_rgb(xyz: NDArray[np.float64], transform: Transform) -> NDArray[np.float64]:
    """Convert XYZ (Y of white = 1) to linear RGB. Inverse of linear_rgb_to_xyz."""
    _, inverse = _xyz_matrices(transform.reference_white, transform.adaptation_method)
    return np.einsum('...j,ij->...i', np.asarray(xyz, dtype=np.float64), inverse)


# =============================================================================
# XYZ ↔ CIELAB
# =============================================================================

_LAB_DELTA = 6.0 / 29.0


def _lab_f(t: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.where(
        t > _LAB_DELTA ** 3,
        np.cbrt(t),
        t / (3.0 * _LAB_DELTA ** 2) + 4.0 / 29.0,
    )


def _lab_f_inv(f: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.where(
        f > _LAB_DELTA,
        f ** 3,
        3.0 * _LAB_DELTA ** 2 * (f - 4.0 / 29.0),
    )


def xyz_to_lab(xyz: NDArray[np.float64], white: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Convert XYZ (Y of white = 1) to CIELAB.

    Args:
        xyz: Array of shape (..., 3)
        white: Reference white XYZ

    Returns:
        Array of shape (..., 3) with (L, a, b); L in [0, 100] for sRGB colors
    """
    f = _lab_f(np.asarray(xyz, dtype=np.float64) / white)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    L = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)
    return np.stack([L, a, b], axis=-1)


def lab_to_xyz(lab: NDArray[np.float64], white: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert CIELAB to XYZ (Y of white = 1). Inverse of xyz_to_lab."""
    lab = np.asarray(lab, dtype=np.float64)
    fy = (lab[..., 0] + 16.0) / 116.0
    fx = fy + lab[..., 1] / 500.0
    fz = fy - lab[..., 2] / 200.0
    return _lab_f_inv(np.stack([fx, fy, fz], axis=-1)) * white


def delta_e_cie76(lab1: NDArray[np.float64], lab2: NDArray[np.float64]) -> float:
    """Euclidean distance in CIELAB (ΔE*ab, 1976)."""
    delta = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    return float(np.sqrt(np.sum(delta ** 2)))


# =============================================================================
# sRGB ↔ HSL / HSV
# =============================================================================


def _hue_and_chroma(rgb: NDArray[np.float64]) -> tuple[NDArray, NDArray, NDArray, NDArray]:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    mx = np.max(rgb, axis=-1)
    mn = np.min(rgb, axis=-1)
    chroma = mx - mn
    safe = np.where(chroma > 0, chroma, 1.0)
    sector = np.where(
        mx == r,
        ((g - b) / safe) % 6.0,
        np.where(mx == g, (b - r) / safe + 2.0, (r - g) / safe + 4.0),
    )
    hue = np.where(chroma > 0, sector * 60.0, 0.0) % CIRCULAR_PERIOD
    # Tiny negative residues can land exactly on 360.0
    hue = np.where(hue >= CIRCULAR_PERIOD, hue - CIRCULAR_PERIOD, hue)
    return hue, chroma, mx, mn


def _rgb_from_hue(hue: NDArray, chroma: NDArray, offset: NDArray) -> NDArray[np.float64]:
    hp = (np.asarray(hue, dtype=np.float64) % CIRCULAR_PERIOD) / 60.0
    x = chroma * (1.0 - np.abs(hp % 2.0 - 1.0))
    zero = np.zeros_like(x)
    sector = np.clip(np.floor(hp).astype(int), 0, 5)
    r = np.choose(sector, [chroma, x, zero, zero, x, chroma])
    g = np.choose(sector, [x, chroma, chroma, x, zero, zero])
    b = np.choose(sector, [zero, zero, x, chroma, chroma, x])
    return np.stack([r, g, b], axis=-1) + np.asarray(offset)[..., None]


def srgb_to_hsv(rgb: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Convert sRGB [0,1] to HSV.

    Returns:
        Array of shape (..., 3) with (H in degrees [0, 360), S, V in [0, 1]).
        Achromatic colors get H = 0.
    """
    rgb = np.asarray(rgb, dtype=np.float64)
    hue, chroma, mx, _ = _hue_and_chroma(rgb)
    saturation = np.where(mx > 0, chroma / np.where(mx > 0, mx, 1.0), 0.0)
    return np.stack([hue, saturation, mx], axis=-1)


def hsv_to_srgb(hsv: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert HSV to sRGB [0,1]. Inverse of srgb_to_hsv."""
    hsv = np.asarray(hsv, dtype=np.float64)
    chroma = hsv[..., 2] * hsv[..., 1]
    return _rgb_from_hue(hsv[..., 0], chroma, hsv[..., 2] - chroma)


def srgb_to_hsl(rgb: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Convert sRGB [0,1] to HSL.

    Returns:
        Array of shape (..., 3) with (H in degrees [0, 360), S, L in [0, 1]).
    """
    rgb = np.asarray(rgb, dtype=np.float64)
    hue, chroma, mx, mn = _hue_and_chroma(rgb)
    lightness = (mx + mn) / 2.0
    denom = 1.0 - np.abs(2.0 * lightness - 1.0)
    saturation = np.where(chroma > 0, chroma / np.where(denom > 0, denom, 1.0), 0.0)
    return np.stack([hue, np.minimum(saturation, 1.0), lightness], axis=-1)


def hsl_to_srgb(hsl: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert HSL to sRGB [0,1]. Inverse of srgb_to_hsl."""
    hsl = np.asarray(hsl, dtype=np.float64)
    chroma = (1.0 - np.abs(2.0 * hsl[..., 2] - 1.0)) * hsl[..., 1]
    return _rgb_from_hue(hsl[..., 0], chroma, hsl[..., 2] - chroma / 2.0)


# =============================================================================
# Decode / Encode
# =============================================================================


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """Native triple for a coordinate. Decode never clips, so fidelity is 1.0."""
    native: tuple[float, float, float]
    fidelity: float = 1.0


@dataclass(frozen=True, slots=True)
class EncodeResult:
    """
    Coordinate for a native triple.

    Attributes:
        coordinate: Encoded coordinate, or None when out of gamut under
            flag_and_warn
        fidelity: 1.0 when no clamping was needed, lower the more was lost
        out_of_gamut: Set only under flag_and_warn
    """
    coordinate: Optional[Coordinate]
    fidelity: float
    out_of_gamut: Optional[OutOfGamutCondition] = None


def _to_triple(values: NDArray[np.float64]) -> tuple[float, float, float]:
    a, b, c = (float(v) for v in values)
    return (a, b, c)


def decode(coordinate: Union[Coordinate, str], transform: Transform) -> DecodeResult:
    """
    Decode a coordinate into its native triple under ``transform``.

    Args:
        coordinate: Coordinate or ``#RRGGBB`` string

    Returns:
        DecodeResult with the native triple; fidelity is always 1.0
    """
    coordinate = Coordinate.parse(coordinate)
    channels = np.array(coordinate.channels, dtype=np.float64)
    colorspace = transform.colorspace

    if colorspace is Colorspace.RGB:
        native = channels
    elif colorspace is Colorspace.HSL:
        native = srgb_to_hsl(channels / 255.0)
    elif colorspace is Colorspace.HSV:
        native = srgb_to_hsv(channels / 255.0)
    else:
        linear = _decode_gamma(channels / 255.0, transform.gamma_curve)
        xyz = linear_rgb_to_xyz(linear, transform)
        if colorspace is Colorspace.XYZ:
            native = xyz * 100.0
        else:
            native = xyz_to_lab(xyz, WHITE_POINTS[transform.reference_white])
    return DecodeResult(native=_to_triple(native))


def _quantize(unit_rgb: NDArray[np.float64]) -> Coordinate:
    codes = np.rint(np.clip(unit_rgb, 0.0, 1.0) * 255.0).astype(int)
    return Coordinate(int(codes[0]), int(codes[1]), int(codes[2]))


def _clamp_axes(
    values: NDArray[np.float64],
    bounds: Sequence[tuple[float, float]],
) -> tuple[NDArray[np.float64], float]:
    """Clamp each axis into bounds; return clamped values and the clamp
    magnitude as a fraction of each axis span, summed."""
    lo = np.array([b[0] for b in bounds])
    hi = np.array([b[1] for b in bounds])
    clamped = np.clip(values, lo, hi)
    magnitude = float(np.sum(np.abs(values - clamped) / (hi - lo)))
    return clamped, magnitude


def _linear_for_native(native: NDArray[np.float64], transform: Transform) -> NDArray[np.float64]:
    if transform.colorspace is Colorspace.XYZ:
        xyz = native / 100.0
    else:
        xyz = lab_to_xyz(native, WHITE_POINTS[transform.reference_white])
    return xyz_to_linear_rgb(xyz, transform)


def _perceptual_projection(
    target_lab: NDArray[np.float64],
    start_linear: NDArray[np.float64],
    transform: Transform,
) -> tuple[NDArray[np.float64], float]:
    """
    Nearest in-gamut linear RGB to ``target_lab`` by CIELAB distance.

    Bounded L-BFGS-B from a fixed start point, so the result is
    deterministic for a given input.
    """
    white = WHITE_POINTS[transform.reference_white]

    def objective(linear: NDArray[np.float64]) -> float:
        lab = xyz_to_lab(linear_rgb_to_xyz(linear, transform), white)
        return float(np.sum((lab - target_lab) ** 2))

    result = minimize(
        objective,
        x0=np.clip(start_linear, 0.0, 1.0),
        method="L-BFGS-B",
        bounds=[(0.0, 1.0)] * 3,
        options={"ftol": 1e-14, "gtol": 1e-10, "maxiter": 500},
    )
    best = np.clip(result.x, 0.0, 1.0)
    return best, float(np.sqrt(objective(best)))


def encode(native: Sequence[float], transform: Transform) -> EncodeResult:
    """
    Encode a native triple to the nearest coordinate under ``transform``.

    rgb/hsl/hsv clamp each axis to its bounds (hue wraps); fidelity drops by
    the clamped amount as a fraction of the axis span. lab/xyz apply the
    transform's clipping policy when the triple falls outside sRGB:

    - perceptual_clamp: nearest in-gamut color by ΔE*ab;
      fidelity = 1 - ΔE / 100
    - hard_clip: clamp each sRGB channel; fidelity = 1 - RMS channel excess
    - flag_and_warn: no coordinate, fidelity 0, condition attached

    Raises:
        ValueError: native values are not three finite numbers
    """
    values = np.asarray(native, dtype=np.float64)
    if values.shape != (3,) or not np.all(np.isfinite(values)):
        raise ValueError(f"Native value must be three finite numbers, got {native!r}")
    colorspace = transform.colorspace

    if colorspace is Colorspace.RGB:
        clamped, magnitude = _clamp_axes(values, native_bounds(transform))
        return EncodeResult(_quantize(clamped / 255.0), max(0.0, 1.0 - magnitude))

    if colorspace in (Colorspace.HSL, Colorspace.HSV):
        wrapped = values.copy()
        wrapped[0] = wrapped[0] % CIRCULAR_PERIOD
        clamped, magnitude = _clamp_axes(wrapped, native_bounds(transform))
        to_srgb = hsl_to_srgb if colorspace is Colorspace.HSL else hsv_to_srgb
        return EncodeResult(_quantize(to_srgb(clamped)), max(0.0, 1.0 - magnitude))

    linear = _linear_for_native(values, transform)
    channels = _encode_gamma(linear, transform.gamma_curve)
    excess = np.maximum(0.0, -channels) + np.maximum(0.0, channels - 1.0)
    if np.all(excess <= GAMUT_EPSILON):
        return EncodeResult(_quantize(channels), 1.0)

    policy = transform.clipping_policy
    if policy is ClippingPolicy.HARD_CLIP:
        magnitude = float(np.sqrt(np.mean(excess ** 2)))
        return EncodeResult(_quantize(channels), max(0.0, 1.0 - min(1.0, magnitude)))

    if policy is ClippingPolicy.PERCEPTUAL_CLAMP:
        if colorspace is Colorspace.LAB:
            target = values
        else:
            target = xyz_to_lab(values / 100.0, WHITE_POINTS[transform.reference_white])
        best, delta_e = _perceptual_projection(target, linear, transform)
        fidelity = 1.0 - min(1.0, delta_e / PERCEPTUAL_DELTA_SCALE)
        return EncodeResult(_quantize(_encode_gamma(best, transform.gamma_curve)), fidelity)

    condition = OutOfGamutCondition(
        native=_to_triple(values),
        encoded_channels=_to_triple(channels),
        excess=float(np.max(excess)),
    )
    log.warning(
        "Out of gamut: %s %s exceeds sRGB by %.4f",
        colorspace.value, condition.native, condition.excess,
    )
    return EncodeResult(coordinate=None, fidelity=0.0, out_of_gamut=condition)
