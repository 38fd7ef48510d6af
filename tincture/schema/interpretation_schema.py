# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Interpretation schema and value types.

Design principles:
- Immutable: All types are frozen dataclasses
- Deterministic: Same coordinate + same schema → same result
- Content-addressed: A schema is identified by the hash of its logic
- Serializable: JSON-ready documents in, JSON-ready records out

A coordinate is a fixed 24-bit value. It never changes meaning; only the
schema that interprets it varies. A schema declares how the coordinate is
decoded (the transform), how each decoded axis maps to a named parameter
(the dimensions), and which labeled landmarks calibrate confidence (the
anchors).
"""

from __future__ import annotations

import hashlib
import json
import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from tincture.errors import (
    InvalidCoordinateFormat,
    SchemaIntegrityError,
    UnsupportedColorspaceError,
)
from tincture.log import get_logger

log = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

HASH_ALGORITHM = "sha256"

# Declared anchor decodes must match the recomputed decode within this
# tolerance (absolute and relative, per axis)
ANCHOR_TOLERANCE = 1e-3

_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})$")


def canonical_json(payload: Any) -> str:
    """Serialize to the canonical JSON form used for content hashing."""
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def content_digest(payload: Any) -> str:
    """Return ``"sha256:<hex>"`` over the canonical JSON of ``payload``."""
    digest = hashlib.new(HASH_ALGORITHM, canonical_json(payload).encode("utf-8"))
    return f"{HASH_ALGORITHM}:{digest.hexdigest()}"


def _float_pair(value: Any, what: str) -> tuple[float, float]:
    try:
        lo, hi = value
        pair = (float(lo), float(hi))
    except (TypeError, ValueError):
        raise SchemaIntegrityError(f"{what} must be a pair of numbers, got {value!r}") from None
    if not all(math.isfinite(v) for v in pair):
        raise SchemaIntegrityError(f"{what} must be finite, got {value!r}")
    return pair


def _float_triple(value: Any, what: str) -> tuple[float, float, float]:
    try:
        a, b, c = value
        triple = (float(a), float(b), float(c))
    except (TypeError, ValueError):
        raise SchemaIntegrityError(f"{what} must be three numbers, got {value!r}") from None
    if not all(math.isfinite(v) for v in triple):
        raise SchemaIntegrityError(f"{what} must be finite, got {value!r}")
    return triple


def _require_object(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise SchemaIntegrityError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _coerce_enum(enum_cls: type[Enum], value: Any, what: str) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value.lower() if isinstance(value, str) else value)
    except ValueError:
        pass
    # Reference whites are conventionally upper-case ("D65")
    try:
        return enum_cls(value.upper() if isinstance(value, str) else value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise SchemaIntegrityError(f"{what} must be one of {allowed}, got {value!r}") from None


# =============================================================================
# Coordinate
# =============================================================================


@dataclass(frozen=True, slots=True)
class Coordinate:
    """
    A fixed 24-bit coordinate: three unsigned 8-bit channels.

    The coordinate is opaque on its own. Meaning comes only from the schema
    that interprets it.

    Attributes:
        r, g, b: Channel values (0-255)
    """
    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        """Validate channels are 8-bit integers."""
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
                raise InvalidCoordinateFormat(f"Channel {name} must be an int 0-255, got {value!r}")

    @classmethod
    def from_hex(cls, hex_color: str) -> Coordinate:
        """
        Parse a ``#RRGGBB`` string (leading ``#`` optional, any case).

        Raises:
            InvalidCoordinateFormat: wrong length or non-hex characters
        """
        if not isinstance(hex_color, str):
            raise InvalidCoordinateFormat(f"Coordinate must be a hex string, got {type(hex_color).__name__}")
        m = _HEX_RE.match(hex_color.strip())
        if not m:
            raise InvalidCoordinateFormat(f"Coordinate must look like #RRGGBB, got {hex_color!r}")
        return cls(*(int(part, 16) for part in m.groups()))

    @classmethod
    def parse(cls, value: Union[Coordinate, str]) -> Coordinate:
        """Accept either a Coordinate or its hex string."""
        if isinstance(value, Coordinate):
            return value
        return cls.from_hex(value)

    @property
    def hex(self) -> str:
        """Upper-case ``#RRGGBB`` form."""
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    @property
    def channels(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def __str__(self) -> str:
        return self.hex


# =============================================================================
# Transform
# =============================================================================


class Colorspace(Enum):
    """The closed set of supported colorspaces."""
    RGB = "rgb"
    HSL = "hsl"
    HSV = "hsv"
    LAB = "lab"
    XYZ = "xyz"


class ClippingPolicy(Enum):
    """How ``encode`` handles native values outside the sRGB gamut."""
    PERCEPTUAL_CLAMP = "perceptual_clamp"  # nearest in-gamut point by ΔE
    HARD_CLIP = "hard_clip"                # clamp channels independently
    FLAG_AND_WARN = "flag_and_warn"        # no coordinate, fidelity 0


class ReferenceWhite(Enum):
    """CIE standard illuminants usable as the LAB/XYZ reference white."""
    D65 = "D65"
    D50 = "D50"


class AdaptationMethod(Enum):
    """Chromatic adaptation from sRGB's native D65 to the reference white."""
    BRADFORD = "bradford"
    VON_KRIES = "von_kries"
    NONE = "none"


class GammaCurve(Enum):
    """Transfer function between encoded channels and linear light."""
    SRGB = "srgb"
    GAMMA_22 = "gamma_2.2"
    LINEAR = "linear"


@dataclass(frozen=True, slots=True)
class Transform:
    """
    How a coordinate decodes into a native triple.

    Fixed for the lifetime of a lineage. Only ``colorspace`` is required;
    the CIE parameters are ignored by rgb/hsl/hsv.
    """
    colorspace: Colorspace
    reference_white: ReferenceWhite = ReferenceWhite.D65
    adaptation_method: AdaptationMethod = AdaptationMethod.BRADFORD
    gamma_curve: GammaCurve = GammaCurve.SRGB
    clipping_policy: ClippingPolicy = ClippingPolicy.HARD_CLIP

    def __post_init__(self) -> None:
        """Coerce string values to their enums."""
        if not isinstance(self.colorspace, Colorspace):
            try:
                value = self.colorspace.lower() if isinstance(self.colorspace, str) else self.colorspace
                object.__setattr__(self, "colorspace", Colorspace(value))
            except ValueError:
                raise UnsupportedColorspaceError(
                    f"Colorspace must be one of rgb, hsl, hsv, lab, xyz, got {self.colorspace!r}"
                ) from None
        object.__setattr__(
            self, "reference_white",
            _coerce_enum(ReferenceWhite, self.reference_white, "reference_white"),
        )
        object.__setattr__(
            self, "adaptation_method",
            _coerce_enum(AdaptationMethod, self.adaptation_method, "adaptation"),
        )
        object.__setattr__(
            self, "gamma_curve",
            _coerce_enum(GammaCurve, self.gamma_curve, "gamma"),
        )
        object.__setattr__(
            self, "clipping_policy",
            _coerce_enum(ClippingPolicy, self.clipping_policy, "clipping_policy"),
        )

    def to_dict(self) -> dict:
        """Serialize to the schema document form."""
        return {
            "colorspace": self.colorspace.value,
            "reference_white": self.reference_white.value,
            "adaptation": self.adaptation_method.value,
            "gamma": self.gamma_curve.value,
            "clipping_policy": self.clipping_policy.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Transform:
        """Deserialize from the schema document form."""
        _require_object(data, "transform")
        if "colorspace" not in data:
            raise SchemaIntegrityError("transform.colorspace is required")
        return cls(
            colorspace=data["colorspace"],
            reference_white=data.get("reference_white", ReferenceWhite.D65),
            adaptation_method=data.get("adaptation", AdaptationMethod.BRADFORD),
            gamma_curve=data.get("gamma", GammaCurve.SRGB),
            clipping_policy=data.get("clipping_policy", ClippingPolicy.HARD_CLIP),
        )


# =============================================================================
# Dimensions and Anchors
# =============================================================================


@dataclass(frozen=True, slots=True)
class Dimension:
    """
    Mapping from one native axis to one named semantic parameter.

    Attributes:
        axis_id: Native axis this dimension reads ("l", "a", "b", "h", ...)
        param_name: Name of the produced parameter
        semantic_range: (lo, hi) output range; may be inverted, never degenerate
        native_range: (min, max) input range; None means the colorspace bound
        label: Human-readable label
        description: Free-form description
        precision: Decimal places to round to; None leaves values unrounded
    """
    axis_id: str
    param_name: str
    semantic_range: tuple[float, float]
    native_range: Optional[tuple[float, float]] = None
    label: str = ""
    description: str = ""
    precision: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate range sanity."""
        if not self.axis_id or not isinstance(self.axis_id, str):
            raise SchemaIntegrityError("Dimension axis_id cannot be empty")
        object.__setattr__(self, "axis_id", self.axis_id.lower())
        if not self.param_name or not isinstance(self.param_name, str):
            raise SchemaIntegrityError(f"Dimension {self.axis_id} needs a param name")

        semantic = _float_pair(self.semantic_range, f"semantic range of {self.param_name}")
        if semantic[0] == semantic[1]:
            raise SchemaIntegrityError(f"Semantic range of {self.param_name} is degenerate: {semantic}")
        object.__setattr__(self, "semantic_range", semantic)

        if self.native_range is not None:
            native = _float_pair(self.native_range, f"native range of {self.param_name}")
            if not native[0] < native[1]:
                raise SchemaIntegrityError(
                    f"Native range of {self.param_name} must be ascending and non-degenerate, got {native}"
                )
            object.__setattr__(self, "native_range", native)

        if self.precision is not None:
            if isinstance(self.precision, bool) or not isinstance(self.precision, int) or self.precision < 0:
                raise SchemaIntegrityError(f"Precision of {self.param_name} must be a non-negative int")

    def to_dict(self) -> dict:
        """Serialize to the schema document form (keyed by axis elsewhere)."""
        return {
            "param": self.param_name,
            "label": self.label,
            "range": list(self.semantic_range),
            "native_range": list(self.native_range) if self.native_range is not None else None,
            "description": self.description,
            "precision": self.precision,
        }

    @classmethod
    def from_dict(cls, axis_id: str, data: dict) -> Dimension:
        """Deserialize from the schema document form."""
        _require_object(data, f"Dimension {axis_id}")
        try:
            return cls(
                axis_id=axis_id,
                param_name=data["param"],
                semantic_range=data["range"],
                native_range=data.get("native_range"),
                label=data.get("label", ""),
                description=data.get("description", ""),
                precision=data.get("precision"),
            )
        except KeyError as exc:
            raise SchemaIntegrityError(f"Dimension {axis_id} is missing {exc.args[0]!r}") from None
        except TypeError as exc:
            raise SchemaIntegrityError(f"Dimension {axis_id} is malformed: {exc}") from None


@dataclass(frozen=True, slots=True)
class Anchor:
    """
    A labeled landmark coordinate with its declared decoded value.

    The declared value is checked against a fresh decode when the schema
    is validated.
    """
    id: str
    label: str
    coordinate: Coordinate
    decoded_native_value: tuple[float, float, float]

    def __post_init__(self) -> None:
        """Validate id and normalize the decoded value."""
        if not self.id or not isinstance(self.id, str):
            raise SchemaIntegrityError("Anchor id cannot be empty")
        if not isinstance(self.coordinate, Coordinate):
            try:
                object.__setattr__(self, "coordinate", Coordinate.parse(self.coordinate))
            except InvalidCoordinateFormat as exc:
                raise SchemaIntegrityError(f"Anchor {self.id}: {exc}") from None
        object.__setattr__(
            self, "decoded_native_value",
            _float_triple(self.decoded_native_value, f"decoded value of anchor {self.id}"),
        )

    def to_dict(self, colorspace: Colorspace) -> dict:
        """Serialize to the schema document form."""
        return {
            "id": self.id,
            "label": self.label,
            "latent": self.coordinate.hex,
            f"decoded_{colorspace.value}": list(self.decoded_native_value),
        }

    @classmethod
    def from_dict(cls, data: dict, colorspace: Colorspace) -> Anchor:
        """Deserialize from the schema document form."""
        _require_object(data, "Anchor")
        anchor_id = data.get("id")
        if not anchor_id:
            raise SchemaIntegrityError(f"Anchor without id: {data!r}")

        expected = f"decoded_{colorspace.value}"
        decoded_keys = [k for k in data if k == "decoded" or k.startswith("decoded_")]
        foreign = [k for k in decoded_keys if k not in ("decoded", expected)]
        if foreign:
            raise SchemaIntegrityError(
                f"Anchor {anchor_id} declares {foreign[0]} but the schema decodes to {colorspace.value}"
            )
        if not decoded_keys:
            raise SchemaIntegrityError(f"Anchor {anchor_id} has no {expected} value")
        if len(decoded_keys) > 1:
            raise SchemaIntegrityError(
                f"Anchor {anchor_id} declares both {decoded_keys[0]} and {decoded_keys[1]}"
            )
        if "latent" not in data:
            raise SchemaIntegrityError(f"Anchor {anchor_id} has no latent coordinate")

        return cls(
            id=anchor_id,
            label=data.get("label", ""),
            coordinate=data["latent"],
            decoded_native_value=data[decoded_keys[0]],
        )


# =============================================================================
# Quality Configuration
# =============================================================================


class AuditMode(Enum):
    """Whether and how much to record per interpretation."""
    NONE = "none"        # nothing emitted
    SUMMARY = "summary"  # output and confidence only
    FULL = "full"        # plus native values and confidence breakdown

    @classmethod
    def coerce(cls, value: Any) -> AuditMode:
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.FULL if value else cls.NONE
        if value is None:
            return cls.NONE
        return _coerce_enum(cls, value, "audit_mode")


@dataclass(frozen=True, slots=True)
class QualityConfig:
    """
    Confidence thresholds and calibration for a schema.

    Attributes:
        min_confidence: Below this, results are flagged low_confidence
        warning_threshold: Below this (and at/above min), results carry a warning
        coverage_floor: Lower bound on the coverage-density factor
        proximity_scale: Decay scale for proximity; None uses the mean
            inter-anchor spacing
    """
    min_confidence: float = 0.5
    warning_threshold: float = 0.7
    coverage_floor: float = 0.05
    proximity_scale: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate thresholds."""
        for name in ("min_confidence", "warning_threshold", "coverage_floor"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise SchemaIntegrityError(f"quality_config.{name} must be 0-1, got {value!r}")
            object.__setattr__(self, name, float(value))
        if self.warning_threshold < self.min_confidence:
            raise SchemaIntegrityError(
                f"warning_threshold ({self.warning_threshold}) must be >= "
                f"min_confidence ({self.min_confidence})"
            )
        if self.proximity_scale is not None:
            scale = self.proximity_scale
            if isinstance(scale, bool) or not isinstance(scale, (int, float)) or not scale > 0 or not math.isfinite(scale):
                raise SchemaIntegrityError(f"quality_config.proximity_scale must be > 0, got {scale!r}")
            object.__setattr__(self, "proximity_scale", float(scale))

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "min_confidence": self.min_confidence,
            "warning_threshold": self.warning_threshold,
            "coverage_floor": self.coverage_floor,
            "proximity_scale": self.proximity_scale,
        }

    @classmethod
    def from_dict(cls, data: dict) -> QualityConfig:
        """Deserialize from dictionary."""
        _require_object(data, "quality_config")
        return cls(
            min_confidence=data.get("min_confidence", 0.5),
            warning_threshold=data.get("warning_threshold", 0.7),
            coverage_floor=data.get("coverage_floor", 0.05),
            proximity_scale=data.get("proximity_scale"),
        )


# =============================================================================
# Schema
# =============================================================================


@dataclass(frozen=True, slots=True)
class Schema:
    """
    A validated, hash-addressed interpretation schema.

    Construction is validation: if the object exists, every anchor decodes
    to its declared value, the dimensions cover each native axis exactly
    once, and ``content_hash`` identifies the full interpretation logic.

    Instances are read-only and safe to share between threads.

    Attributes:
        domain: Business domain the schema serves
        lineage_id: Family of versions sharing one colorspace
        version: Schema version string
        transform: Colorspace decode parameters
        dimensions: Exactly three, in the colorspace's axis order
        anchors: At least one, ordered by id
        quality_config: Confidence thresholds
        audit_mode: Whether interpretations are recorded
        content_hash: ``sha256:<hex>`` over every other field
    """
    domain: str
    lineage_id: str
    version: str
    transform: Transform
    dimensions: tuple[Dimension, ...]
    anchors: tuple[Anchor, ...]
    quality_config: QualityConfig = field(default_factory=QualityConfig)
    audit_mode: AuditMode = AuditMode.NONE
    content_hash: str = field(init=False, default="")
    anchor_index: Any = field(init=False, default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate the schema and compute its content hash."""
        # Import here to avoid circular imports
        from tincture.interpret.anchors import AnchorIndex
        from tincture.interpret.colorspace import (
            CIRCULAR_PERIOD,
            axis_ids,
            decode,
            is_circular,
            native_bounds,
        )

        for name in ("domain", "lineage_id", "version"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise SchemaIntegrityError(f"Schema {name} must be a non-empty string")

        if not isinstance(self.transform, Transform):
            raise SchemaIntegrityError(f"transform must be a Transform, got {type(self.transform).__name__}")
        object.__setattr__(self, "audit_mode", AuditMode.coerce(self.audit_mode))

        colorspace = self.transform.colorspace
        axes = axis_ids(colorspace)
        bounds = native_bounds(self.transform)

        # --- Dimensions: exactly one per native axis, inside natural bounds ---
        dimensions = tuple(self.dimensions)
        if len(dimensions) != 3:
            raise SchemaIntegrityError(f"A schema needs exactly 3 dimensions, got {len(dimensions)}")
        by_axis = {}
        for dim in dimensions:
            if dim.axis_id not in axes:
                raise SchemaIntegrityError(
                    f"Dimension axis {dim.axis_id!r} is not an axis of {colorspace.value} {axes}"
                )
            if dim.axis_id in by_axis:
                raise SchemaIntegrityError(f"Axis {dim.axis_id!r} is mapped twice")
            by_axis[dim.axis_id] = dim

        ordered = []
        for axis, (lo, hi) in zip(axes, bounds):
            dim = by_axis[axis]
            if dim.native_range is None:
                dim = replace(dim, native_range=(lo, hi))
            else:
                slack = 1e-6 * (hi - lo)
                n_lo, n_hi = dim.native_range
                if n_lo < lo - slack or n_hi > hi + slack:
                    raise SchemaIntegrityError(
                        f"Native range {dim.native_range} of {dim.param_name} exceeds "
                        f"the {colorspace.value}.{axis} bound ({lo}, {hi})"
                    )
            ordered.append(dim)
        params = [dim.param_name for dim in ordered]
        if len(set(params)) != len(params):
            raise SchemaIntegrityError(f"Parameter names must be unique, got {params}")
        object.__setattr__(self, "dimensions", tuple(ordered))

        # --- Anchors: unique ids, declared decode matches a fresh decode ---
        anchors = tuple(self.anchors)
        if not anchors:
            raise SchemaIntegrityError("A schema needs at least one anchor")
        ids = [a.id for a in anchors]
        if len(set(ids)) != len(ids):
            raise SchemaIntegrityError(f"Anchor ids must be unique, got {sorted(ids)}")
        anchors = tuple(sorted(anchors, key=lambda a: a.id))

        recomputed = []
        for anchor in anchors:
            native = decode(anchor.coordinate, self.transform).native
            for axis, declared, actual in zip(axes, anchor.decoded_native_value, native):
                delta = abs(declared - actual)
                if is_circular(axis):
                    delta = min(delta % CIRCULAR_PERIOD, CIRCULAR_PERIOD - delta % CIRCULAR_PERIOD)
                if delta > ANCHOR_TOLERANCE + ANCHOR_TOLERANCE * abs(actual):
                    raise SchemaIntegrityError(
                        f"Anchor {anchor.id} ({anchor.coordinate.hex}) declares "
                        f"{axis}={declared} but decodes to {actual:.6f}"
                    )
            recomputed.append(native)
        object.__setattr__(self, "anchors", anchors)

        object.__setattr__(self, "content_hash", content_digest(self._canonical_payload()))
        object.__setattr__(
            self, "anchor_index",
            AnchorIndex(anchors, recomputed, axes, [dim.native_range for dim in self.dimensions]),
        )
        log.debug(
            "Validated schema %s/%s v%s (%s, %d anchors) %s",
            self.domain, self.lineage_id, self.version,
            colorspace.value, len(anchors), self.content_hash,
        )

    def _canonical_payload(self) -> dict:
        return self.to_dict(include_hash=False)

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(dim.param_name for dim in self.dimensions)

    @property
    def average_spacing(self) -> float:
        """Mean pairwise anchor distance, computed once at validation."""
        return self.anchor_index.average_spacing

    def get_anchor(self, anchor_id: str) -> Anchor:
        """Get a specific anchor by id."""
        for anchor in self.anchors:
            if anchor.id == anchor_id:
                return anchor
        raise KeyError(f"No anchor with id '{anchor_id}'")

    def to_dict(self, include_hash: bool = True) -> dict:
        """
        Serialize to the schema document form.

        With ``include_hash=False`` this is exactly the payload the content
        hash is computed over.
        """
        colorspace = self.transform.colorspace
        result = {
            "domain": self.domain,
            "lineage_id": self.lineage_id,
            "schema_version": self.version,
            "transform": self.transform.to_dict(),
            "dimensions": {dim.axis_id: dim.to_dict() for dim in self.dimensions},
            "anchors": [a.to_dict(colorspace) for a in self.anchors],
            "quality_config": self.quality_config.to_dict(),
            "audit_mode": self.audit_mode.value,
        }
        if include_hash:
            result["schema_hash"] = self.content_hash
        return result

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> Schema:
        """
        Build and validate a schema from a declarative document.

        Raises:
            UnsupportedColorspaceError: colorspace outside the supported set
            SchemaIntegrityError: anything else malformed, including a
                ``schema_hash`` that does not match the content
        """
        if not isinstance(data, dict):
            raise SchemaIntegrityError(f"Schema document must be an object, got {type(data).__name__}")
        missing = [k for k in ("domain", "lineage_id", "schema_version", "transform", "dimensions", "anchors")
                   if k not in data]
        if missing:
            raise SchemaIntegrityError(f"Schema document is missing {', '.join(missing)}")

        transform = Transform.from_dict(data["transform"])

        raw_dims = data["dimensions"]
        if isinstance(raw_dims, dict):
            dimensions = tuple(Dimension.from_dict(axis, entry) for axis, entry in raw_dims.items())
        elif isinstance(raw_dims, list):
            try:
                dimensions = tuple(Dimension.from_dict(entry["axis"], entry) for entry in raw_dims)
            except (KeyError, TypeError):
                raise SchemaIntegrityError("Each dimension in a list needs an 'axis' key") from None
        else:
            raise SchemaIntegrityError("dimensions must be an object keyed by axis or a list")

        if not isinstance(data["anchors"], list):
            raise SchemaIntegrityError(f"anchors must be a list, got {type(data['anchors']).__name__}")
        anchors = tuple(Anchor.from_dict(a, transform.colorspace) for a in data["anchors"])
        quality = data.get("quality_config")

        schema = cls(
            domain=data["domain"],
            lineage_id=data["lineage_id"],
            version=str(data["schema_version"]),
            transform=transform,
            dimensions=dimensions,
            anchors=anchors,
            quality_config=QualityConfig.from_dict(quality if quality is not None else {}),
            audit_mode=AuditMode.coerce(data.get("audit_mode")),
        )

        declared = data.get("schema_hash")
        if declared and declared != schema.content_hash:
            raise SchemaIntegrityError(
                f"schema_hash {declared} does not match content hash {schema.content_hash}"
            )
        return schema

    @classmethod
    def from_json(cls, json_str: str) -> Schema:
        """Deserialize from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as exc:
            raise SchemaIntegrityError(f"Schema document is not valid JSON: {exc}") from None
        return cls.from_dict(data)


def load_schema(path: Union[str, Path]) -> Schema:
    """Read and validate a schema document from a JSON file."""
    return Schema.from_json(Path(path).read_text(encoding="utf-8"))


def check_lineage(schemas: Iterable[Schema]) -> None:
    """
    Verify lineage invariants across a collection of schemas.

    All schemas sharing a lineage_id must use the same colorspace, and a
    (lineage, version) pair must always carry the same content hash.

    Raises:
        SchemaIntegrityError: on the first violation found
    """
    colorspaces: dict[str, Colorspace] = {}
    hashes: dict[tuple[str, str], str] = {}
    for schema in schemas:
        colorspace = schema.transform.colorspace
        seen = colorspaces.setdefault(schema.lineage_id, colorspace)
        if seen is not colorspace:
            raise SchemaIntegrityError(
                f"Lineage {schema.lineage_id} mixes colorspaces {seen.value} and "
                f"{colorspace.value}; a new colorspace needs a new lineage_id"
            )
        key = (schema.lineage_id, schema.version)
        known = hashes.setdefault(key, schema.content_hash)
        if known != schema.content_hash:
            raise SchemaIntegrityError(
                f"Lineage {schema.lineage_id} version {schema.version} has two different hashes"
            )


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True, slots=True)
class ConfidenceBreakdown:
    """
    The three confidence factors, each in [0, 1].

    Attributes:
        transform: Fidelity of the decode/encode step
        schema: Anchor coverage density around the query point
        proximity: Exponential decay with distance to the nearest anchor
    """
    transform: float
    schema: float
    proximity: float

    @property
    def total(self) -> float:
        return min(1.0, max(0.0, self.transform * self.schema * self.proximity))

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"transform": self.transform, "schema": self.schema, "proximity": self.proximity}


@dataclass(frozen=True, slots=True)
class OutOfGamutCondition:
    """
    A native triple with no sRGB equivalent under ``flag_and_warn``.

    This is data, not an exception. The caller decides the fallback.

    Attributes:
        native: The requested native triple
        encoded_channels: Unclipped sRGB channels (0-1 scale)
        excess: Largest distance of any channel outside [0, 1]
    """
    native: tuple[float, float, float]
    encoded_channels: tuple[float, float, float]
    excess: float

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "native": list(self.native),
            "encoded_channels": list(self.encoded_channels),
            "excess": self.excess,
        }


@dataclass(frozen=True, slots=True)
class LowConfidenceWarning:
    """
    A confidence flag, surfaced as data on the result.

    Attributes:
        confidence: The total confidence that triggered the flag
        threshold: The threshold it fell below
        severity: "low_confidence" (below min) or "warning" (below warning threshold)
    """
    confidence: float
    threshold: float
    severity: str


@dataclass(frozen=True, slots=True)
class InterpretationResult:
    """
    Semantic parameters for one coordinate under one schema.

    Attributes:
        coordinate: The interpreted coordinate (None for an out-of-gamut
            traversal step that has no coordinate)
        native: Decoded native triple
        parameters: param_name → semantic value
        confidence: Total confidence in [0, 1]
        breakdown: The factors the confidence is the product of
        nearest_anchor: Id of the closest anchor
        nearest_distance: Normalized distance to it
        low_confidence: confidence < min_confidence
        warning: min_confidence <= confidence < warning_threshold
        schema_hash: Content hash of the schema that produced this
        out_of_gamut: Gamut condition, when one occurred
    """
    coordinate: Optional[Coordinate]
    native: tuple[float, float, float]
    parameters: dict[str, float]
    confidence: float
    breakdown: ConfidenceBreakdown
    nearest_anchor: str
    nearest_distance: float
    low_confidence: bool
    warning: bool
    schema_hash: str
    out_of_gamut: Optional[OutOfGamutCondition] = None

    def __post_init__(self) -> None:
        """Validate confidence range."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0-1, got {self.confidence}")

    def __hash__(self) -> int:
        # parameters is a dict; hash its items so equal results hash alike
        return hash((
            self.coordinate, self.native, tuple(sorted(self.parameters.items())),
            self.confidence, self.breakdown, self.nearest_anchor, self.nearest_distance,
            self.low_confidence, self.warning, self.schema_hash, self.out_of_gamut,
        ))

    def warnings(self, quality: QualityConfig) -> tuple[LowConfidenceWarning, ...]:
        """Return the confidence flags as warning objects."""
        if self.low_confidence:
            return (LowConfidenceWarning(self.confidence, quality.min_confidence, "low_confidence"),)
        if self.warning:
            return (LowConfidenceWarning(self.confidence, quality.warning_threshold, "warning"),)
        return ()

    @property
    def flags(self) -> dict:
        return {
            "low_confidence": self.low_confidence,
            "warning": self.warning,
            "out_of_gamut": self.out_of_gamut is not None,
        }

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        result = {
            "coordinate": self.coordinate.hex if self.coordinate is not None else None,
            "native": list(self.native),
            "parameters": dict(self.parameters),
            "confidence": self.confidence,
            "breakdown": self.breakdown.to_dict(),
            "nearest_anchor": self.nearest_anchor,
            "nearest_distance": self.nearest_distance,
            "flags": self.flags,
            "schema_hash": self.schema_hash,
        }
        if self.out_of_gamut is not None:
            result["out_of_gamut"] = self.out_of_gamut.to_dict()
        return result

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


# =============================================================================
# Audit
# =============================================================================


@dataclass(frozen=True, slots=True)
class SchemaRef:
    """Identifies the exact schema an interpretation ran under."""
    domain: str
    lineage_id: str
    version: str
    hash: str

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "domain": self.domain,
            "lineage_id": self.lineage_id,
            "version": self.version,
            "hash": self.hash,
        }

    @classmethod
    def of(cls, schema: Schema) -> SchemaRef:
        return cls(schema.domain, schema.lineage_id, schema.version, schema.content_hash)


@dataclass(frozen=True, slots=True)
class AuditRecord:
    """
    Immutable provenance for one interpretation.

    ``detail`` is only present in FULL audit mode.
    """
    interpretation_id: str
    timestamp: str
    coordinate: Optional[str]
    schema_ref: SchemaRef
    output: dict[str, float]
    confidence: float
    flags: dict[str, bool]
    detail: Optional[dict] = None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        result = {
            "interpretation_id": self.interpretation_id,
            "timestamp": self.timestamp,
            "coordinate": self.coordinate,
            "schema_ref": self.schema_ref.to_dict(),
            "output": dict(self.output),
            "confidence": self.confidence,
            "flags": dict(self.flags),
        }
        if self.detail is not None:
            result["detail"] = self.detail
        return result

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize to JSON string (one line by default)."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)
