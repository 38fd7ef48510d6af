# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Schema definitions for coordinate interpretation.

All types in this module are immutable (frozen dataclasses).
A Schema is validated once, on construction, and is read-only afterwards.
"""

from tincture.schema.interpretation_schema import (
    ANCHOR_TOLERANCE,
    HASH_ALGORITHM,
    AdaptationMethod,
    Anchor,
    AuditMode,
    AuditRecord,
    ClippingPolicy,
    Colorspace,
    ConfidenceBreakdown,
    Coordinate,
    Dimension,
    GammaCurve,
    InterpretationResult,
    LowConfidenceWarning,
    OutOfGamutCondition,
    QualityConfig,
    ReferenceWhite,
    Schema,
    SchemaRef,
    Transform,
    canonical_json,
    check_lineage,
    content_digest,
    load_schema,
)

__all__ = [
    # Constants
    "ANCHOR_TOLERANCE",
    "HASH_ALGORITHM",
    # Coordinate
    "Coordinate",
    # Transform
    "Colorspace",
    "ClippingPolicy",
    "ReferenceWhite",
    "AdaptationMethod",
    "GammaCurve",
    "Transform",
    # Schema
    "Dimension",
    "Anchor",
    "QualityConfig",
    "AuditMode",
    "Schema",
    "load_schema",
    "check_lineage",
    # Hashing
    "canonical_json",
    "content_digest",
    # Results (conditions are data, not exceptions)
    "ConfidenceBreakdown",
    "OutOfGamutCondition",
    "LowConfidenceWarning",
    "InterpretationResult",
    # Audit
    "SchemaRef",
    "AuditRecord",
]
