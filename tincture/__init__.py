# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Tincture -- Deterministic interpretation of 24-bit coordinates.

Decodes a fixed ``#RRGGBB`` coordinate through a colorspace transform and
maps it to named semantic parameters using a versioned, hash-addressed
schema, with a confidence score anchored to labeled landmarks.

Quick start::

    from tincture import interpret, load_schema

    schema = load_schema("triage.json")
    result = interpret("#FF3300", schema)
    result.parameters   # {"severity": ..., "urgency": ..., "scope": ...}
    result.confidence   # 0.0 - 1.0
    result.to_json()
"""

from __future__ import annotations

__version__ = "1.0.0"

from tincture.errors import (
    InvalidCoordinateFormat,
    SchemaIntegrityError,
    TinctureError,
    UnsupportedColorspaceError,
)
from tincture.schema import (
    Anchor,
    AuditMode,
    AuditRecord,
    ClippingPolicy,
    Colorspace,
    Coordinate,
    Dimension,
    InterpretationResult,
    QualityConfig,
    Schema,
    Transform,
    check_lineage,
    load_schema,
)
from tincture.interpret import decode, encode, interpret, interpret_many, traverse
from tincture.runtime import AuditRecorder

__all__ = [
    # Core API
    "interpret",
    "interpret_many",
    "traverse",
    "decode",
    "encode",
    "load_schema",
    "check_lineage",
    "AuditRecorder",
    # Types (commonly needed)
    "Coordinate",
    "Schema",
    "Transform",
    "Dimension",
    "Anchor",
    "QualityConfig",
    "Colorspace",
    "ClippingPolicy",
    "AuditMode",
    "InterpretationResult",
    "AuditRecord",
    # Errors
    "TinctureError",
    "InvalidCoordinateFormat",
    "UnsupportedColorspaceError",
    "SchemaIntegrityError",
    # Version
    "__version__",
]
