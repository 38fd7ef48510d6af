# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Exception taxonomy.

Only structural faults are exceptions. Gamut and confidence conditions are
expected outcomes and travel as data on the result
(see ``OutOfGamutCondition`` and ``LowConfidenceWarning``).
"""


class TinctureError(Exception):
    """Base class for every error raised by tincture."""


class InvalidCoordinateFormat(TinctureError, ValueError):
    """A coordinate string is not a 6-digit ``#RRGGBB`` hex value."""


class UnsupportedColorspaceError(TinctureError, ValueError):
    """A schema declares a colorspace outside rgb/hsl/hsv/lab/xyz."""


class SchemaIntegrityError(TinctureError, ValueError):
    """A schema failed validation and was not instantiated."""
