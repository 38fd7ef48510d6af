# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Interpretation core for Tincture.

Colorspace decode/encode, anchor geometry, confidence scoring, and the
interpret/traverse entry points. All operations are pure.
"""

from tincture.interpret.colorspace import decode, encode
from tincture.interpret.engine import interpret, interpret_many
from tincture.interpret.traversal import traverse

__all__ = ["decode", "encode", "interpret", "interpret_many", "traverse"]
