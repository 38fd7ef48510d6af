# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Audit delivery runtime for Tincture.

Builds provenance records for interpretations and hands them to an
external sink. The recorder never modifies interpretation results.
"""

from tincture.runtime.audit import AuditRecorder, AuditSink, LoggingAuditSink

__all__ = ["AuditRecorder", "AuditSink", "LoggingAuditSink"]
