# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""
Audit recording for interpretations.

Builds an immutable AuditRecord per interpretation and hands it to a sink.
Records are only emitted when the schema's audit_mode is enabled. Storage
belongs to the sink; the recorder keeps no state between calls.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from tincture.log import get_logger
from tincture.schema.interpretation_schema import (
    AuditMode,
    AuditRecord,
    InterpretationResult,
    Schema,
    SchemaRef,
)

AuditSink = Callable[[AuditRecord], None]


class LoggingAuditSink:
    """Writes each record as one JSON line to the ``tincture.audit`` logger."""

    def __init__(self, logger_name: str = "tincture.audit") -> None:
        self.log = get_logger(logger_name)

    def __call__(self, record: AuditRecord) -> None:
        self.log.info(record.to_json())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class AuditRecorder:
    """
    Emits AuditRecords for interpretations run under audit-enabled schemas.

    Args:
        sink: Receives each record (default: LoggingAuditSink)
        clock: Returns the timestamp for a record (default: UTC now)
        id_factory: Returns a unique interpretation id (default: uuid4)
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.sink = sink if sink is not None else LoggingAuditSink()
        self.clock = clock
        self.id_factory = id_factory

    def build(self, result: InterpretationResult, schema: Schema) -> AuditRecord:
        """Build the record for a result without emitting it."""
        if result.schema_hash != schema.content_hash:
            raise ValueError(
                f"Result was produced under {result.schema_hash}, not {schema.content_hash}"
            )
        detail = None
        if schema.audit_mode is AuditMode.FULL:
            detail = {
                "native": list(result.native),
                "breakdown": result.breakdown.to_dict(),
                "nearest_anchor": result.nearest_anchor,
                "nearest_distance": result.nearest_distance,
            }
            if result.out_of_gamut is not None:
                detail["out_of_gamut"] = result.out_of_gamut.to_dict()
        return AuditRecord(
            interpretation_id=self.id_factory(),
            timestamp=self.clock().isoformat(),
            coordinate=result.coordinate.hex if result.coordinate is not None else None,
            schema_ref=SchemaRef.of(schema),
            output=dict(result.parameters),
            confidence=result.confidence,
            flags=result.flags,
            detail=detail,
        )

    def record(self, result: InterpretationResult, schema: Schema) -> Optional[AuditRecord]:
        """
        Emit a record for ``result`` if the schema has auditing enabled.

        Returns:
            The emitted AuditRecord, or None when audit_mode is "none"
        """
        if schema.audit_mode is AuditMode.NONE:
            return None
        record = self.build(result, schema)
        self.sink(record)
        return record
