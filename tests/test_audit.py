# Copyright (c) 2026 Tincture
# SPDX-License-Identifier: MIT

"""Tests for audit recording."""

import json
import logging
from datetime import datetime, timezone

import pytest

from tincture import AuditRecorder, interpret
from tincture.schema import (
    Anchor,
    AuditMode,
    Colorspace,
    Coordinate,
    Dimension,
    Schema,
    Transform,
)
from tincture.interpret.colorspace import decode
from tincture.runtime import LoggingAuditSink


FIXED_TIME = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _schema(audit_mode=AuditMode.FULL, version="1.0.0"):
    transform = Transform(Colorspace.RGB)
    return Schema(
        domain="triage",
        lineage_id="triage-rgb",
        version=version,
        transform=transform,
        dimensions=(
            Dimension("r", "severity", (0, 100)),
            Dimension("g", "urgency", (0, 10)),
            Dimension("b", "scope", (0, 1)),
        ),
        anchors=(Anchor("critical", "Critical", Coordinate.from_hex("#FF3300"),
                        decode("#FF3300", transform).native),),
        audit_mode=audit_mode,
    )


def _recorder(records):
    return AuditRecorder(records.append, clock=lambda: FIXED_TIME, id_factory=lambda: "int-0001")


class TestAuditRecorder:

    def test_full_record(self):
        records = []
        schema = _schema()
        result = interpret("#FF3300", schema, recorder=_recorder(records))

        assert len(records) == 1
        record = records[0]
        assert record.interpretation_id == "int-0001"
        assert record.timestamp == "2026-01-02T03:04:05+00:00"
        assert record.coordinate == "#FF3300"
        assert record.schema_ref.hash == schema.content_hash
        assert record.schema_ref.version == "1.0.0"
        assert record.output == result.parameters
        assert record.confidence == result.confidence
        assert record.detail["breakdown"] == result.breakdown.to_dict()
        assert record.detail["nearest_anchor"] == "critical"

    def test_summary_has_no_detail(self):
        records = []
        interpret("#FF3300", _schema(AuditMode.SUMMARY), recorder=_recorder(records))
        assert records[0].detail is None

    def test_disabled_emits_nothing(self):
        records = []
        result = interpret("#FF3300", _schema(AuditMode.NONE), recorder=_recorder(records))
        assert records == []
        assert _recorder(records).record(result, _schema(AuditMode.NONE)) is None

    def test_result_unchanged_by_recording(self):
        schema = _schema()
        assert interpret("#406080", schema, recorder=_recorder([])) == interpret("#406080", schema)

    def test_schema_mismatch(self):
        result = interpret("#FF3300", _schema())
        with pytest.raises(ValueError):
            _recorder([]).build(result, _schema(version="2.0.0"))

    def test_record_is_frozen(self):
        records = []
        interpret("#FF3300", _schema(), recorder=_recorder(records))
        with pytest.raises(AttributeError):
            records[0].confidence = 0.0

    def test_json(self):
        records = []
        interpret("#FF3300", _schema(), recorder=_recorder(records))
        data = json.loads(records[0].to_json())
        assert data["schema_ref"]["domain"] == "triage"
        assert data["flags"] == {"low_confidence": False, "warning": False, "out_of_gamut": False}
        assert data["output"]["severity"] == pytest.approx(100.0)

    def test_default_ids_unique(self):
        records = []
        recorder = AuditRecorder(records.append)
        schema = _schema()
        interpret("#FF3300", schema, recorder=recorder)
        interpret("#FF3300", schema, recorder=recorder)
        assert records[0].interpretation_id != records[1].interpretation_id


class TestLoggingSink:

    def test_logs_json_line(self, caplog):
        recorder = AuditRecorder(LoggingAuditSink(), clock=lambda: FIXED_TIME, id_factory=lambda: "int-0002")
        with caplog.at_level(logging.INFO, logger="tincture.audit"):
            interpret("#FF3300", _schema(), recorder=recorder)
        assert "int-0002" in caplog.text
        logged = json.loads(caplog.records[-1].getMessage())
        assert logged["coordinate"] == "#FF3300"

    def test_default_sink(self):
        assert isinstance(AuditRecorder().sink, LoggingAuditSink)
