"""Tests for the conversion adapter and the JMA XML record builder."""

import json
import subprocess
import sys
from datetime import datetime
from pathlib import Path

import pytest

from jmarelay.convert.adapter import RecordConverter, format_convert_time, wrap_with_timestamp
from jmarelay.convert.jmaxml import build_record, element_to_dict, parse_report, validate_report
from jmarelay.errors import (
    ConversionError,
    RecordValidationError,
    RecordValidationWarning,
    UnsupportedClassificationError,
)
from jmarelay.schemas.relay import Classification, IssueSeverity, Timestamp

FIXED_NOW = datetime(2024, 1, 1, 16, 18, 5, 123456)

# ------------------------------------------------------------------
# jmaxml
# ------------------------------------------------------------------


class TestBuildRecord:
    def test_control_fields(self, report_xml):
        record = build_record(report_xml)
        assert record["control"] == {
            "title": "震源・震度に関する情報",
            "datetime": "2024-01-01T07:18:00Z",
            "status": "通常",
            "editorial_office": "気象庁本庁",
            "publishing_office": "気象庁",
        }

    def test_head_fields(self, report_xml):
        head = build_record(report_xml)["head"]
        assert head["event_id"] == "20240101161022"
        assert head["report_datetime"] == "2024-01-01T16:18:00+09:00"
        assert head["serial"] == "1"
        assert head["info_kind"] == "地震情報"
        assert head["headline"] == "１日１６時１０分ころ、地震がありました。"

    def test_body_as_nested_mapping(self, report_xml):
        body = build_record(report_xml)["body"]
        quake = body["Earthquake"]
        assert quake["OriginTime"] == "2024-01-01T16:10:00+09:00"
        assert quake["Hypocenter"]["Area"]["Name"] == "石川県能登地方"
        assert quake["Magnitude"] == {"@type": "Mj", "@description": "Ｍ７．６", "#text": "7.6"}

    def test_missing_body(self):
        raw = b'<Report xmlns="http://xml.kishou.go.jp/jmaxml1/"><Control/></Report>'
        record = build_record(raw)
        assert record["body"] == {}
        assert record["head"]["event_id"] == ""

    def test_malformed_xml(self):
        with pytest.raises(ConversionError, match="Malformed XML"):
            build_record(b"<Report><Control>")

    def test_unsupported_declared_encoding(self):
        raw = b'<?xml version="1.0" encoding="Shift_JIS"?><Report/>'
        with pytest.raises(ConversionError, match="Malformed XML"):
            parse_report(raw)

    def test_wrong_root(self):
        with pytest.raises(ConversionError, match="Unexpected root"):
            parse_report(b"<Feed/>")


class TestElementToDict:
    def test_repeated_children_become_list(self):
        root = parse_report(b"<Report><Body><Item>a</Item><Item>b</Item><Item>c</Item></Body></Report>")
        assert element_to_dict(root.find("Body")) == {"Item": ["a", "b", "c"]}

    def test_leaf_text(self):
        root = parse_report(b"<Report><Body> x </Body></Report>")
        assert element_to_dict(root.find("Body")) == "x"


class TestValidateReport:
    def test_live_bulletin_is_clean(self, report_xml):
        assert validate_report("f.xml", build_record(report_xml)) == []

    def test_training_status_is_warning(self, report_factory):
        issues = validate_report("f.xml", build_record(report_factory(status="訓練")))
        assert [i.severity for i in issues] == [IssueSeverity.WARNING]

    def test_missing_event_id_is_error(self, report_factory):
        issues = validate_report("f.xml", build_record(report_factory(event_id="")))
        assert issues[0].severity == IssueSeverity.ERROR
        assert "EventID" in issues[0].message
        assert "f.xml" in issues[0].message


# ------------------------------------------------------------------
# adapter
# ------------------------------------------------------------------


class TestTimestamp:
    def test_fixed_millisecond_precision(self):
        assert format_convert_time(FIXED_NOW) == "2024/01/01 16:18:05.123"

    def test_zero_milliseconds_kept(self):
        assert format_convert_time(datetime(2024, 1, 1, 0, 0, 0)) == "2024/01/01 00:00:00.000"

    def test_wrap_adds_timestamp_object(self):
        payload = wrap_with_timestamp({"a": 1}, FIXED_NOW)
        assert json.loads(payload) == {
            "a": 1,
            "timestamp": {"convert": "2024/01/01 16:18:05.123", "register": ""},
        }

    def test_register_serialised_under_wire_name(self):
        dumped = Timestamp(convert="2024/01/01 00:00:00.000").model_dump(by_alias=True)
        assert dumped == {"convert": "2024/01/01 00:00:00.000", "register": ""}

    def test_schema_import_emits_no_warnings(self):
        result = subprocess.run(
            [sys.executable, "-W", "error", "-c", "import jmarelay.schemas.relay"],
            capture_output=True,
            text=True,
            cwd=Path(__file__).resolve().parent.parent,
        )
        assert result.returncode == 0, result.stderr

    def test_wrap_does_not_mutate_record(self):
        record = {"a": 1}
        wrap_with_timestamp(record, FIXED_NOW)
        assert record == {"a": 1}


class TestRecordConverter:
    @pytest.fixture
    def converter(self):
        return RecordConverter(now=lambda: FIXED_NOW)

    def test_quake_payload(self, converter, report_xml):
        payload = converter.convert(Classification.QUAKE, report_xml, filename="x_VXSE53_.xml")
        data = json.loads(payload)
        assert data["head"]["event_id"] == "20240101161022"
        assert data["timestamp"]["convert"] == "2024/01/01 16:18:05.123"

    def test_payload_is_compact_utf8(self, converter, report_xml):
        payload = converter.convert(Classification.TSUNAMI, report_xml)
        canonical = json.dumps(json.loads(payload), ensure_ascii=False, separators=(",", ":"))
        assert payload == canonical.encode("utf-8")
        assert "石川県能登地方" in payload.decode("utf-8")

    def test_quake_warning_is_fatal(self, converter, report_factory):
        with pytest.raises(RecordValidationWarning):
            converter.convert(Classification.QUAKE, report_factory(status="試験"))

    def test_tsunami_error_is_fatal(self, converter, report_factory):
        with pytest.raises(RecordValidationError):
            converter.convert(Classification.TSUNAMI, report_factory(event_id=""))

    def test_early_warning_skips_validation(self, converter, report_factory):
        payload = converter.convert(
            Classification.EARLY_WARNING, report_factory(status="訓練", event_id="")
        )
        assert json.loads(payload)["control"]["status"] == "訓練"

    def test_unrecognized_is_unsupported(self, converter, report_xml):
        with pytest.raises(UnsupportedClassificationError):
            converter.convert(Classification.UNRECOGNIZED, report_xml)

    def test_unserialisable_record(self):
        converter = RecordConverter(
            builders={Classification.EARLY_WARNING: lambda raw: {"bad": {1, 2}}},
            now=lambda: FIXED_NOW,
        )
        with pytest.raises(ConversionError, match="not JSON serialisable"):
            converter.convert(Classification.EARLY_WARNING, b"")

    def test_custom_builder_and_validator(self):
        converter = RecordConverter(
            builders={Classification.QUAKE: lambda raw: {"raw": raw.decode()}},
            validators={},
            now=lambda: FIXED_NOW,
        )
        payload = converter.convert(Classification.QUAKE, b"hello")
        assert json.loads(payload)["raw"] == "hello"

    def test_conversion_time_taken_after_build(self, report_xml):
        calls = []

        def now():
            calls.append("now")
            return FIXED_NOW

        def builder(raw):
            calls.append("build")
            return {}

        RecordConverter(builders={Classification.EARLY_WARNING: builder}, now=now).convert(
            Classification.EARLY_WARNING, report_xml
        )
        assert calls == ["build", "now"]
