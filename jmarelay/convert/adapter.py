"""Conversion of raw bulletin bytes into sink payloads.

The relay core depends only on the ``Converter`` protocol. ``RecordConverter``
is the default implementation: it picks a record builder by classification,
validates earthquake and tsunami records, stamps the conversion time, and
serialises the result as compact JSON.
"""

import json
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Protocol

from jmarelay.convert.jmaxml import build_record, validate_report
from jmarelay.errors import (
    ConversionError,
    RecordValidationError,
    RecordValidationWarning,
    UnsupportedClassificationError,
)
from jmarelay.schemas.relay import Classification, IssueSeverity, Timestamp, ValidationIssue

logger = logging.getLogger(__name__)

RecordBuilder = Callable[[bytes], dict]
RecordValidator = Callable[[str, dict], list[ValidationIssue]]

DEFAULT_BUILDERS: Mapping[Classification, RecordBuilder] = {
    Classification.QUAKE: build_record,
    Classification.TSUNAMI: build_record,
    Classification.EARLY_WARNING: build_record,
}

# Early warnings are relayed without a validation step.
DEFAULT_VALIDATORS: Mapping[Classification, RecordValidator] = {
    Classification.QUAKE: validate_report,
    Classification.TSUNAMI: validate_report,
}


class Converter(Protocol):
    def convert(self, classification: Classification, raw: bytes, *, filename: str = "") -> bytes:
        """Return the serialised payload or raise ``ConversionError``."""
        ...


def format_convert_time(moment: datetime) -> str:
    """Format a local time as ``YYYY/MM/DD HH:MM:SS.mmm``."""
    return moment.strftime("%Y/%m/%d %H:%M:%S.") + f"{moment.microsecond // 1000:03d}"


def wrap_with_timestamp(record: dict, converted_at: datetime) -> bytes:
    """Attach the timestamp sub-object and serialise to compact JSON bytes."""
    data = dict(record)
    data["timestamp"] = Timestamp(convert=format_convert_time(converted_at)).model_dump(by_alias=True)
    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise ConversionError(f"Record is not JSON serialisable: {exc}") from exc


class RecordConverter:
    """Default ``Converter`` built from per-classification builders and validators."""

    def __init__(
        self,
        *,
        builders: Mapping[Classification, RecordBuilder] | None = None,
        validators: Mapping[Classification, RecordValidator] | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._builders = dict(DEFAULT_BUILDERS if builders is None else builders)
        self._validators = dict(DEFAULT_VALIDATORS if validators is None else validators)
        self._now = now

    def convert(self, classification: Classification, raw: bytes, *, filename: str = "") -> bytes:
        builder = self._builders.get(classification)
        if builder is None:
            raise UnsupportedClassificationError(f"No converter for classification {classification.value!r}")

        logger.debug("Convert %s as %s", filename or "<bytes>", classification.value)
        record = builder(raw)

        validator = self._validators.get(classification)
        if validator is not None:
            for issue in validator(filename, record):
                if issue.severity == IssueSeverity.ERROR:
                    raise RecordValidationError(issue.message)
                raise RecordValidationWarning(issue.message)

        return wrap_with_timestamp(record, self._now())
