"""Schemas for the JMA XML relay pipeline.

Covers file detection, classification, payload timestamps, and the
terminal outcome recorded for each relayed file.
"""

from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Classification(StrEnum):
    """Content category of a bulletin, derived from its file name.

    The value of each recognised member is the sink route suffix
    (``jma.<value>``).
    """

    QUAKE = "earthquake"
    TSUNAMI = "tsunami"
    EARLY_WARNING = "eew"
    UNRECOGNIZED = "unrecognized"


class RelayStatus(StrEnum):
    """Terminal outcome of processing one file."""

    PUBLISHED = "published"
    UNRECOGNIZED = "unrecognized"
    READ_ERROR = "read_error"
    CONVERSION_ERROR = "conversion_error"
    DELIVERY_FAILED = "delivery_failed"
    ERROR = "error"


class IssueSeverity(StrEnum):
    """Severity of a record validation finding."""

    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    """A single finding from semantic validation of a converted record."""

    severity: IssueSeverity
    message: str


class FileEvent(BaseModel):
    """A file that was moved into a watched directory."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(description="Absolute path of the arrived file")
    detected_at: datetime


class Timestamp(BaseModel):
    """Timestamp sub-object attached to every payload."""

    convert: str = Field(description="Local time the record was converted")
    register_: str = Field(default="", alias="register", description="Filled in by the sink side")


class RelayEvent(BaseModel):
    """An audit record for a single relayed file."""

    timestamp: datetime
    source_path: str
    file_name: str
    classification: Classification
    status: RelayStatus
    endpoint_url: str = Field(default="", description="Sink URL the payload was sent to")
    payload_size_bytes: int = Field(default=0, ge=0)
    error_message: str = Field(default="", description="Error details if not published")
