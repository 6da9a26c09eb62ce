"""
Encounter documents: the persisted and exported form of a generated encounter.

A document carries a format version, a stable id, a timestamp, the request
inputs, the chosen monsters with their XP figures, and the quality readouts.
Import is strict: every field must be present with the right type, and a
document written by a newer engine version is rejected outright.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import shortuuid
from pydantic import BaseModel, Field, ValidationError

from ..exceptions import IncompatibleDocumentError
from ..models import Candidate, ResultLabel, Style, StyleStatus, VarietyResult

logger = logging.getLogger("encounter-engine")

DOCUMENT_VERSION = 5


def new_encounter_id() -> str:
    """Generate a new encounter id such as 'enc_3kTMd92a'."""
    return f"enc_{shortuuid.random(length=8)}"


class EncounterInputs(BaseModel):
    """Request inputs recorded with an encounter."""
    party_level: int = Field(description="Party level (1-10)")
    party_size: int = Field(description="Number of characters")
    theme: str = Field(description="Theme used for the pool, or 'any'")
    difficulty: str = Field(description="Requested difficulty")
    style: Style = Field(description="Requested style")
    prefer_variety: bool = Field(description="Whether duplicates were penalized")
    lock_theme: bool = Field(description="Whether the theme was a hard constraint")
    lock_style: bool = Field(description="Whether the style was a hard constraint")


class EncounterOutput(BaseModel):
    """The chosen monsters and their XP figures."""
    monsters: list[Candidate] = Field(min_length=1, description="Chosen monsters in normalized form")
    base_xp: int = Field(ge=0, description="Sum of member XP values")
    multiplier: float = Field(ge=0, description="Group size multiplier")
    adjusted_xp: int = Field(ge=0, description="Base XP times the multiplier, rounded")
    target_xp: int = Field(ge=0, description="Party target XP")
    result_label: ResultLabel = Field(description="on_target or closest_match")
    did_theme_fallback: bool = Field(description="Theme pool was too small; full catalog used")
    theme_pool_size: int = Field(ge=0, description="Number of creatures matching the theme")


class EncounterQuality(BaseModel):
    """Quality readouts of a generated encounter."""
    style_match: StyleStatus = Field(description="Style match status")
    variety_result: VarietyResult = Field(description="Duplicate readout")


class EncounterDocument(BaseModel):
    """Versioned, self-contained encounter record."""
    version: int = Field(default=DOCUMENT_VERSION, description="Document format version")
    id: str = Field(default_factory=new_encounter_id, min_length=1, description="Stable encounter id")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the encounter was created")
    inputs: EncounterInputs
    output: EncounterOutput
    quality: EncounterQuality

    def with_identity(self, encounter_id: str | None = None, timestamp: datetime | None = None) -> "EncounterDocument":
        """Copy with a new (or given) id and timestamp."""
        return self.model_copy(update={
            "id": encounter_id or new_encounter_id(),
            "timestamp": timestamp or datetime.now(),
        })


# =============================================================================
# Export
# =============================================================================

def export_document(document: EncounterDocument) -> str:
    """Serialize a document to indented JSON."""
    return document.model_dump_json(indent=2)


def export_filename(document: EncounterDocument) -> str:
    """File name for an exported document, e.g. 'encounter_lvl5_hard_20261019T101500.json'."""
    stamp = document.timestamp.strftime("%Y%m%dT%H%M%S")
    return f"encounter_lvl{document.inputs.party_level}_{document.inputs.difficulty}_{stamp}.json"


def write_document(document: EncounterDocument, directory: Path) -> Path:
    """Write a document into ``directory`` and return the file path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(document)
    path.write_text(export_document(document), encoding="utf-8")
    logger.debug(f"Exported encounter {document.id} to {path}")
    return path


# =============================================================================
# Import
# =============================================================================

def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def import_document(raw: str | bytes | dict[str, Any]) -> EncounterDocument:
    """Validate and load an encounter document.

    Args:
        raw: JSON text/bytes, or an already-decoded mapping.

    Returns:
        The validated EncounterDocument, with every field as stored.

    Raises:
        IncompatibleDocumentError: If the document is malformed, incomplete,
            mistyped, or was written by a newer engine version.
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise IncompatibleDocumentError("invalid_json") from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise IncompatibleDocumentError("not_object")

    version = data.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise IncompatibleDocumentError("missing_version")
    if version > DOCUMENT_VERSION:
        raise IncompatibleDocumentError(
            "newer_version",
            details={"document_version": version, "engine_version": DOCUMENT_VERSION},
        )

    # id and timestamp have defaults for fresh documents; imports must carry them
    missing = [name for name in EncounterDocument.model_fields if name not in data]
    if missing:
        raise IncompatibleDocumentError("invalid_fields", details={"missing": missing})

    try:
        text = json.dumps(data, default=_json_default)
    except (TypeError, ValueError) as e:
        raise IncompatibleDocumentError("not_serializable") from e

    try:
        document = EncounterDocument.model_validate_json(text, strict=True)
    except ValidationError as e:
        logger.debug(f"Rejected encounter document: {e}")
        raise IncompatibleDocumentError("invalid_fields", details={"error_count": e.error_count()}) from e

    return document


def read_document(path: Path) -> EncounterDocument:
    """Load an encounter document from a file."""
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise IncompatibleDocumentError("unreadable", details={"path": str(path)}) from e
    return import_document(raw)


# =============================================================================
# Display helpers
# =============================================================================

def deviation_text(adjusted: int, target: int) -> str:
    """Describe how far adjusted XP lands from the target, e.g. '+12% over target'."""
    if not target:
        return "n/a"
    diff = adjusted - target
    if diff == 0:
        return "0% on target"
    pct = round(abs(diff) / target * 100)
    if diff > 0:
        return f"+{pct}% over target"
    return f"-{pct}% under target"
