"""
Saved encounter library.
Handles persistence of encounter documents to a JSON file, newest first.

Stored entries are kept exactly as written. Entries this engine cannot read
(for example documents from a newer version) are hidden from listings but
survive every save and delete.
"""

import json
import logging
from pathlib import Path
from typing import Any

from .encounters.document import EncounterDocument, import_document, new_encounter_id
from .exceptions import IncompatibleDocumentError

logger = logging.getLogger("encounter-engine")


class EncounterLibrary:
    """Handles storage and retrieval of saved encounters."""

    def __init__(self, path: str | Path = "encounter_data/encounter_library.json"):
        self.path = Path(path)
        logger.debug(f"📂 Initializing EncounterLibrary at {self.path.resolve()}")

    def _load_raw(self) -> list[Any]:
        """Read the stored entries without validating them."""
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                raw_entries = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ Encounter library {self.path} unreadable, treating as empty: {e}")
            return []

        if not isinstance(raw_entries, list):
            logger.warning(f"⚠️ Encounter library {self.path} is not a list, treating as empty")
            return []
        return raw_entries

    def _load(self) -> list[EncounterDocument]:
        """Validated encounters, skipping entries this engine cannot read."""
        entries: list[EncounterDocument] = []
        for raw in self._load_raw():
            try:
                entries.append(import_document(raw))
            except IncompatibleDocumentError as e:
                logger.warning(f"⚠️ Skipping stored encounter ({e.reason})")
        return entries

    def _write(self, raw_entries: list[Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(raw_entries, f, indent=2)
        logger.debug(f"💾 Saved {len(raw_entries)} encounters to {self.path}")

    @staticmethod
    def _raw_id(raw: Any) -> Any:
        return raw.get("id") if isinstance(raw, dict) else None

    def list_encounters(self) -> list[EncounterDocument]:
        """All readable saved encounters, newest first."""
        return self._load()

    def get(self, encounter_id: str) -> EncounterDocument | None:
        return next((e for e in self._load() if e.id == encounter_id), None)

    def save(self, document: EncounterDocument) -> EncounterDocument:
        """Store a copy of the document under a fresh id and timestamp."""
        entry = document.with_identity()
        raw_entries = self._load_raw()
        raw_entries.insert(0, entry.model_dump(mode="json"))
        self._write(raw_entries)
        logger.info(f"💾 Saved encounter {entry.id}")
        return entry

    def save_exact(self, document: EncounterDocument) -> EncounterDocument:
        """Store an imported document, keeping its id and timestamp.

        A new id is assigned only if the id is already taken.
        """
        raw_entries = self._load_raw()
        entry = document
        if any(self._raw_id(raw) == document.id for raw in raw_entries):
            entry = document.model_copy(update={"id": new_encounter_id()})
            logger.debug(f"Encounter id {document.id} already stored, re-keyed as {entry.id}")
        raw_entries.insert(0, entry.model_dump(mode="json"))
        self._write(raw_entries)
        return entry

    def delete(self, encounter_id: str) -> bool:
        """Remove an encounter. Returns False if it was not found."""
        raw_entries = self._load_raw()
        remaining = [raw for raw in raw_entries if self._raw_id(raw) != encounter_id]
        if len(remaining) == len(raw_entries):
            return False
        self._write(remaining)
        return True

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
        logger.info("🗑️ Encounter library cleared")
