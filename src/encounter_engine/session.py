"""
Encounter session state for the tool surface.

Holds the cached catalog snapshot, the last generation request (enabling
rerolls) and the encounter currently on display. The engine functions stay
stateless; this is the one place where per-process state lives.
"""

import logging
import random
from pathlib import Path
from typing import Any

from .catalog.normalizer import format_cr
from .catalog.open5e import Open5eCatalogSource
from .config import EngineSettings
from .encounters.document import (
    EncounterDocument,
    deviation_text,
    read_document,
    write_document,
)
from .encounters.evaluators import role_counts
from .encounters.generator import GenerationRequest, generate_encounter, reroll_encounter
from .exceptions import EncounterEngineError
from .library import EncounterLibrary
from .models import CatalogSnapshot, ResultLabel, Style

logger = logging.getLogger("encounter-engine")


_STYLE_LABELS = {
    "matched": "Matched",
    "partial": "Partial",
    "fell_back": "Fell back",
    "not_applicable": "Not applicable",
}

_VARIETY_LABELS = {
    "no_duplicates": "No duplicates",
    "some_duplicates": "Some duplicates",
    "duplicates_limited_pool": "Some duplicates due to limited pool",
}


def format_encounter(document: EncounterDocument, tolerance: float = 0.15) -> str:
    """Format an encounter document into a human-readable chat string."""
    inputs, output, quality = document.inputs, document.output, document.quality

    theme = "Any" if inputs.theme == "any" else inputs.theme
    if output.did_theme_fallback:
        theme = f"{theme} (fell back to Any: theme pool too small, {output.theme_pool_size})"

    lines = []
    if output.result_label is ResultLabel.ON_TARGET:
        lines.append(f"**On target** ({inputs.difficulty.upper()})")
    else:
        lines.append(f"**Closest match** ({inputs.difficulty.upper()})")
    lines.append(f"Encounter id: {document.id}")
    lines.append(f"Party: {inputs.party_size} characters at level {inputs.party_level}")
    lines.append(f"Theme: {theme}")
    style = "Any" if inputs.style is Style.ANY else inputs.style.value.title()
    lines.append(f"Style: {style} | Style match: {_STYLE_LABELS[quality.style_match.value]}")
    lines.append(f"Variety: {_VARIETY_LABELS[quality.variety_result.value]}")
    lines.append("")

    count = len(output.monsters)
    lines.append(f"**Monsters ({count}):**")
    for m in output.monsters:
        ac = m.armor_class if m.armor_class is not None else "?"
        hp = m.hit_points if m.hit_points is not None else "?"
        lines.append(
            f"  - {m.name} [{m.role.value.title()}] CR {format_cr(m.challenge_rating)}, {m.xp} XP, "
            f"{m.type}, AC {ac}, HP {hp}, Speed {m.speed_display}"
        )
    roles = ", ".join(f"{n} {role.value.title()}" for role, n in role_counts(output.monsters).items() if n)
    lines.append(f"Roles: {roles}")
    lines.append("")
    lines.append(
        f"XP: {output.base_xp} base x{output.multiplier:g} = {output.adjusted_xp} adjusted "
        f"vs {output.target_xp} target ({deviation_text(output.adjusted_xp, output.target_xp)})"
    )
    if output.result_label is ResultLabel.CLOSEST_MATCH:
        lines.append(f"Note: no encounter landed within +/-{round(tolerance * 100)}% of the target.")

    return "\n".join(lines)


def format_library(entries: list[EncounterDocument]) -> str:
    """One line per saved encounter."""
    if not entries:
        return "No saved encounters."
    lines = [f"**Saved encounters ({len(entries)}):**"]
    for entry in entries:
        out = entry.output
        label = "On target" if out.result_label is ResultLabel.ON_TARGET else "Closest match"
        lines.append(
            f"  - {entry.id} | {entry.timestamp:%Y-%m-%d %H:%M} | {label} | "
            f"{entry.inputs.difficulty} | {len(out.monsters)} monsters | "
            f"{out.adjusted_xp}/{out.target_xp} XP ({deviation_text(out.adjusted_xp, out.target_xp)})"
        )
    return "\n".join(lines)


class EncounterSession:
    """Per-process encounter state behind the tool surface."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        source: Open5eCatalogSource | None = None,
        library: EncounterLibrary | None = None,
        catalog: CatalogSnapshot | None = None,
    ):
        self.settings = settings or EngineSettings()
        self.source = source or Open5eCatalogSource(
            cache_dir=self.settings.catalog_cache_dir,
            request_cap=self.settings.request_cap,
        )
        self.library = library or EncounterLibrary(self.settings.library_path)
        self._catalog = catalog
        self.last_request: GenerationRequest | None = None
        self.current: EncounterDocument | None = None

    async def get_catalog(self, force_refresh: bool = False) -> CatalogSnapshot:
        """Return the cached snapshot, loading it on first use."""
        if self._catalog is None or force_refresh:
            self._catalog = await self.source.load_snapshot(force_refresh=force_refresh)
        return self._catalog

    async def generate(self, request: GenerationRequest | dict[str, Any], seed: int | None = None) -> EncounterDocument:
        catalog = await self.get_catalog()
        if not isinstance(request, GenerationRequest):
            request = GenerationRequest.model_validate(request)
        document = generate_encounter(catalog, request, rng=random.Random(seed), settings=self.settings)
        self.last_request = request
        self.current = document
        return document

    async def reroll(self, seed: int | None = None) -> EncounterDocument:
        if self.last_request is None:
            raise EncounterEngineError("Nothing to reroll. Generate an encounter first.")
        catalog = await self.get_catalog()
        document = reroll_encounter(catalog, self.last_request, rng=random.Random(seed), settings=self.settings)
        self.current = document
        return document

    def save_current(self) -> EncounterDocument:
        if self.current is None:
            raise EncounterEngineError("No encounter loaded. Generate or import an encounter first.")
        return self.library.save(self.current)

    def open_saved(self, encounter_id: str) -> EncounterDocument:
        """Show a saved encounter; rerolling then requires a fresh generation."""
        document = self.library.get(encounter_id)
        if document is None:
            raise EncounterEngineError(f"Saved encounter '{encounter_id}' not found.")
        self.current = document
        self.last_request = None
        return document

    def export(self, encounter_id: str | None = None, directory: Path | None = None) -> Path:
        if encounter_id:
            document = self.library.get(encounter_id)
            if document is None:
                raise EncounterEngineError(f"Saved encounter '{encounter_id}' not found.")
        elif self.current is not None:
            document = self.current
        else:
            raise EncounterEngineError("No encounter loaded. Generate or import an encounter first.")
        return write_document(document, directory or self.settings.export_dir)

    def import_file(self, path: Path) -> EncounterDocument:
        """Validate an exported file, store it in the library and show it."""
        document = read_document(path)
        stored = self.library.save_exact(document)
        self.current = stored
        self.last_request = None
        logger.info(f"Imported encounter {stored.id} from {path}")
        return stored
