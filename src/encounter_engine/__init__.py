"""
Encounter Engine - D&D 5e encounter composition by stochastic search.
"""

from .config import EngineSettings
from .exceptions import (
    CatalogFetchError,
    CatalogUnusableError,
    EncounterEngineError,
    IncompatibleDocumentError,
    InvalidPartyError,
    SearchExhaustedError,
    StyleLockError,
    ThemeLockError,
)
from .models import Candidate, CatalogSnapshot, Role, Style
from .catalog import Open5eCatalogSource, normalize_catalog, normalize_monster
from .encounters import EncounterDocument, GenerationRequest, generate_encounter, import_document
from .library import EncounterLibrary

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("encounter-engine")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "EngineSettings",
    "EncounterEngineError",
    "CatalogUnusableError",
    "CatalogFetchError",
    "InvalidPartyError",
    "ThemeLockError",
    "StyleLockError",
    "SearchExhaustedError",
    "IncompatibleDocumentError",
    "Candidate",
    "CatalogSnapshot",
    "Role",
    "Style",
    "Open5eCatalogSource",
    "normalize_catalog",
    "normalize_monster",
    "EncounterDocument",
    "GenerationRequest",
    "generate_encounter",
    "import_document",
    "EncounterLibrary",
]
