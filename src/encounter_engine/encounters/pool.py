"""
Candidate pool builder.

Restricts the catalog to a theme (case-insensitive substring of the
creature type), falling back to the full catalog when the themed pool is
too small, unless the theme is locked.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ThemeLockError
from ..models import Candidate, CatalogSnapshot

logger = logging.getLogger("encounter-engine.encounters")

THEME_MIN_POOL = 30
ANY_THEME = "any"


class CandidatePool(BaseModel):
    """The creatures a search may draw from for one request."""

    model_config = ConfigDict(frozen=True)

    candidates: tuple[Candidate, ...] = Field(description="Eligible candidates")
    did_fallback: bool = Field(default=False, description="Theme pool was too small; full catalog used")
    theme_pool_size: int = Field(ge=0, description="Number of creatures matching the theme")

    def __len__(self) -> int:
        return len(self.candidates)

    @property
    def distinct_identities(self) -> int:
        return len({c.identity for c in self.candidates})


def normalize_theme(theme: str | None) -> str:
    key = (theme or ANY_THEME).strip().lower()
    return key or ANY_THEME


def matches_theme(candidate: Candidate, theme: str) -> bool:
    return theme in candidate.type.strip().lower()


def build_candidate_pool(
    catalog: CatalogSnapshot,
    theme: str | None = ANY_THEME,
    lock_theme: bool = False,
    min_pool: int = THEME_MIN_POOL,
) -> CandidatePool:
    """Build the candidate pool for a request.

    Args:
        catalog: Normalized catalog snapshot.
        theme: Creature type substring, or 'any'.
        lock_theme: Fail instead of falling back when the theme pool is small.
        min_pool: Minimum viable themed pool size.

    Returns:
        CandidatePool with the fallback flag and themed count.

    Raises:
        ThemeLockError: If the themed pool is too small and the theme is locked.
    """
    theme_key = normalize_theme(theme)
    if theme_key == ANY_THEME:
        return CandidatePool(
            candidates=catalog.candidates,
            did_fallback=False,
            theme_pool_size=len(catalog.candidates),
        )

    themed = tuple(c for c in catalog.candidates if matches_theme(c, theme_key))

    if len(themed) < min_pool:
        if lock_theme:
            raise ThemeLockError(theme_key, len(themed), min_pool)
        logger.info(
            f"Theme '{theme_key}' has only {len(themed)} creatures (< {min_pool}); "
            "falling back to the full catalog"
        )
        return CandidatePool(
            candidates=catalog.candidates,
            did_fallback=True,
            theme_pool_size=len(themed),
        )

    return CandidatePool(candidates=themed, did_fallback=False, theme_pool_size=len(themed))
