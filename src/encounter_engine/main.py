"""
Encounter Engine MCP Server
Encounter generation tools built with the FastMCP framework.
"""

import logging
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from fastmcp import FastMCP
from pydantic import Field

from .config import EngineSettings
from .exceptions import EncounterEngineError
from .session import EncounterSession, format_encounter, format_library

logger = logging.getLogger("encounter-engine")

logging.basicConfig(
    level=logging.INFO,
    )

if not load_dotenv():
    logger.debug(".env file not found, using environment and defaults")

settings = EngineSettings.from_env()
logger.debug(f"📂 Data path: {settings.storage_dir.resolve()}")

session = EncounterSession(settings=settings)

mcp = FastMCP(
    name="encounter-engine"
)


# ----------------------------------------------------------------------
# Tools
# ----------------------------------------------------------------------

@mcp.tool
async def generate_encounter(
    party_level: Annotated[int, Field(description="Party level (1-10, clamped)")] = 5,
    party_size: Annotated[int, Field(description="Number of party members (clamped to at least 1)")] = 4,
    theme: Annotated[str, Field(description="Creature type to favour (e.g. 'undead', 'dragon') or 'any'")] = "any",
    difficulty: Annotated[str, Field(description="Encounter difficulty: 'easy', 'medium', 'hard', 'deadly'")] = "medium",
    style: Annotated[str, Field(description="Encounter style: 'any', 'skirmisher', 'bruiser', 'spellcaster', 'swarm'")] = "any",
    prefer_variety: Annotated[bool, Field(description="Avoid duplicate monsters where possible")] = False,
    lock_theme: Annotated[bool, Field(description="Fail instead of falling back when the theme pool is too small")] = False,
    lock_style: Annotated[bool, Field(description="Only accept encounters that fully match the style")] = False,
    seed: Annotated[int | None, Field(description="Optional random seed for reproducible results")] = None,
) -> str:
    """Generate an encounter whose adjusted XP matches the party's target XP.

    Monsters come from the Open5e catalog (fetched once and cached).
    """
    try:
        document = await session.generate(
            {
                "party_level": party_level,
                "party_size": party_size,
                "theme": theme,
                "difficulty": difficulty,
                "style": style,
                "prefer_variety": prefer_variety,
                "lock_theme": lock_theme,
                "lock_style": lock_style,
            },
            seed=seed,
        )
    except EncounterEngineError as e:
        return f"Error: {e}"
    return format_encounter(document, settings.tolerance)


@mcp.tool
async def reroll_encounter(
    seed: Annotated[int | None, Field(description="Optional random seed")] = None,
) -> str:
    """Generate again with the last inputs, using fewer search attempts."""
    try:
        document = await session.reroll(seed=seed)
    except EncounterEngineError as e:
        return f"Error: {e}"
    return format_encounter(document, settings.tolerance)


@mcp.tool
def save_encounter() -> str:
    """Save the encounter currently on display to the library."""
    try:
        entry = session.save_current()
    except EncounterEngineError as e:
        return f"Error: {e}"
    return f"💾 Encounter saved as '{entry.id}'"


@mcp.tool
def list_saved_encounters() -> str:
    """List saved encounters, newest first."""
    return format_library(session.library.list_encounters())


@mcp.tool
def show_saved_encounter(
    encounter_id: Annotated[str, Field(description="Saved encounter id")],
) -> str:
    """Show a saved encounter."""
    try:
        document = session.open_saved(encounter_id)
    except EncounterEngineError as e:
        return f"Error: {e}"
    return format_encounter(document, settings.tolerance)


@mcp.tool
def delete_saved_encounter(
    encounter_id: Annotated[str, Field(description="Saved encounter id")],
) -> str:
    """Delete a saved encounter."""
    if session.library.delete(encounter_id):
        return f"Deleted encounter '{encounter_id}'"
    return f"Saved encounter '{encounter_id}' not found."


@mcp.tool
def clear_encounter_library() -> str:
    """Delete every saved encounter. This cannot be undone."""
    session.library.clear()
    return "Encounter library cleared."


@mcp.tool
def export_encounter(
    encounter_id: Annotated[str | None, Field(description="Saved encounter id; defaults to the encounter on display")] = None,
) -> str:
    """Export an encounter as a JSON document."""
    try:
        path = session.export(encounter_id)
    except EncounterEngineError as e:
        return f"Error: {e}"
    return f"Encounter exported to {path}"


@mcp.tool
def import_encounter(
    path: Annotated[str, Field(description="Path to an exported encounter JSON file")],
) -> str:
    """Import an exported encounter into the library and show it."""
    try:
        document = session.import_file(Path(path))
    except EncounterEngineError as e:
        return f"Error: {e}"
    return format_encounter(document, settings.tolerance)


logger.debug("✅ All tools registered")

def main() -> None:
    """Main entry point for the Encounter Engine MCP server."""
    mcp.run()

if __name__ == "__main__":
    main()
