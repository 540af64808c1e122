"""JSON export and import of the whole ledger state."""

import logging
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from .exceptions import StorageError
from .models import LedgerState

logger = logging.getLogger(__name__)

EXPORT_PREFIX = "warikan_export_"


def export_filename(day: date | None = None) -> str:
    """File name for an export made on ``day`` (default: today)."""
    return f"{EXPORT_PREFIX}{(day or date.today()).isoformat()}.json"


def dump_state(state: LedgerState) -> str:
    """Serialize the state to pretty-printed JSON with camelCase keys."""
    return state.model_dump_json(by_alias=True, indent=2)


def parse_state(payload: str | bytes) -> LedgerState:
    """
    Parse a JSON document into a ledger state.

    Raises:
        StorageError: If the payload is not valid JSON or not a ledger state
    """
    try:
        return LedgerState.model_validate_json(payload)
    except ValidationError as e:
        raise StorageError(f"Invalid ledger document: {e}") from e


def export_state(
    state: LedgerState, directory: Path, day: date | None = None
) -> Path:
    """
    Write the state to ``directory`` as a dated JSON file.

    Args:
        state: Ledger state to export
        directory: Target directory (created if missing)
        day: Date used in the file name

    Returns:
        Path of the written file
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(day)
    path.write_text(dump_state(state), encoding="utf-8")
    logger.info(f"Exported {len(state.projects)} projects to {path}")
    return path


def import_state(path: Path) -> LedgerState:
    """
    Read a ledger state from an exported JSON file.

    Raises:
        StorageError: If the file is missing or not a valid ledger document
    """
    try:
        payload = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Cannot read {path}: {e}") from e

    state = parse_state(payload)
    logger.info(f"Imported {len(state.projects)} projects from {path}")
    return state
