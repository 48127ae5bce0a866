"""Loader for a pre-built search index used to seed the engine at startup."""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Tuple, Union

from .records import ContentRecord

logger = logging.getLogger(__name__)


def _iter_entries(data: Any) -> Iterable[Tuple[str, Any]]:
    if isinstance(data, dict) and isinstance(data.get('keywordIndex'), dict):
        data = data['keywordIndex']

    if isinstance(data, dict):
        return data.items()
    if isinstance(data, list):
        return ((str(i), entry) for i, entry in enumerate(data))
    raise ValueError(f"Unsupported seed index format: {type(data).__name__}")


def parse_seed_index(data: Any) -> List[ContentRecord]:
    """Build records from decoded seed index data.

    Accepts a mapping ``id -> record``, the same mapping wrapped as
    ``{"keywordIndex": {...}}``, or a list of records. Malformed entries are
    skipped.
    """
    records = []
    skipped = 0
    for key, entry in _iter_entries(data):
        if not isinstance(entry, dict):
            skipped += 1
            logger.warning(f"Skipping seed entry {key}: expected an object")
            continue
        try:
            entry = dict(entry)
            entry.setdefault('id', key)
            records.append(ContentRecord.from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            skipped += 1
            logger.warning(f"Skipping malformed seed entry {key}: {e}")

    if skipped:
        logger.warning(f"Skipped {skipped} malformed seed index entries")
    return records


def load_seed_index(path: Union[str, Path]) -> List[ContentRecord]:
    """Load seed records from a JSON file.

    Args:
        path: Path to the seed index file

    Returns:
        Parsed records; empty when the file is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No seed index at {path}")
        return []

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        records = parse_seed_index(data)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load seed index {path}: {e}")
        return []

    logger.info(f"Loaded {len(records)} seed records from {path}")
    return records
