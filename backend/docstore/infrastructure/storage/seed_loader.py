"""Seed data loading — JSON snapshots read once at start-up.

Two layouts are supported:
    <seed_dir>/<collection>.json   one file per collection, ``{id: record}``
    <file>.json                    one file, ``{collection: {id: record}}``
"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SeedSnapshot = dict[str, dict[str, dict[str, Any]]]


def load_seed_directory(path: str | Path | None) -> SeedSnapshot:
    """Read every ``*.json`` file in ``path`` as one collection.

    A missing directory yields an empty snapshot.
    """
    if not path:
        return {}
    directory = Path(path)
    if not directory.is_dir():
        logger.info("Seed directory %s not found, starting empty", directory)
        return {}

    snapshot: SeedSnapshot = {}
    for json_file in sorted(directory.glob("*.json")):
        content = _read_json(json_file)
        if not isinstance(content, dict):
            raise ValueError(f"Seed file {json_file} must contain an object of records")
        snapshot[json_file.stem] = _as_collection(content, json_file)
        logger.debug("Read %d record(s) from %s", len(content), json_file.name)
    return snapshot


def load_seed_file(path: str | Path | None) -> SeedSnapshot:
    """Read a whole ``{collection: {id: record}}`` snapshot from one file."""
    if not path:
        return {}
    seed_file = Path(path)
    if not seed_file.is_file():
        logger.info("Seed file %s not found, starting empty", seed_file)
        return {}

    content = _read_json(seed_file)
    if not isinstance(content, dict):
        raise ValueError(f"Seed file {seed_file} must contain an object of collections")
    return {
        str(collection): _as_collection(records, seed_file)
        for collection, records in content.items()
    }


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _as_collection(records: Any, source: Path) -> dict[str, dict[str, Any]]:
    if not isinstance(records, dict):
        raise ValueError(f"Collection in {source} must be an object keyed by record id")
    for record_id, record in records.items():
        if not isinstance(record, dict):
            raise ValueError(f"Record '{record_id}' in {source} is not an object")
    return {str(record_id): record for record_id, record in records.items()}
