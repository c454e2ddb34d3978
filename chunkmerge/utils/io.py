# -*- coding: utf-8 -*-
"""
I/O helpers for chunking inputs and outputs

JSON for reports, JSONL for document and chunk records. Numpy arrays and
dataclasses are serialised transparently.

Examples:
    from chunkmerge.utils.io import load_jsonl, save_jsonl, save_json
    documents = load_jsonl("data/raw/documents.jsonl")
    save_jsonl([c.to_dict() for c in chunks], "data/processed/chunks/chunks.jsonl")

"""
import json
import logging
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import List, Dict, Any, Union

logger = logging.getLogger(__name__)


def save_json(data: Any, path: Union[str, Path], indent: int = 2) -> str:
    """
    Save data to a JSON file, creating parent directories.

    Returns:
        Path string
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=_serialize)

    logger.info(f"Saved {path} ({_size_str(path)})")
    return str(path)


def load_jsonl(path: Union[str, Path]) -> List[Dict]:
    """
    Load a JSONL file as a list of records.

    Blank lines are skipped. A malformed line raises ValueError naming the
    line number.
    """
    path = Path(path)
    records = []
    with open(path, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_number}: invalid JSON ({e.msg})") from e
    logger.info(f"Loaded {len(records)} records from {path}")
    return records


def save_jsonl(records: List[Any], path: Union[str, Path]) -> str:
    """Save records (dicts or dataclasses) to a JSONL file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False, default=_serialize) + '\n')

    logger.info(f"Saved {len(records)} records to {path}")
    return str(path)


def _serialize(obj: Any) -> Any:
    """Convert non-JSON-serializable objects."""
    if hasattr(obj, 'tolist'):  # numpy array / scalar
        return obj.tolist()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if hasattr(obj, '__dict__'):
        return obj.__dict__
    return str(obj)


def _size_str(path: Path) -> str:
    """Human-readable file size."""
    size = path.stat().st_size
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
