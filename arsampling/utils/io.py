"""I/O utilities for sampling run artifacts."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import numpy as np


def ensure_dir(path: Path) -> Path:
    """Create directory if missing and return the path."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def to_serializable(value: Any) -> Any:
    """Convert NumPy / Path objects into JSON serialisable forms."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(v) for v in value]
    return value


def save_json(data: Any, path: Path) -> None:
    """Write JSON with UTF-8 encoding."""
    ensure_dir(path.parent)
    path.write_text(json.dumps(to_serializable(data), indent=2), encoding="utf-8")


def save_samples(path: Path, **arrays: np.ndarray) -> Path:
    """Persist named sample arrays as a compressed ``.npz`` archive."""
    ensure_dir(path.parent)
    np.savez_compressed(path, **{k: np.asarray(v) for k, v in arrays.items()})
    return path
