"""asset_ingest.config

Optional YAML settings for bulk uploads.

Example (config/ingest.yml):

    batch_size: 50
    row_error_cap: 20
    preload_workers: 4

Missing keys fall back to the defaults below; unknown keys are rejected so a
typo never silently changes behavior.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_BATCH_SIZE = 50
DEFAULT_ROW_ERROR_CAP = 20
DEFAULT_PRELOAD_WORKERS = 4

# key -> minimum allowed value
_INT_SETTINGS = {
    "batch_size": 1,
    "row_error_cap": 0,
    "preload_workers": 1,
}


class IngestConfigValidationError(ValueError):
    """Raised when an ingest YAML config fails validation."""


@dataclass(frozen=True)
class IngestConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    row_error_cap: int = DEFAULT_ROW_ERROR_CAP
    preload_workers: int = DEFAULT_PRELOAD_WORKERS


def validate_ingest_config(data: Any) -> None:
    if data is None:
        return
    if not isinstance(data, dict):
        raise IngestConfigValidationError("YAML root must be a mapping.")

    unknown = set(data.keys()) - set(_INT_SETTINGS)
    if unknown:
        raise IngestConfigValidationError(f"Unknown config keys: {sorted(unknown)}")

    for key, minimum in _INT_SETTINGS.items():
        if key not in data:
            continue
        val = data[key]
        if isinstance(val, bool) or not isinstance(val, int):
            raise IngestConfigValidationError(f"'{key}' value {val!r} is not an integer.")
        if val < minimum:
            raise IngestConfigValidationError(f"'{key}' value {val} must be >= {minimum}.")


def load_ingest_config(yaml_path: Path | None) -> IngestConfig:
    """Load settings from yaml_path, or return defaults when it is None.

    Raises:
        IngestConfigValidationError: If the file content is invalid.
        FileNotFoundError: If yaml_path does not exist.
    """
    if yaml_path is None:
        return IngestConfig()
    data = yaml.safe_load(yaml_path.read_text(encoding="utf-8"))
    validate_ingest_config(data)
    return IngestConfig(**(data or {}))
