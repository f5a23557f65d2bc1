"""
Channel file loaders.

Reads a channel list from CSV, JSON or YAML.  CSV columns are read as
text so money values reach ``Decimal`` without passing through float.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd
import yaml
from loguru import logger
from pydantic import ValidationError

from z3d.core.exceptions import InputFileError
from z3d.optimization.allocator import Channel


REQUIRED_COLUMNS = ["name", "min_spend", "max_spend", "expected_return_multiple", "risk_weight"]


def _read_records(path: Path) -> list[dict[str, Any]]:
    suffix = path.suffix.lower()

    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise InputFileError(f"Missing columns in {path}: {missing}", path=str(path))
        return df[REQUIRED_COLUMNS].to_dict(orient="records")

    if suffix == ".json":
        with open(path) as f:
            data = json.load(f)
    elif suffix in (".yaml", ".yml"):
        with open(path) as f:
            data = yaml.safe_load(f)
    else:
        raise InputFileError(f"Unsupported channel file type: {suffix}", path=str(path))

    if isinstance(data, dict):
        data = data.get("channels", [])
    if not isinstance(data, list):
        raise InputFileError(f"Expected a list of channels in {path}", path=str(path))
    return data


def load_channels(source: str | Path) -> list[Channel]:
    """
    Load channels from a file.

    Args:
        source: Path to a .csv, .json or .yaml/.yml file.  JSON and YAML
            may hold a bare list or a mapping with a ``channels`` key.

    Returns:
        Parsed channels in file order

    Raises:
        InputFileError: if the file is missing, unreadable or malformed
    """
    path = Path(source)
    if not path.exists():
        raise InputFileError(f"Channel file not found: {source}", path=str(path))

    logger.info(f"Loading channels from {path}")

    try:
        records = _read_records(path)
    except InputFileError:
        raise
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise InputFileError(f"Cannot read {path}: {e}", path=str(path)) from e

    try:
        channels = [Channel(**record) for record in records]
    except (TypeError, ValidationError, ArithmeticError) as e:
        raise InputFileError(f"Invalid channel in {path}: {e}", path=str(path)) from e

    logger.info(f"Loaded {len(channels)} channels")
    return channels
