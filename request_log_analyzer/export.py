"""Writes tracker state to YAML or JSON for later processing."""

import json
import logging
import os
import tempfile
from typing import Any

import yaml

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Coerce category keys to strings so any key type serializes.

    Keys that only differ by type (``1`` and ``"1"``, ``None`` and
    ``"null"``) would collapse into one; the first one wins and the
    collision is logged.
    """
    if not isinstance(value, dict):
        return value
    plain = {}
    for key, item in value.items():
        name = "null" if key is None else str(key)
        if name in plain:
            logger.warning("Export key %r from %r collides with an earlier key, dropping its value %r", name, key, item)
            continue
        plain[name] = _plain(item)
    return plain


def to_yaml(data: dict) -> str:
    return yaml.safe_dump(_plain(data), default_flow_style=False, sort_keys=False)


def to_json(data: dict) -> str:
    return json.dumps(_plain(data), indent=2)


def export_file(data: dict, path: str, fmt: str | None = None) -> None:
    """Atomically write *data* to *path*. Format follows the extension unless given."""
    if fmt is None:
        fmt = "json" if path.endswith(".json") else "yaml"
    text = to_json(data) + "\n" if fmt == "json" else to_yaml(data)

    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except Exception:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.info("Exported %d tracker(s) to %s", len(data), path)
