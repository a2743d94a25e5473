from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

JSON_OPTIONS = orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS


def load_json_object(path: Path) -> dict[str, Any]:
    """Read a JSON file whose top level must be an object."""
    data = orjson.loads(path.read_bytes())
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
    return data


def dump_json_bytes(payload: Any) -> bytes:
    return orjson.dumps(payload, option=JSON_OPTIONS)


def write_bytes_atomic(path: Path, data: bytes) -> None:
    # rename is atomic only within one filesystem
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    tmp_path.write_bytes(data)
    tmp_path.replace(path)


def write_json_atomic(path: Path, payload: Any) -> None:
    write_bytes_atomic(path, dump_json_bytes(payload) + b"\n")


def write_text_atomic(path: Path, content: str) -> None:
    write_bytes_atomic(path, content.encode("utf-8"))
