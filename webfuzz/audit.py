"""An append-only log of JSON records, one per line."""

from __future__ import annotations

import json
import threading
from typing import Any


def _marshal(obj: Any) -> bytes:
    """Encode compact JSON with HTML-sensitive characters escaped."""
    text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
    for char, escape in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escape)
    return text.encode("utf-8")


def _type_name(data: Any) -> str:
    kind = type(data)
    return f"{kind.__module__.split('.')[0]}.{kind.__name__}"


class AuditLogger:
    """Appends ``{"Type": ..., "Data": ...}`` records to a file."""

    def __init__(self, filename: str):
        self._file = open(filename, "ab")
        self._lock = threading.Lock()

    def write(self, data: Any) -> None:
        """Append one record; objects with ``to_dict`` are logged as that mapping."""
        payload = data.to_dict() if callable(getattr(data, "to_dict", None)) else data
        try:
            line = _marshal({"Type": _type_name(data), "Data": payload})
        except (TypeError, ValueError) as err:
            raise ValueError(f"could not marshal json data: {err}") from err
        with self._lock:
            try:
                self._file.write(line + b"\n")
                self._file.flush()
            except (OSError, ValueError) as err:
                raise OSError(f"could not write json data to audit log: {err}") from err

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> AuditLogger:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()