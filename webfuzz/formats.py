"""CSV and JSON result files."""

from __future__ import annotations

import base64
import csv
from datetime import datetime
from typing import Iterable

from webfuzz.audit import _marshal
from webfuzz.models import Config, Result, format_duration

STATIC_HEADERS = [
    "url",
    "redirectlocation",
    "position",
    "status_code",
    "content_length",
    "content_words",
    "content_lines",
    "content_type",
    "duration",
    "resultfile",
    "Ffufhash",
]


def _csv_text(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


def _json_text(data: bytes) -> str:
    return data.decode("utf-8", "replace")


def _now_rfc3339() -> str:
    text = datetime.now().astimezone().isoformat(timespec="seconds")
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def to_csv(result: Result) -> list[str]:
    """Return the CSV row of a result: inputs first, the hash input last."""
    row: list[str] = []
    ffufhash = ""
    for keyword, value in result.input.items():
        if keyword == "FFUFHASH":
            ffufhash = _csv_text(value)
        else:
            row.append(_csv_text(value))
    row.extend(
        [
            result.url,
            result.redirect_location,
            str(result.position),
            str(result.status_code),
            str(result.content_length),
            str(result.content_words),
            str(result.content_lines),
            result.content_type,
            format_duration(result.duration),
            result.result_file,
            ffufhash,
        ]
    )
    return row


def write_csv(filename: str, config: Config, results: Iterable[Result], encode: bool) -> None:
    """Write results as CSV; with ``encode`` the inputs are base64 encoded."""
    header = [provider.keyword for provider in config.input_providers] + STATIC_HEADERS
    with open(filename, "w", encoding="utf-8", errors="surrogateescape", newline="") as handle:
        writer = csv.writer(handle, lineterminator="\n")
        writer.writerow(header)
        for result in results:
            if encode:
                encoded = {key: base64.b64encode(value) for key, value in result.input.items()}
                result = Result(**{**vars(result), "input": encoded})
            writer.writerow(to_csv(result))


def result_to_json(result: Result) -> dict:
    """Return the plain JSON form of a result, with inputs as text."""
    return {
        "input": {key: _json_text(result.input[key]) for key in sorted(result.input)},
        "position": result.position,
        "status": result.status_code,
        "length": result.content_length,
        "words": result.content_words,
        "lines": result.content_lines,
        "content-type": result.content_type,
        "redirectlocation": result.redirect_location,
        "scraper": {k: result.scraper_data[k] for k in sorted(result.scraper_data)} or None,
        "duration": result.duration,
        "resultfile": result.result_file,
        "url": result.url,
        "host": result.host,
    }


def write_json(filename: str, config: Config, results: Iterable[Result]) -> None:
    document = {
        "commandline": config.command_line,
        "time": _now_rfc3339(),
        "results": [result_to_json(result) for result in results],
        "config": config.to_dict(),
    }
    with open(filename, "wb") as handle:
        handle.write(_marshal(document))


def write_ejson(filename: str, config: Config, results: Iterable[Result]) -> None:
    """Write results with base64 encoded inputs and no config."""
    document = {
        "commandline": config.command_line,
        "time": _now_rfc3339(),
        "results": [result.to_dict() for result in results],
        "config": None,
    }
    with open(filename, "wb") as handle:
        handle.write(_marshal(document))