"""Core data types shared by filters, inputs, runners and output writers."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urljoin

_RANGE_RE = re.compile(r"([0-9]+)-([0-9]+)")
_SINGLE_RE = re.compile(r"[0-9]+")
_ZERO_TIME = "0001-01-01T00:00:00Z"


@dataclass(frozen=True)
class ValueRange:
    """An inclusive integer range."""

    min: int
    max: int

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max


def parse_value_range(value: str) -> ValueRange:
    """Parse ``"N"`` or ``"N-M"`` into a :class:`ValueRange`."""
    match = _RANGE_RE.fullmatch(value)
    if match:
        return ValueRange(int(match[1]), int(match[2]))
    if _SINGLE_RE.fullmatch(value):
        number = int(value)
        return ValueRange(number, number)
    raise ValueError(f"invalid value range: {value!r}")


def _fraction(amount: int, unit: int) -> str:
    whole, frac = divmod(amount, unit)
    digits = len(str(unit)) - 1
    frac_text = str(frac).rjust(digits, "0").rstrip("0")
    return f"{whole}.{frac_text}" if frac_text else str(whole)


def format_duration(nanoseconds: int) -> str:
    """Render a nanosecond count the way durations are conventionally printed (``1m2.5s``)."""
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    amount = abs(nanoseconds)
    if amount < 1_000:
        text = f"{amount}ns"
    elif amount < 1_000_000:
        text = _fraction(amount, 1_000) + "µs"
    elif amount < 1_000_000_000:
        text = _fraction(amount, 1_000_000) + "ms"
    else:
        seconds, frac = divmod(amount, 1_000_000_000)
        hours, rest = divmod(seconds, 3600)
        minutes, secs = divmod(rest, 60)
        text = _fraction(secs * 1_000_000_000 + frac, 1_000_000_000) + "s"
        if hours:
            text = f"{hours}h{minutes}m{text}"
        elif minutes:
            text = f"{minutes}m{text}"
    return sign + text


def _rfc3339(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, mins = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{mins:02d}"


def _number(value: float | int) -> float | int:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _sorted_dict(mapping: dict) -> dict:
    return {key: mapping[key] for key in sorted(mapping)}


def _filters_dict(filters: dict) -> dict:
    return {name: filters[name].to_dict() for name in sorted(filters)}


def _manager_dict(manager: Any) -> dict | None:
    if manager is None:
        return None
    per_domain = manager.per_domain_filters
    return {
        "IsCalibrated": manager.is_calibrated,
        "Mutex": {},
        "Matchers": _filters_dict(manager.matchers),
        "Filters": _filters_dict(manager.filters),
        "PerDomainFilters": {
            domain: {
                "IsCalibrated": per_domain[domain].is_calibrated,
                "Filters": _filters_dict(per_domain[domain].filters),
            }
            for domain in sorted(per_domain)
        },
    }


@dataclass
class Delay:
    """Delay between requests, in seconds; either fixed or a random range."""

    min: float = 0.0
    max: float = 0.0
    is_range: bool = False
    has_delay: bool = False


@dataclass
class InputProviderConfig:
    """Configuration of one input source bound to a keyword."""

    name: str = "wordlist"
    keyword: str = "FUZZ"
    value: str = ""
    encoders: str = ""

    def _as_dict(self) -> dict:
        return {
            "Name": self.name,
            "Keyword": self.keyword,
            "Value": self.value,
            "Encoders": self.encoders,
        }


@dataclass
class Config:
    """Settings of a fuzzing job."""

    audit_log: str = ""
    auto_calibration: bool = False
    auto_calibration_keyword: str = ""
    auto_calibration_per_host: bool = False
    auto_calibration_strategies: list[str] = field(default_factory=list)
    auto_calibration_strings: list[str] = field(default_factory=list)
    colors: bool = False
    command_line: str = ""
    config_file: str = ""
    data: str = ""
    debug_log: str = ""
    delay: Delay = field(default_factory=Delay)
    dirsearch_compat: bool = False
    encoders: list[str] = field(default_factory=list)
    extensions: list[str] = field(default_factory=list)
    filter_mode: str = ""
    follow_redirects: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    ignore_body: bool = False
    ignore_wordlist_comments: bool = False
    input_mode: str = ""
    input_num: int = 0
    input_providers: list[InputProviderConfig] = field(default_factory=list)
    input_shell: str = ""
    json: bool = False
    matcher_manager: Any = None
    matcher_mode: str = ""
    max_time: int = 0
    max_time_job: int = 0
    method: str = "GET"
    noninteractive: bool = False
    output_directory: str = ""
    output_file: str = ""
    output_format: str = ""
    output_skip_empty_file: bool = False
    proxy_url: str = ""
    quiet: bool = False
    rate: int = 0
    raw: bool = False
    recursion: bool = False
    recursion_depth: int = 0
    recursion_strategy: str = ""
    replay_proxy_url: str = ""
    request_file: str = ""
    request_proto: str = ""
    scraper_file: str = ""
    scrapers: str = ""
    sni: str = ""
    stop_on_403: bool = False
    stop_on_all: bool = False
    stop_on_errors: bool = False
    threads: int = 0
    timeout: int = 0
    url: str = ""
    verbose: bool = False
    wordlists: list[str] = field(default_factory=list)
    http2: bool = False
    client_cert: str = ""
    client_key: str = ""
    command_keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Return the JSON-ready representation with its canonical key order."""
        return {
            "auditlog": self.audit_log,
            "autocalibration": self.auto_calibration,
            "autocalibration_keyword": self.auto_calibration_keyword,
            "autocalibration_perhost": self.auto_calibration_per_host,
            "autocalibration_strategies": list(self.auto_calibration_strategies) or None,
            "autocalibration_strings": list(self.auto_calibration_strings) or None,
            "colors": self.colors,
            "cmdline": self.command_line,
            "configfile": self.config_file,
            "postdata": self.data,
            "debuglog": self.debug_log,
            "delay": {
                "Min": _number(self.delay.min),
                "Max": _number(self.delay.max),
                "IsRange": self.delay.is_range,
                "HasDelay": self.delay.has_delay,
            },
            "dirsearch_compatibility": self.dirsearch_compat,
            "encoders": list(self.encoders) or None,
            "extensions": list(self.extensions) or None,
            "fmode": self.filter_mode,
            "follow_redirects": self.follow_redirects,
            "headers": _sorted_dict(self.headers) if self.headers else None,
            "ignorebody": self.ignore_body,
            "ignore_wordlist_comments": self.ignore_wordlist_comments,
            "inputmode": self.input_mode,
            "cmd_inputnum": self.input_num,
            "inputproviders": [p._as_dict() for p in self.input_providers] or None,
            "inputshell": self.input_shell,
            "json": self.json,
            "matchers": _manager_dict(self.matcher_manager),
            "mmode": self.matcher_mode,
            "maxtime": self.max_time,
            "maxtime_job": self.max_time_job,
            "method": self.method,
            "noninteractive": self.noninteractive,
            "outputdirectory": self.output_directory,
            "outputfile": self.output_file,
            "outputformat": self.output_format,
            "OutputSkipEmptyFile": self.output_skip_empty_file,
            "proxyurl": self.proxy_url,
            "quiet": self.quiet,
            "rate": self.rate,
            "raw": self.raw,
            "recursion": self.recursion,
            "recursion_depth": self.recursion_depth,
            "recursion_strategy": self.recursion_strategy,
            "replayproxyurl": self.replay_proxy_url,
            "requestfile": self.request_file,
            "requestproto": self.request_proto,
            "scraperfile": self.scraper_file,
            "scrapers": self.scrapers,
            "sni": self.sni,
            "stop_403": self.stop_on_403,
            "stop_all": self.stop_on_all,
            "stop_errors": self.stop_on_errors,
            "threads": self.threads,
            "timeout": self.timeout,
            "url": self.url,
            "verbose": self.verbose,
            "wordlists": list(self.wordlists) or None,
            "http2": self.http2,
            "client-cert": self.client_cert,
            "client-key": self.client_key,
        }


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@dataclass
class Request:
    """An HTTP request template or a prepared request."""

    method: str = "GET"
    host: str = ""
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    data: bytes = b""
    input: dict[str, bytes] = field(default_factory=dict)
    position: int = 0
    raw: str = ""
    error: str = ""
    timestamp: datetime | None = None

    def copy(self) -> Request:
        """Return a copy whose headers and inputs can be changed independently."""
        return Request(
            method=self.method,
            host=self.host,
            url=self.url,
            headers=dict(self.headers),
            data=bytes(self.data),
            input=dict(self.input),
            position=self.position,
            raw=self.raw,
            error=self.error,
            timestamp=self.timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "Method": self.method,
            "Host": self.host,
            "Url": self.url,
            "Headers": _sorted_dict(self.headers) if self.headers else None,
            "Data": _b64(self.data) if self.data else None,
            "Input": {k: _b64(self.input[k]) for k in sorted(self.input)} or None,
            "Position": self.position,
            "Raw": self.raw,
            "Error": self.error,
            "Timestamp": _rfc3339(self.timestamp),
        }


@dataclass
class Response:
    """A response received for a request; ``duration`` is in nanoseconds."""

    status_code: int = 0
    headers: dict[str, list[str]] = field(default_factory=dict)
    data: bytes = b""
    content_length: int = 0
    content_words: int = 0
    content_lines: int = 0
    content_type: str = ""
    cancelled: bool = False
    request: Request | None = None
    raw: str = ""
    result_file: str = ""
    scraper_data: dict[str, list[str]] = field(default_factory=dict)
    duration: int = 0
    timestamp: datetime | None = None

    def redirect_location(self, absolute: bool) -> str:
        """Return the Location of a 3xx response, optionally resolved against the request URL."""
        location = ""
        if 300 <= self.status_code <= 399:
            values = self.headers.get("Location") or []
            if values:
                location = values[0]
        if absolute and self.request is not None:
            location = urljoin(self.request.url, location)
        return location


@dataclass
class Result:
    """A matched response as kept for output."""

    input: dict[str, bytes] = field(default_factory=dict)
    position: int = 0
    status_code: int = 0
    content_length: int = 0
    content_words: int = 0
    content_lines: int = 0
    content_type: str = ""
    redirect_location: str = ""
    scraper_data: dict[str, list[str]] = field(default_factory=dict)
    duration: int = 0
    result_file: str = ""
    url: str = ""
    host: str = ""
    html_color: str = ""

    def to_dict(self) -> dict:
        return {
            "input": {k: _b64(self.input[k]) for k in sorted(self.input)},
            "position": self.position,
            "status": self.status_code,
            "length": self.content_length,
            "words": self.content_words,
            "lines": self.content_lines,
            "content-type": self.content_type,
            "redirectlocation": self.redirect_location,
            "scraper": _sorted_dict(self.scraper_data) if self.scraper_data else None,
            "duration": self.duration,
            "resultfile": self.result_file,
            "url": self.url,
            "host": self.host,
        }


@dataclass
class ScraperResult:
    """Values extracted by one scraper rule."""

    name: str
    type: str
    action: list[str] = field(default_factory=list)
    results: list[str] = field(default_factory=list)


@dataclass
class Progress:
    """Progress counters of a running job."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    req_count: int = 0
    req_total: int = 0
    req_sec: int = 0
    queue_pos: int = 0
    queue_total: int = 0
    error_count: int = 0