"""Response filters and matchers, and the manager that holds them."""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from webfuzz.models import Response, ValueRange, parse_value_range

ALL_STATUSES = 0
_TIME_VALUE_RE = re.compile(r"[+-]?[0-9]+")


class FilterError(ValueError):
    """Raised when a filter or matcher cannot be created from its value."""


class RangeFilter(ABC):
    """A filter holding a comma separated list of integer ranges."""

    _error = "Range filter or matcher: invalid value: {}"
    _verbose = "Range"

    def __init__(self, value: str):
        self.value: list[ValueRange] = [self._parse_part(part) for part in value.split(",")]

    def _parse_part(self, part: str) -> ValueRange:
        try:
            return parse_value_range(part)
        except ValueError:
            raise FilterError(self._error.format(part)) from None

    def _matches(self, number: int) -> bool:
        return any(vr.contains(number) for vr in self.value)

    @staticmethod
    def _format_range(vr: ValueRange) -> str:
        return str(vr.min) if vr.min == vr.max else f"{vr.min}-{vr.max}"

    @abstractmethod
    def filter(self, response: Response) -> bool:
        """Return True when the response falls in one of the ranges."""

    def repr(self) -> str:
        return ",".join(self._format_range(vr) for vr in self.value)

    def repr_verbose(self) -> str:
        return f"{self._verbose}: {self.repr()}"

    def to_dict(self) -> dict:
        return {"value": self.repr()}


class StatusFilter(RangeFilter):
    """Matches the response status code; ``all`` matches every code."""

    _error = "Status filter or matcher (-fc / -mc): invalid value {}"
    _verbose = "Response status"

    def _parse_part(self, part: str) -> ValueRange:
        if part == "all":
            return ValueRange(ALL_STATUSES, ALL_STATUSES)
        return super()._parse_part(part)

    @staticmethod
    def _is_all(vr: ValueRange) -> bool:
        return vr.min == ALL_STATUSES and vr.max == ALL_STATUSES

    def filter(self, response: Response) -> bool:
        return any(self._is_all(vr) or vr.contains(response.status_code) for vr in self.value)

    def repr(self) -> str:
        return ",".join("all" if self._is_all(vr) else self._format_range(vr) for vr in self.value)


class SizeFilter(RangeFilter):
    """Matches the response content length."""

    _error = "Size filter or matcher (-fs / -ms): invalid value: {}"
    _verbose = "Response size"

    def filter(self, response: Response) -> bool:
        return self._matches(response.content_length)


class WordFilter(RangeFilter):
    """Matches the number of space separated words in the body."""

    _error = "Word filter or matcher (-fw / -mw): invalid value: {}"
    _verbose = "Response words"

    def filter(self, response: Response) -> bool:
        return self._matches(len(response.data.split(b" ")))


class LineFilter(RangeFilter):
    """Matches the number of lines in the body."""

    _error = "Line filter or matcher (-fl / -ml): invalid value: {}"
    _verbose = "Response lines"

    def filter(self, response: Response) -> bool:
        return self._matches(len(response.data.split(b"\n")))


class RegexpFilter:
    """Matches a regular expression against headers and body.

    Input keywords inside the pattern are replaced by the escaped input values.
    """

    def __init__(self, value: str):
        try:
            self.value = re.compile(value)
        except re.error:
            raise FilterError(f"Regexp filter or matcher (-fr / -mr): invalid value: {value}") from None
        self.raw = value

    def filter(self, response: Response) -> bool:
        headers = "".join(
            f"{name}: {item}\r\n" for name, items in response.headers.items() for item in items
        )
        subject = headers.encode() + response.data
        pattern = self.raw.encode()
        inputs = response.request.input if response.request is not None else {}
        for keyword, item in inputs.items():
            pattern = pattern.replace(keyword.encode(), re.escape(item))
        try:
            return re.search(pattern, subject) is not None
        except re.error:
            return False

    def repr(self) -> str:
        return self.raw

    def repr_verbose(self) -> str:
        return f"Regexp: {self.raw}"

    def to_dict(self) -> dict:
        return {"value": self.raw}


def _milliseconds(nanoseconds: int) -> int:
    millis = abs(nanoseconds) // 1_000_000
    return -millis if nanoseconds < 0 else millis


class TimeFilter:
    """Matches responses slower (``>N``) or faster (``<N``) than N milliseconds."""

    def __init__(self, value: str):
        self.gt = value.startswith(">")
        self.lt = value.startswith("<")
        error = f"Time filter or matcher (-ft / -mt): invalid value: {value}"
        if self.gt == self.lt or not _TIME_VALUE_RE.fullmatch(value[1:]):
            raise FilterError(error)
        self.ms = int(value[1:])
        self.raw = value

    def filter(self, response: Response) -> bool:
        elapsed = _milliseconds(response.duration)
        if self.gt:
            return elapsed > self.ms
        return elapsed < self.ms

    def repr(self) -> str:
        return self.raw

    def repr_verbose(self) -> str:
        return f"Response time: {self.raw}"

    def to_dict(self) -> dict:
        return {"value": self.raw}


_FILTER_TYPES = {
    "status": StatusFilter,
    "size": SizeFilter,
    "word": WordFilter,
    "line": LineFilter,
    "regexp": RegexpFilter,
    "time": TimeFilter,
}


def new_filter_by_name(name: str, value: str):
    """Create the filter registered under ``name`` from its textual value."""
    try:
        factory = _FILTER_TYPES[name]
    except KeyError:
        raise FilterError(f"Could not create filter with name {name}") from None
    return factory(value)


@dataclass
class PerDomainFilter:
    """Filters that apply to one host only."""

    filters: dict = field(default_factory=dict)
    is_calibrated: bool = False


class MatcherManager:
    """Holds matchers, global filters and per-host filters."""

    def __init__(self):
        self.is_calibrated = False
        self.matchers: dict = {}
        self.filters: dict = {}
        self.per_domain_filters: dict[str, PerDomainFilter] = {}
        self._lock = threading.Lock()

    def set_calibrated(self, value: bool) -> None:
        self.is_calibrated = value

    def set_calibrated_for_host(self, host: str, value: bool) -> None:
        existing = self.per_domain_filters.get(host)
        if existing is not None:
            existing.is_calibrated = value
        else:
            self.per_domain_filters[host] = PerDomainFilter(self.filters, is_calibrated=True)

    @staticmethod
    def _merge(target: dict, name: str, option: str, replace: bool) -> None:
        new = new_filter_by_name(name, option)
        if name not in target or replace:
            target[name] = new
            return
        try:
            target[name] = new_filter_by_name(name, f"{target[name].repr()},{option}")
        except FilterError:
            pass

    def add_filter(self, name: str, option: str, replace: bool) -> None:
        """Add a filter, or extend an existing one unless ``replace`` is set."""
        with self._lock:
            self._merge(self.filters, name, option, replace)

    def add_per_domain_filter(self, domain: str, name: str, option: str) -> None:
        with self._lock:
            per_domain = self.per_domain_filters.get(domain) or PerDomainFilter(self.filters)
            try:
                self._merge(per_domain.filters, name, option, False)
            finally:
                self.per_domain_filters[domain] = per_domain

    def remove_filter(self, name: str) -> None:
        with self._lock:
            self.filters.pop(name, None)

    def add_matcher(self, name: str, option: str) -> None:
        with self._lock:
            self._merge(self.matchers, name, option, False)

    def filters_for_domain(self, domain: str) -> dict:
        per_domain = self.per_domain_filters.get(domain)
        return self.filters if per_domain is None else per_domain.filters

    def calibrated_for_domain(self, domain: str) -> bool:
        per_domain = self.per_domain_filters.get(domain)
        return per_domain.is_calibrated if per_domain is not None else False