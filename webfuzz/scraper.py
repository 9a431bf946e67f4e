"""Rules that extract data from responses with regular expressions or CSS selectors."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from webfuzz.models import Response, ScraperResult


class ScraperError(ValueError):
    """Raised when a scraper rule or rule file is invalid."""


@dataclass
class ScraperRule:
    """One extraction rule; ``type`` is ``regexp`` or ``query`` (a CSS selector)."""

    name: str = ""
    rule: str = ""
    target: str = ""
    type: str = ""
    only_matched: bool = False
    action: list[str] = field(default_factory=list)
    _compiled: re.Pattern | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.type == "regexp":
            try:
                self._compiled = re.compile(self.rule)
            except re.error as err:
                raise ScraperError(f"invalid regexp {self.rule!r}: {err}") from None

    @classmethod
    def _from_json(cls, data: object) -> ScraperRule:
        if not isinstance(data, dict):
            raise ScraperError("scraper rule must be a JSON object")
        return cls(
            name=str(data.get("name", "")),
            rule=str(data.get("rule", "")),
            target=str(data.get("target", "")),
            type=str(data.get("type", "")),
            only_matched=bool(data.get("onlymatched", False)),
            action=[str(item) for item in data.get("action") or []],
        )

    def check(self, data: str) -> list[str]:
        """Return every value this rule extracts from ``data``."""
        if self.type == "regexp":
            return self._check_regexp(data)
        if self.type == "query":
            return self._check_query(data)
        return []

    def _check_query(self, data: str) -> list[str]:
        try:
            document = BeautifulSoup(data, "html.parser")
            selection = document.select(self.rule)
        except Exception:  # an unparsable selector simply selects nothing
            return []
        return [element.get_text() for element in selection]

    def _check_regexp(self, data: str) -> list[str]:
        if self._compiled is None:
            return []
        values: list[str] = []
        for match in self._compiled.finditer(data):
            values.append(match.group(0))
            values.extend(match.groups(default=""))
        return values


@dataclass
class ScraperGroup:
    """A named set of rules read from one file."""

    rules: list[ScraperRule] = field(default_factory=list)
    name: str = ""
    active: bool = False


def _read_group(path: str) -> tuple[ScraperGroup, list[str]]:
    """Read a rule group; return it with the errors of the rules that were left out."""
    with open(path, encoding="utf-8") as handle:
        raw = json.load(handle)
    if not isinstance(raw, dict):
        raise ScraperError("scraper group must be a JSON object")
    group = ScraperGroup(name=str(raw.get("groupname", "")), active=bool(raw.get("active", False)))
    errors: list[str] = []
    for entry in raw.get("rules") or []:
        try:
            group.rules.append(ScraperRule._from_json(entry))
        except ScraperError as err:
            errors.append(str(err))
    return group, errors


def header_string(headers: dict[str, list[str]]) -> str:
    """Render headers as ``Name: value`` lines."""
    return "".join(f"{name}: {value}\n" for name, values in headers.items() for value in values)


def is_active(name: str, groups: list[str]) -> bool:
    return name.strip().lower() in groups


def parse_active_groups(active: str) -> list[str]:
    """Split a comma separated list of group names into normalised names."""
    return [part.strip().lower() for part in active.split(",")]


@dataclass
class Scraper:
    """A collection of rules applied to every response."""

    rules: list[ScraperRule] = field(default_factory=list)

    def append_from_file(self, path: str) -> None:
        """Add the valid rules of a group file; raise ScraperError if any rule was invalid."""
        group, errors = _read_group(path)
        self.rules.extend(group.rules)
        if errors:
            raise ScraperError("; ".join(errors))

    def execute(self, response: Response, matched: bool) -> list[ScraperResult]:
        body = response.data.decode("utf-8", "replace")
        results: list[ScraperResult] = []
        for rule in self.rules:
            if rule.only_matched and not matched:
                continue
            if rule.target == "body":
                source = body
            elif rule.target == "headers":
                source = header_string(response.headers)
            else:
                source = header_string(response.headers) + body
            values = rule.check(source)
            if values:
                results.append(
                    ScraperResult(name=rule.name, type=rule.type, action=list(rule.action), results=values)
                )
        return results


def from_dir(dirname: str, active: str) -> tuple[Scraper, list[str]]:
    """Load the active rule groups of a directory; return the scraper and the problems found."""
    scraper = Scraper()
    errors: list[str] = []
    groups = parse_active_groups(active)
    try:
        with os.scandir(dirname) as listing:
            entries = sorted(listing, key=lambda entry: entry.name)
    except OSError as err:
        return scraper, [str(err)]
    for entry in entries:
        if not entry.is_file(follow_symlinks=False) or not entry.name.endswith(".json"):
            continue
        path = os.path.join(dirname, entry.name)
        try:
            group, rule_errors = _read_group(path)
        except (OSError, ValueError) as err:
            errors.append(f"{path} : {err}")
            continue
        if (group.active and is_active("all", groups)) or is_active(group.name, groups):
            errors.extend(f"{path} : {err}" for err in rule_errors)
            scraper.rules.extend(group.rules)
    return scraper, errors