import json

import pytest

from webfuzz.models import Response
from webfuzz.scraper import (
    Scraper,
    ScraperError,
    ScraperRule,
    from_dir,
    header_string,
    is_active,
    parse_active_groups,
)


def _write_group(path, name, active, rules):
    path.write_text(json.dumps({"groupname": name, "active": active, "rules": rules}), encoding="utf-8")


def test_header_string_renders_each_value():
    headers = {"Server": ["nginx"], "Set-Cookie": ["a=1", "b=2"]}
    assert header_string(headers) == "Server: nginx\nSet-Cookie: a=1\nSet-Cookie: b=2\n"


def test_parse_active_groups_normalises():
    assert parse_active_groups("All, Foo ,bar") == ["all", "foo", "bar"]


def test_is_active():
    groups = parse_active_groups("foo,bar")
    assert is_active(" FOO ", groups) is True
    assert is_active("baz", groups) is False


def test_regexp_rule_returns_all_submatches():
    rule = ScraperRule(name="ids", rule=r"id=(\d+)(x)?", type="regexp")
    assert rule.check("id=12 id=34x") == ["id=12", "12", "", "id=34x", "34", "x"]


def test_regexp_rule_without_match():
    rule = ScraperRule(name="ids", rule=r"id=(\d+)", type="regexp")
    assert rule.check("nothing here") == []


def test_invalid_regexp_rule_raises():
    with pytest.raises(ScraperError):
        ScraperRule(name="bad", rule="r((", type="regexp")


def test_query_rule_selects_text():
    rule = ScraperRule(name="title", rule="title", type="query")
    assert rule.check("<html><head><title>Hello</title></head><body></body></html>") == ["Hello"]


def test_unknown_rule_type_yields_nothing():
    rule = ScraperRule(name="x", rule="anything", type="other")
    assert rule.check("anything") == []


def _response():
    return Response(headers={"Server": ["nginx"]}, data=b"<p>version 1.0</p>")


def test_execute_respects_targets():
    scraper = Scraper(
        rules=[
            ScraperRule(name="body", rule="nginx", target="body", type="regexp"),
            ScraperRule(name="headers", rule="nginx", target="headers", type="regexp"),
            ScraperRule(name="both", rule="Server: nginx", type="regexp"),
            ScraperRule(name="version", rule="version", target="body", type="regexp", action=["output"]),
        ]
    )
    results = scraper.execute(_response(), True)
    assert [r.name for r in results] == ["headers", "both", "version"]
    assert results[0].results == ["nginx"]
    assert results[2].action == ["output"]
    assert results[2].type == "regexp"


def test_execute_skips_only_matched_rules_for_unmatched():
    rule = ScraperRule(name="v", rule="version", target="body", type="regexp", only_matched=True)
    scraper = Scraper(rules=[rule])
    assert scraper.execute(_response(), False) == []
    assert [r.name for r in scraper.execute(_response(), True)] == ["v"]


def test_from_dir_loads_active_groups(tmp_path):
    _write_group(tmp_path / "a.json", "alpha", True, [{"name": "a1", "rule": "x", "type": "regexp"}])
    _write_group(tmp_path / "b.json", "beta", False, [{"name": "b1", "rule": "y", "type": "regexp"}])
    (tmp_path / "c.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "readme.txt").write_text("ignored", encoding="utf-8")

    scraper, errors = from_dir(str(tmp_path), "all")
    assert [r.name for r in scraper.rules] == ["a1"]
    assert len(errors) == 1
    assert "c.json" in errors[0]

    scraper, _ = from_dir(str(tmp_path), "Beta")
    assert [r.name for r in scraper.rules] == ["b1"]


def test_from_dir_reports_bad_rules_and_keeps_good_ones(tmp_path):
    _write_group(
        tmp_path / "g.json",
        "gamma",
        True,
        [{"name": "bad", "rule": "r((", "type": "regexp"}, {"name": "good", "rule": "z", "type": "regexp"}],
    )
    scraper, errors = from_dir(str(tmp_path), "gamma")
    assert [r.name for r in scraper.rules] == ["good"]
    assert len(errors) == 1
    assert "g.json" in errors[0]


def test_from_dir_missing_directory(tmp_path):
    scraper, errors = from_dir(str(tmp_path / "missing"), "all")
    assert scraper.rules == []
    assert len(errors) == 1


def test_append_from_file(tmp_path):
    path = tmp_path / "rules.json"
    _write_group(path, "g", False, [{"name": "r1", "rule": "h1", "type": "query", "onlymatched": True}])
    scraper = Scraper()
    scraper.append_from_file(str(path))
    assert len(scraper.rules) == 1
    assert scraper.rules[0].name == "r1"
    assert scraper.rules[0].only_matched is True


def test_append_from_file_with_bad_rule_keeps_valid(tmp_path):
    path = tmp_path / "rules.json"
    _write_group(
        path,
        "g",
        True,
        [{"name": "ok", "rule": "a", "type": "regexp"}, {"name": "bad", "rule": "(", "type": "regexp"}],
    )
    scraper = Scraper()
    with pytest.raises(ScraperError):
        scraper.append_from_file(str(path))
    assert [r.name for r in scraper.rules] == ["ok"]


def test_append_from_missing_file(tmp_path):
    with pytest.raises(OSError):
        Scraper().append_from_file(str(tmp_path / "missing.json"))