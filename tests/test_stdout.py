import base64
import hashlib
import json
import os

import pytest

from webfuzz.filters import MatcherManager
from webfuzz.models import Config, InputProviderConfig, Progress, Request, Response, Result
from webfuzz.stdout import (
    ANSI_CLEAR,
    ANSI_GREEN,
    ANSI_RED,
    TERMINAL_CLEAR_LINE,
    Stdoutput,
    new_output_provider,
)


def _config(*keywords, **kwargs):
    providers = [InputProviderConfig(name="wordlist", keyword=k, value="words.txt") for k in keywords]
    return Config(input_providers=providers, **kwargs)


def _result(**kwargs):
    base = dict(
        input={"FUZZ": b"admin"},
        position=7,
        status_code=200,
        content_length=3,
        content_words=4,
        content_lines=5,
        duration=12_000_000,
        url="http://example.com/admin",
    )
    base.update(kwargs)
    return Result(**base)


def test_keywords_are_sorted():
    out = Stdoutput(_config("ZED", "ALPHA"))
    assert out.fuzz_keywords == ["ALPHA", "ZED"]


def test_cycle_and_reset():
    out = Stdoutput(_config("FUZZ"))
    first = _result()
    out.current_results.append(first)
    out.cycle()
    assert out.results == [first]
    assert out.current_results == []
    out.current_results.append(_result())
    out.reset()
    assert out.current_results == []
    assert out.results == [first]


def test_info_plain(capsys):
    Stdoutput(_config("FUZZ")).info("hello")
    assert capsys.readouterr().err == f"{TERMINAL_CLEAR_LINE}[INFO] hello\n\n"


def test_info_quiet(capsys):
    Stdoutput(_config("FUZZ", quiet=True)).info("hello")
    assert capsys.readouterr().err == "hello"


def test_error_and_warning_with_colors(capsys):
    out = Stdoutput(_config("FUZZ", colors=True))
    out.error("bad")
    out.warning("careful")
    err = capsys.readouterr().err
    assert f"[{ANSI_RED}ERR{ANSI_CLEAR}] bad\n" in err
    assert f"[{ANSI_RED}WARN{ANSI_CLEAR}] careful\n" in err


def test_raw(capsys):
    Stdoutput(_config("FUZZ")).raw("> ")
    assert capsys.readouterr().err == TERMINAL_CLEAR_LINE + "> "


def test_print_result_normal(capsys):
    Stdoutput(_config("FUZZ")).print_result(_result())
    out = capsys.readouterr().out
    assert out.startswith(TERMINAL_CLEAR_LINE + "admin".ljust(23) + " ")
    assert "[Status: 200, Size: 3, Words: 4, Lines: 5, Duration: 12ms]" in out


def test_print_result_colorized(capsys):
    Stdoutput(_config("FUZZ", colors=True)).print_result(_result())
    out = capsys.readouterr().out
    assert out.startswith(TERMINAL_CLEAR_LINE + ANSI_GREEN)
    assert out.rstrip("\n").endswith(ANSI_CLEAR)


def test_print_result_quiet(capsys):
    Stdoutput(_config("FUZZ", quiet=True)).print_result(_result())
    assert capsys.readouterr().out == "admin\n"


def test_command_keyword_shows_position(capsys):
    config = _config("FUZZ", quiet=True, command_keywords=["FUZZ"])
    Stdoutput(config).print_result(_result())
    assert capsys.readouterr().out == "7\n"


def test_print_result_multiline_verbose(capsys):
    result = _result(redirect_location="http://example.com/next")
    Stdoutput(_config("FUZZ", verbose=True)).print_result(result)
    out = capsys.readouterr().out
    assert f"{TERMINAL_CLEAR_LINE}| URL | http://example.com/admin\n" in out
    assert f"{TERMINAL_CLEAR_LINE}| --> | http://example.com/next\n" in out
    assert f"{TERMINAL_CLEAR_LINE}    * FUZZ: admin\n" in out


def test_print_result_multiline_scraper(capsys):
    result = _result(scraper_data={"title": ["Welcome"]})
    Stdoutput(_config("FUZZ")).print_result(result)
    out = capsys.readouterr().out
    assert f"{TERMINAL_CLEAR_LINE}| SCR |\n" in out
    assert f"{TERMINAL_CLEAR_LINE}    * title: Welcome\n" in out


def test_print_result_json(capsys):
    Stdoutput(_config("FUZZ", json=True)).print_result(_result())
    decoded = json.loads(capsys.readouterr().out)
    assert decoded["status"] == 200
    assert base64.b64decode(decoded["input"]["FUZZ"]) == b"admin"
    assert decoded["url"] == "http://example.com/admin"


def test_result_records_response(capsys):
    out = Stdoutput(_config("FUZZ"))
    request = Request(url="http://example.com/x", host="example.com", input={"FUZZ": b"x"}, position=2)
    response = Response(status_code=301, headers={"Location": ["/y"]}, request=request, content_length=9)
    out.result(response)
    assert len(out.current_results) == 1
    recorded = out.current_results[0]
    assert recorded.redirect_location == "/y"
    assert recorded.position == 2
    assert recorded.host == "example.com"
    assert recorded.input == {"FUZZ": b"x"}
    assert "[Status: 301, Size: 9" in capsys.readouterr().out


def test_result_writes_output_directory(tmp_path, capsys):
    directory = tmp_path / "dump"
    out = Stdoutput(_config("FUZZ", output_directory=str(directory)))
    request = Request(url="http://example.com/x", input={"FUZZ": b"x"}, raw="GET /x")
    out.result(Response(status_code=200, request=request, raw="HTTP/1.1 200 OK"))
    name = out.current_results[0].result_file
    content = (directory / name).read_bytes()
    assert "---- ↑ Request ---- Response ↓ ----".encode() in content
    assert content.startswith(b"GET /x\n")
    assert hashlib.md5(content).hexdigest() == name
    assert f"| RES | {name}" in capsys.readouterr().out


def test_save_file_json(tmp_path):
    out = Stdoutput(_config("FUZZ"))
    out.results.append(_result())
    out.current_results.append(_result(status_code=404))
    target = tmp_path / "out.json"
    out.save_file(str(target), "json")
    document = json.loads(target.read_text())
    assert [r["status"] for r in document["results"]] == [200, 404]


def test_save_file_skips_when_empty(tmp_path, capsys):
    out = Stdoutput(_config("FUZZ", output_skip_empty_file=True))
    target = tmp_path / "out.json"
    out.save_file(str(target), "json")
    assert not target.exists()
    assert "No results and -or defined, output file not written." in capsys.readouterr().err


def test_save_file_all_formats(tmp_path):
    base = str(tmp_path / "report")
    out = Stdoutput(_config("FUZZ", output_file=base, output_format="all"))
    out.results.append(_result())
    out.save_file(base, "all")
    for suffix in (".json", ".ejson", ".html", ".md", ".csv", ".ecsv"):
        assert os.path.exists(base + suffix)
    with open(base + ".json", encoding="utf-8") as fh:
        document = json.load(fh)
    assert [r["status"] for r in document["results"]] == [200]
    assert document["results"][0]["input"]["FUZZ"] == "admin"
    with open(base + ".csv", encoding="utf-8") as fh:
        csv_lines = fh.read().splitlines()
    assert csv_lines[0].startswith("FUZZ,url,")
    assert csv_lines[1].startswith("admin,http://example.com/admin,")
    with open(base + ".ecsv", encoding="utf-8") as fh:
        ecsv_lines = fh.read().splitlines()
    assert ecsv_lines[1].startswith(base64.b64encode(b"admin").decode() + ",")
    with open(base + ".md", encoding="utf-8") as fh:
        assert "http://example.com/admin" in fh.read()
    with open(base + ".html", encoding="utf-8") as fh:
        assert "http://example.com/admin" in fh.read()


def test_finalize_writes_output(tmp_path, capsys):
    target = tmp_path / "final.csv"
    out = Stdoutput(_config("FUZZ", output_file=str(target), output_format="csv"))
    out.results.append(_result())
    out.finalize()
    lines = target.read_text().splitlines()
    assert lines[0].startswith("FUZZ,url,")
    assert lines[1].startswith("admin,http://example.com/admin,")
    assert capsys.readouterr().err == "\n"


def test_banner(capsys):
    manager = MatcherManager()
    manager.add_matcher("status", "200")
    manager.add_filter("size", "42", False)
    config = _config("FUZZ", url="http://example.com/FUZZ", matcher_manager=manager)
    Stdoutput(config).banner()
    err = capsys.readouterr().err
    assert " :: Method           : GET\n" in err
    assert " :: URL              : http://example.com/FUZZ\n" in err
    assert " :: Wordlist         : FUZZ: words.txt\n" in err
    assert " :: Follow redirects : false\n" in err
    assert " :: Matcher          : Response status: 200\n" in err
    assert " :: Filter           : Response size: 42\n" in err


def test_progress(capsys):
    out = Stdoutput(_config("FUZZ"))
    out.progress(Progress(req_count=5, req_total=10, req_sec=3, queue_pos=1, queue_total=2))
    err = capsys.readouterr().err
    assert err.startswith(TERMINAL_CLEAR_LINE + ":: Progress: [5/10] :: Job [1/2] :: 0 req/sec")
    assert "Duration: [0:00:00] :: Errors: 0 ::" in err


def test_progress_quiet(capsys):
    Stdoutput(_config("FUZZ", quiet=True)).progress(Progress(req_count=1))
    assert capsys.readouterr().err == ""


@pytest.mark.parametrize("name", ["stdout", "anything"])
def test_new_output_provider(name):
    config = _config("FUZZ")
    provider = new_output_provider(name, config)
    assert isinstance(provider, Stdoutput)
    assert provider.config is config