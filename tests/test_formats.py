import base64
import csv
import json
from datetime import datetime

from webfuzz.formats import STATIC_HEADERS, result_to_json, to_csv, write_csv, write_ejson, write_json
from webfuzz.models import Config, InputProviderConfig, Result


def _result():
    return Result(
        input={"x": b"B", "FFUFHASH": b"A"},
        position=1,
        status_code=200,
        content_length=3,
        content_words=4,
        content_lines=5,
        content_type="application/json",
        redirect_location="http://no.pe",
        url="http://as.df",
        duration=123,
        result_file="resultfile",
        host="host",
    )


def _config():
    return Config(
        command_line="webfuzz -u http://as.df/FUZZ",
        url="http://as.df/FUZZ",
        input_providers=[InputProviderConfig(keyword="x", value="words.txt")],
    )


def test_to_csv():
    assert to_csv(_result()) == [
        "B",
        "http://as.df",
        "http://no.pe",
        "1",
        "200",
        "3",
        "4",
        "5",
        "application/json",
        "123ns",
        "resultfile",
        "A",
    ]


def test_write_csv_round_trip(tmp_path):
    path = tmp_path / "out.csv"
    write_csv(str(path), _config(), [_result()], False)
    with open(path, newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == ["x"] + STATIC_HEADERS
    assert rows[1] == to_csv(_result())
    assert len(rows) == 2


def test_write_csv_encoded(tmp_path):
    path = tmp_path / "out.ecsv"
    original = _result()
    write_csv(str(path), _config(), [original], True)
    with open(path, newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert base64.b64decode(rows[1][0]) == b"B"
    assert base64.b64decode(rows[1][-1]) == b"A"
    assert original.input == {"x": b"B", "FFUFHASH": b"A"}


def test_result_to_json():
    data = result_to_json(_result())
    assert data["input"] == {"FFUFHASH": "A", "x": "B"}
    assert data["status"] == 200
    assert data["duration"] == 123
    assert data["scraper"] is None
    scraped = _result()
    scraped.scraper_data = {"k": ["v"]}
    assert result_to_json(scraped)["scraper"] == {"k": ["v"]}


def test_write_json(tmp_path):
    path = tmp_path / "out.json"
    write_json(str(path), _config(), [_result()])
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["commandline"] == "webfuzz -u http://as.df/FUZZ"
    assert document["results"] == [result_to_json(_result())]
    assert document["config"]["url"] == "http://as.df/FUZZ"
    parsed = datetime.fromisoformat(document["time"].replace("Z", "+00:00"))
    assert parsed.tzinfo is not None


def test_write_ejson(tmp_path):
    path = tmp_path / "out.ejson"
    write_ejson(str(path), _config(), [_result()])
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["config"] is None
    assert document["results"] == [_result().to_dict()]
    assert base64.b64decode(document["results"][0]["input"]["x"]) == b"B"


def test_write_json_without_results(tmp_path):
    path = tmp_path / "empty.json"
    write_json(str(path), _config(), [])
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["results"] == []