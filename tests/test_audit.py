import pytest

from webfuzz.audit import AuditLogger
from webfuzz.models import Config, Request

EXPECTED_CONFIG = r"""{"Type":"webfuzz.Config","Data":{"auditlog":"","autocalibration":false,"autocalibration_keyword":"","autocalibration_perhost":false,"autocalibration_strategies":null,"autocalibration_strings":null,"colors":false,"cmdline":"","configfile":"","postdata":"{\"quote\":\"I'll still be here tomorrow to high five you yesterday, my friend. Peace.\"}","debuglog":"","delay":{"Min":0,"Max":0,"IsRange":false,"HasDelay":false},"dirsearch_compatibility":false,"encoders":null,"extensions":null,"fmode":"","follow_redirects":false,"headers":{"Content-Type":"application/json","baz":"wibble","foo":"bar"},"ignorebody":false,"ignore_wordlist_comments":false,"inputmode":"","cmd_inputnum":0,"inputproviders":null,"inputshell":"","json":false,"matchers":null,"mmode":"","maxtime":0,"maxtime_job":0,"method":"POST","noninteractive":false,"outputdirectory":"","outputfile":"","outputformat":"","OutputSkipEmptyFile":false,"proxyurl":"","quiet":false,"rate":0,"raw":false,"recursion":false,"recursion_depth":0,"recursion_strategy":"","replayproxyurl":"","requestfile":"","requestproto":"","scraperfile":"","scrapers":"","sni":"","stop_403":false,"stop_all":false,"stop_errors":false,"threads":0,"timeout":0,"url":"http://example.com/aaaa","verbose":false,"wordlists":null,"http2":false,"client-cert":"","client-key":""}}"""

EXPECTED_REQUEST = r"""{"Type":"webfuzz.Request","Data":{"Method":"POST","Host":"","Url":"http://example.com/aaaa","Headers":{"Content-Type":"application/json","baz":"wibble","foo":"bar"},"Data":"eyJxdW90ZSI6IkknbGwgc3RpbGwgYmUgaGVyZSB0b21vcnJvdyB0byBoaWdoIGZpdmUgeW91IHllc3RlcmRheSwgbXkgZnJpZW5kLiBQZWFjZS4ifQ==","Input":null,"Position":0,"Raw":"","Error":"","Timestamp":"0001-01-01T00:00:00Z"}}"""

QUOTE = '{"quote":"I\'ll still be here tomorrow to high five you yesterday, my friend. Peace."}'


def _objects():
    headers = {"foo": "bar", "baz": "wibble", "Content-Type": "application/json"}
    request = Request(method="POST", url="http://example.com/aaaa", headers=dict(headers), data=QUOTE.encode())
    config = Config(method="POST", url="http://example.com/aaaa", headers=dict(headers), data=QUOTE)
    return config, request


def test_audit_logger_creates_file(tmp_path):
    path = tmp_path / "audit.log"
    logger = AuditLogger(str(path))
    logger.close()
    assert path.exists()
    assert path.read_bytes() == b""


def test_audit_logger_unopenable_path(tmp_path):
    with pytest.raises(OSError):
        AuditLogger(str(tmp_path / "missing" / "audit.log"))


def test_audit_log_write(tmp_path):
    path = tmp_path / "audit.log"
    config, request = _objects()
    logger = AuditLogger(str(path))

    cyclic: dict = {}
    cyclic["a"] = cyclic
    with pytest.raises(ValueError):
        logger.write(cyclic)

    logger.write(config)
    logger.write(request)
    logger.close()

    assert path.read_text(encoding="utf-8") == EXPECTED_CONFIG + "\n" + EXPECTED_REQUEST + "\n"

    with pytest.raises(OSError):
        logger.write(config)


def test_audit_logger_appends_and_escapes(tmp_path):
    path = tmp_path / "audit.log"
    path.write_bytes(b"existing\n")
    with AuditLogger(str(path)) as logger:
        logger.write({"k": "<a&b>"})
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "existing"
    assert lines[1] == '{"Type":"builtins.dict","Data":{"k":"\\u003ca\\u0026b\\u003e"}}'