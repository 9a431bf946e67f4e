# webfuzz

`webfuzz` is a library of the parts a web fuzzing job is built from: payload
inputs, an HTTP runner, response filters and matchers, scrapers, and output to
the terminal and to result files. You write the loop that ties them together.

## Modules

- `webfuzz.models`: the shared data types. `Config` holds the job settings,
  `InputProviderConfig` describes one keyword source, and `Request`,
  `Response` and `Result` carry a request, its reply and a kept result.
  `Progress`, `Delay`, `ScraperResult`, `ValueRange`, `parse_value_range()`
  and `format_duration()` are also here.
- `webfuzz.inputs`: `WordlistInput` reads words from a file, or from standard
  input when the path is `-`. `CommandInput` runs a shell command for each
  position, with the position in the `FFUF_NUM` environment variable, up to
  `Config.input_num` times. `MainInputProvider` combines the sources in
  `clusterbomb` or `sniper` mode, which give every combination, or in
  `pitchfork` mode, which moves all lists in lockstep. `new_input_provider()`
  builds the combined provider and raises `InputError` listing every problem.
  A wordlist can do several things to its words:
  - with `ignore_wordlist_comments`, it drops `#` lines and trailing ` #`
    comments (see `strip_comments()`);
  - for the `FUZZ` keyword, it appends each word again with every extension;
  - with `dirsearch_compat`, it replaces `%ext%` with each extension.

  Each source can also carry an encoder chain (`InputProviderConfig.encoders`,
  space separated). The encoders are `b64encode`, `b64decode`, `hexencode`,
  `hexdecode`, `urlencode`, `urldecode`, `htmlescape`, `htmlunescape`, `md5`,
  `sha1`, `sha224`, `sha256`, `sha384` and `sha512`.
- `webfuzz.runner`: `SimpleRunner.prepare()` puts the inputs into a copy of a
  base `Request`, in the method, header names and values, URL and body.
  `SimpleRunner.execute()` sends the request with `requests` and does not
  verify TLS. It follows redirects only when `follow_redirects` is set. It
  records status, size, word and line counts and time to first byte, and
  decodes gzip, deflate and brotli bodies. Bodies announced as larger than
  `MAX_DOWNLOAD_SIZE`, or any body when `ignore_body` is set, are not
  downloaded. `SimpleRunner.dump()` returns the request as raw bytes.
  `new_runner()` returns a `SimpleRunner`.
- `webfuzz.filters`: `StatusFilter`, `SizeFilter`, `WordFilter`, `LineFilter`,
  `RegexpFilter` and `TimeFilter`, created by name with
  `new_filter_by_name()`. `MatcherManager` holds matchers, global filters and
  per-domain filters. Invalid values raise `FilterError`.
- `webfuzz.scraper`: `ScraperRule`, `ScraperGroup` and `Scraper` pull values
  out of responses with regular expressions (`type: "regexp"`) or CSS
  selectors (`type: "query"`). Rules can read the body, the headers, or both.
  `from_dir()` loads the active groups of a directory and returns
  `(scraper, errors)`. `Scraper.append_from_file()` adds one group file.
- `webfuzz.stdout`: `Stdoutput` prints results, progress, the banner and
  `info`/`warning`/`error` messages. With `output_directory` set, it writes
  each request/response pair to a file. `save_file()` writes results in the
  format `json`, `ejson`, `html`, `md`, `csv`, `ecsv` or `all`.
  `new_output_provider()` returns a `Stdoutput`.
- `webfuzz.formats` and `webfuzz.reports`: the CSV/JSON and HTML/Markdown
  writers used by `save_file()`.
- `webfuzz.audit`: `AuditLogger` appends one JSON record per line. Each record
  has the form `{"Type": ..., "Data": ...}`. It is also a context manager.

## Installation

```
pip install webfuzz
```

## Example

```python
from webfuzz.models import Config, InputProviderConfig, Request
from webfuzz.filters import MatcherManager
from webfuzz.inputs import new_input_provider
from webfuzz.runner import new_runner
from webfuzz.stdout import new_output_provider

config = Config(
    url="http://localhost:8000/FUZZ",
    method="GET",
    input_mode="clusterbomb",
    input_providers=[InputProviderConfig(name="wordlist", keyword="FUZZ", value="words.txt")],
)

matchers = MatcherManager()
matchers.add_matcher("status", "200-299,301,302")
matchers.add_filter("size", "0", False)
config.matcher_manager = matchers

inputs = new_input_provider(config)
runner = new_runner("simple", config, False)
output = new_output_provider("stdout", config)

base = Request(method=config.method, url=config.url, headers={})
while inputs.advance():
    request = runner.prepare(inputs.value(), base)
    response = runner.execute(request)
    matched = any(m.filter(response) for m in matchers.matchers.values())
    filtered = any(f.filter(response) for f in matchers.filters_for_domain(request.host).values())
    if matched and not filtered:
        output.result(response)

output.save_file("results.json", "json")
```

`execute()` lets `requests` exceptions through for transport failures. Catch
them in your loop if one failed request should not stop the run.

## Filter syntax

- Status, size, word and line filters take comma-separated numbers or ranges,
  such as `200,301,400-410`. The status filter also takes `all`.
- Word and line counts are the number of pieces the body splits into on
  spaces or on newlines.
- Time filters take `>N` or `<N`, where N is in milliseconds.
- Regexp filters take a pattern, matched against the headers and the body.
  Any input keyword inside the pattern is first replaced by the escaped
  payload.
- Adding a filter or matcher with a name that is already present extends its
  value with the new one. For filters, pass `replace=True` to overwrite it
  instead.

## What the package does not do

There is no command-line program: you build the `Config` yourself. The package
has no:

- option or config-file parsing;
- interactive pause/resume console;
- job queue, recursion or auto-calibration logic;
- rate limiting, threading or request delay.

`Config` has fields for several of these settings, but nothing in the package
acts on them.

## Running the tests

```
pip install -e .[test]
pytest
```