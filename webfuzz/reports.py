"""HTML and Markdown result reports."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from jinja2 import Environment

from webfuzz.formats import _now_rfc3339
from webfuzz.models import Config, Result, format_duration

_HASH_KEYWORD = "FFUFHASH"
_UNSAFE_URL = "#ZgotmplZ"
_SAFE_SCHEMES = ("http", "https", "mailto")
_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")

_TEMPLATE_ESCAPES = {
    "\0": "\ufffd",
    '"': "&#34;",
    "&": "&amp;",
    "'": "&#39;",
    "+": "&#43;",
    "<": "&lt;",
    ">": "&gt;",
}
_TEMPLATE_ESCAPE_RE = re.compile("[\0\"&'+<>]")

_HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
  <head>
    <meta http-equiv="Content-Type" content="text/html; charset=UTF-8" />
    <meta
      name="viewport"
      content="width=device-width, initial-scale=1, maximum-scale=1.0"
    />
    <title>FFUF Report - </title>
  </head>

  <body>
    <nav>
      <div class="nav-wrapper">
        <a href="#" class="brand-logo">FFUF</a>
      </div>
    </nav>

    <main class="section no-pad-bot" id="index-banner">
      <div class="container">
        <br /><br />
        <h1 class="header center ">FFUF Report</h1>
        <div class="row center">

		<pre>{{ command_line }}</pre>
		<pre>{{ time }}</pre>

   <table id="ffufreport">
        <thead>
        <div style="display:none">
|result_raw|StatusCode{% for key in keys %}|{{ key }}{% endfor %}|Url|RedirectLocation|Position|ContentLength|ContentWords|ContentLines|ContentType|Duration|Resultfile|ScraperData|FfufHash|
        </div>
          <tr>
              <th>Status</th>
{% for key in keys %}              <th>{{ key }}</th>{% endfor %}
			  <th>URL</th>
			  <th>Redirect location</th>
              <th>Position</th>
              <th>Length</th>
              <th>Words</th>
			  <th>Lines</th>
			  <th>Type</th>
              <th>Duration</th>
			  <th>Resultfile</th>
              <th>Scraper data</th>
              <th>Ffuf Hash</th>
          </tr>
        </thead>

        <tbody>
			{% for r in results %}
                <div style="display:none">
|result_raw|{{ r.status_code }}{% for value in r.inputs %}|{{ value }}{% endfor %}|{{ r.url }}|{{ r.redirect_location }}|{{ r.position }}|{{ r.content_length }}|{{ r.content_words }}|{{ r.content_lines }}|{{ r.content_type }}|{{ r.duration }}|{{ r.result_file }}|{{ r.scraper_data }}|{{ r.ffufhash }}|
                </div>
                <tr class="result-{{ r.status_code }}" style="background-color: {{ r.html_color }};">
                    <td><font color="black" class="status-code">{{ r.status_code }}</font></td>
                    {% for value in r.inputs %}
                        <td>{{ value }}</td>
                    {% endfor %}
                    <td><a href="{{ r.url | safe_url }}">{{ r.url }}</a></td>
                    <td><a href="{{ r.redirect_location | safe_url }}">{{ r.redirect_location }}</a></td>
                    <td>{{ r.position }}</td>
                    <td>{{ r.content_length }}</td>
                    <td>{{ r.content_words }}</td>
					<td>{{ r.content_lines }}</td>
					<td>{{ r.content_type }}</td>
					<td>{{ r.duration }}</td>
                    <td>{{ r.result_file }}</td>
					<td>{{ r.scraper_data }}</td>
					<td>{{ r.ffufhash }}</td>
                </tr>
            {% endfor %}
        </tbody>
      </table>

        </div>
        <br /><br />
      </div>
    </main>

    <style>
      body {
        display: flex;
        min-height: 100vh;
        flex-direction: column;
      }

      main {
        flex: 1 0 auto;
      }
    </style>
  </body>
</html>

	"""

_MARKDOWN_TEMPLATE = (
    "# FFUF Report\n"
    "\n"
    "  Command line : `{{ command_line }}`\n"
    "  Time: {{ time }}\n"
    "\n"
    "  {% for key in keys %}| {{ key }} {% endfor %}| URL | Redirectlocation | Position | Status Code"
    " | Content Length | Content Words | Content Lines | Content Type | Duration | ResultFile"
    " | ScraperData | Ffufhash\n"
    "  {% for key in keys %}| :- {% endfor %}| :-- | :--------------- | :---- | :------- | :---------- "
    "| :------------- | :------------ | :--------- | :----------- | :------------ | :-------- |\n"
    "  {% for r in results %}{% for value in r.inputs %}| {{ value }} {% endfor %}| {{ r.url }}"
    " | {{ r.redirect_location }} | {{ r.position }} | {{ r.status_code }} | {{ r.content_length }}"
    " | {{ r.content_words }} | {{ r.content_lines }} | {{ r.content_type }} | {{ r.duration }}"
    " | {{ r.result_file }} | {{ r.scraper_data }} | {{ r.ffufhash }}\n"
    "  {% endfor %}"
)


def _template_escape(value: object) -> str:
    text = "" if value is None else str(value)
    return _TEMPLATE_ESCAPE_RE.sub(lambda match: _TEMPLATE_ESCAPES[match[0]], text)


def _safe_url(url: str) -> str:
    match = _SCHEME_RE.match(url)
    if match and match[1].lower() not in _SAFE_SCHEMES:
        return _UNSAFE_URL
    return url


def _escape_html(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("'", "&#39;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&#34;")
    )


def _environment() -> Environment:
    env = Environment(autoescape=False, finalize=_template_escape, keep_trailing_newline=True)
    env.filters["safe_url"] = _safe_url
    return env


_ENV = _environment()


@dataclass
class _ReportRow:
    inputs: list[str] = field(default_factory=list)
    position: int = 0
    status_code: int = 0
    content_length: int = 0
    content_words: int = 0
    content_lines: int = 0
    content_type: str = ""
    redirect_location: str = ""
    scraper_data: str = ""
    duration: str = ""
    result_file: str = ""
    url: str = ""
    host: str = ""
    html_color: str = ""
    ffufhash: str = ""


def html_color(status: int) -> str:
    """Return the row background colour used for a status code."""
    if 200 <= status <= 299:
        return "#adea9e"
    if 300 <= status <= 399:
        return "#bbbbe6"
    if 400 <= status <= 499:
        return "#d2cb7e"
    if 500 <= status <= 599:
        return "#de8dc1"
    return "black"


def _text(data: bytes) -> str:
    return data.decode("utf-8", "replace")


def _scraper_html(scraper_data: dict[str, list[str]], escape: bool) -> str:
    quote = _escape_html if escape else (lambda text: text)
    parts = []
    for name in sorted(scraper_data):
        values = scraper_data[name]
        if values:
            joined = "<br />".join(quote(value) for value in values)
            parts.append(f"<p><b>{quote(name)}:</b><br />{joined}</p>")
    return "".join(parts)


def _row(result: Result, ffufhash: str, scraper: str, color: str) -> _ReportRow:
    inputs = {key: _text(value) for key, value in result.input.items() if key != _HASH_KEYWORD}
    return _ReportRow(
        inputs=[inputs[key] for key in sorted(inputs)],
        position=result.position,
        status_code=result.status_code,
        content_length=result.content_length,
        content_words=result.content_words,
        content_lines=result.content_lines,
        content_type=result.content_type,
        redirect_location=result.redirect_location,
        scraper_data=scraper,
        duration=format_duration(result.duration),
        result_file=result.result_file,
        url=result.url,
        host=result.host,
        html_color=color,
        ffufhash=ffufhash,
    )


def _render(template: str, filename: str, config: Config, rows: list[_ReportRow]) -> None:
    content = _ENV.from_string(template).render(
        command_line=config.command_line,
        time=_now_rfc3339(),
        keys=[provider.keyword for provider in config.input_providers],
        results=rows,
    )
    with open(filename, "w", encoding="utf-8", newline="") as handle:
        handle.write(content)


def write_html(filename: str, config: Config, results: Iterable[Result]) -> None:
    """Write an HTML report with one colour-coded table row per result."""
    rows = []
    for result in results:
        hash_value = result.input.get(_HASH_KEYWORD)
        ffufhash = _text(hash_value) if hash_value is not None else ""
        rows.append(
            _row(
                result,
                ffufhash,
                _scraper_html(result.scraper_data, escape=True),
                html_color(result.status_code),
            )
        )
    _render(_HTML_TEMPLATE, filename, config, rows)


def write_markdown(filename: str, config: Config, results: Iterable[Result]) -> None:
    """Write a Markdown table report.

    The hash column keeps the last hash seen for results that carry none.
    """
    rows = []
    ffufhash = ""
    for result in results:
        hash_value = result.input.get(_HASH_KEYWORD)
        if hash_value is not None:
            ffufhash = _text(hash_value)
        rows.append(_row(result, ffufhash, _scraper_html(result.scraper_data, escape=False), ""))
    _render(_MARKDOWN_TEMPLATE, filename, config, rows)