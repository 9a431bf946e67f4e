"""Terminal output of results, progress and messages, and saving of result files."""

from __future__ import annotations

import hashlib
import os
import sys
from datetime import datetime, timezone

from webfuzz.audit import _marshal
from webfuzz.formats import write_csv, write_ejson, write_json
from webfuzz.models import Config, Progress, Request, Response, Result
from webfuzz.reports import write_html, write_markdown

if os.name == "nt":
    TERMINAL_CLEAR_LINE = "\r\r"
    ANSI_CLEAR = ""
    ANSI_RED = ""
    ANSI_GREEN = ""
    ANSI_BLUE = ""
    ANSI_YELLOW = ""
else:
    TERMINAL_CLEAR_LINE = "\r\x1b[2K"
    ANSI_CLEAR = "\x1b[0m"
    ANSI_RED = "\x1b[31m"
    ANSI_GREEN = "\x1b[32m"
    ANSI_BLUE = "\x1b[34m"
    ANSI_YELLOW = "\x1b[33m"

VERSION = "2.1.0"

BANNER_HEADER = r"""
        /'___\  /'___\           /'___\       
       /\ \__/ /\ \__/  __  __  /\ \__/       
       \ \ ,__\\ \ ,__\/\ \/\ \ \ \ ,__\      
        \ \ \_/ \ \ \_/\ \ \_\ \ \ \ \_/      
         \ \_\   \ \_\  \ \____/  \ \_\       
          \/_/    \/_/   \/___/    \/_/       
"""
BANNER_SEP = "________________________________________________"

_ALL_SUFFIXES = ".{json,ejson,html,md,csv,ecsv}"


def _stderr(text: str) -> None:
    sys.stderr.write(text)
    sys.stderr.flush()


def _print_option(name: str, value: str) -> None:
    _stderr(f" :: {name:<16} : {value}\n")


def _text(data: bytes) -> str:
    return data.decode("utf-8", "replace")


def _milliseconds(nanoseconds: int) -> int:
    millis = abs(nanoseconds) // 1_000_000
    return -millis if nanoseconds < 0 else millis


class Stdoutput:
    """Writes results and status messages to the terminal and collects results for files."""

    def __init__(self, config: Config):
        self.config = config
        self.results: list[Result] = []
        self.current_results: list[Result] = []
        self.fuzz_keywords = sorted(provider.keyword for provider in config.input_providers)

    def banner(self) -> None:
        """Print the banner with a summary of the job configuration."""
        config = self.config
        version = VERSION.replace("<3", f"{ANSI_RED}<3{ANSI_CLEAR}")
        _stderr(f"{BANNER_HEADER}\n       v{version}\n{BANNER_SEP}\n\n")
        _print_option("Method", config.method)
        _print_option("URL", config.url)
        for provider in config.input_providers:
            if provider.name == "wordlist":
                _print_option("Wordlist", f"{provider.keyword}: {provider.value}")
        for name, value in config.headers.items():
            _print_option("Header", f"{name}: {value}")
        if config.data:
            _print_option("Data", config.data)
        if config.extensions:
            _print_option("Extensions", "".join(f"{ext} " for ext in config.extensions))
        if config.output_file:
            output_file = config.output_file
            if config.output_format == "all":
                output_file += _ALL_SUFFIXES
            _print_option("Output file", output_file)
            _print_option("File format", config.output_format)
        _print_option("Follow redirects", str(config.follow_redirects).lower())
        _print_option("Calibration", str(config.auto_calibration).lower())
        if config.proxy_url:
            _print_option("Proxy", config.proxy_url)
        if config.replay_proxy_url:
            _print_option("ReplayProxy", config.replay_proxy_url)
        _print_option("Timeout", str(config.timeout))
        _print_option("Threads", str(config.threads))
        delay = config.delay
        if delay.has_delay:
            if delay.is_range:
                text = f"{delay.min:.2f} - {delay.max:.2f} seconds"
            else:
                text = f"{delay.min:.2f} seconds"
            _print_option("Delay", text)
        manager = config.matcher_manager
        if manager is not None:
            for matcher in manager.matchers.values():
                _print_option("Matcher", matcher.repr_verbose())
            for filt in manager.filters.values():
                _print_option("Filter", filt.repr_verbose())
        _stderr(f"{BANNER_SEP}\n\n")

    def reset(self) -> None:
        """Clear the results of the current job."""
        self.current_results = []

    def cycle(self) -> None:
        """Move the current job's results to the kept results."""
        self.results.extend(self.current_results)
        self.reset()

    def progress(self, status: Progress) -> None:
        if self.config.quiet:
            return
        started = status.started_at
        now = datetime.now(timezone.utc) if started.tzinfo is not None else datetime.now()
        elapsed = now - started
        total_seconds = int(elapsed.total_seconds())
        req_rate = status.req_sec if total_seconds > 0 else 0
        hours, rest = divmod(total_seconds, 3600)
        mins, secs = divmod(rest, 60)
        _stderr(
            f"{TERMINAL_CLEAR_LINE}:: Progress: [{status.req_count}/{status.req_total}] :: "
            f"Job [{status.queue_pos}/{status.queue_total}] :: {req_rate} req/sec :: "
            f"Duration: [{hours}:{mins:02d}:{secs:02d}] :: Errors: {status.error_count} ::"
        )

    def _message(self, label: str, color: str, message: str, trailer: str) -> None:
        if self.config.quiet:
            _stderr(message)
        elif not self.config.colors:
            _stderr(f"{TERMINAL_CLEAR_LINE}[{label}] {message}{trailer}")
        else:
            _stderr(f"{TERMINAL_CLEAR_LINE}[{color}{label}{ANSI_CLEAR}] {message}{trailer}")

    def info(self, message: str) -> None:
        self._message("INFO", ANSI_BLUE, message, "\n\n")

    def error(self, message: str) -> None:
        self._message("ERR", ANSI_RED, message, "\n")

    def warning(self, message: str) -> None:
        self._message("WARN", ANSI_RED, message, "\n")

    def raw(self, output: str) -> None:
        _stderr(f"{TERMINAL_CLEAR_LINE}{output}")

    def _write_to_all(self, results: list[Result]) -> None:
        base = self.config.output_file
        writers = (
            (".json", lambda name: write_json(name, self.config, results)),
            (".ejson", lambda name: write_ejson(name, self.config, results)),
            (".html", lambda name: write_html(name, self.config, results)),
            (".md", lambda name: write_markdown(name, self.config, results)),
            (".csv", lambda name: write_csv(name, self.config, results, False)),
            (".ecsv", lambda name: write_csv(name, self.config, results, True)),
        )
        for suffix, writer in writers:
            self.config.output_file = base + suffix
            try:
                writer(self.config.output_file)
            except (OSError, ValueError) as err:
                self.error(str(err))

    def save_file(self, filename: str, format: str) -> None:
        """Save all results to ``filename`` in ``format``; ``all`` writes every format."""
        if self.config.output_skip_empty_file and not self.results:
            self.info("No results and -or defined, output file not written.")
            return
        results = self.results + self.current_results
        if format == "all":
            self._write_to_all(results)
        elif format == "json":
            write_json(filename, self.config, results)
        elif format == "ejson":
            write_ejson(filename, self.config, results)
        elif format == "html":
            write_html(filename, self.config, results)
        elif format == "md":
            write_markdown(filename, self.config, results)
        elif format == "csv":
            write_csv(filename, self.config, results, False)
        elif format == "ecsv":
            write_csv(filename, self.config, results, True)

    def finalize(self) -> None:
        """Write the configured output file once all jobs are done."""
        if self.config.output_file:
            try:
                self.save_file(self.config.output_file, self.config.output_format)
            except (OSError, ValueError) as err:
                self.error(str(err))
        if not self.config.quiet:
            _stderr("\n")

    def result(self, response: Response) -> None:
        """Record a matched response and print it."""
        request = response.request if response.request is not None else Request()
        if self.config.output_directory:
            response.result_file = self._write_result_to_file(response, request)
        result = Result(
            input=dict(request.input),
            position=request.position,
            status_code=response.status_code,
            content_length=response.content_length,
            content_words=response.content_words,
            content_lines=response.content_lines,
            content_type=response.content_type,
            redirect_location=response.redirect_location(False),
            scraper_data=response.scraper_data,
            url=request.url,
            duration=response.duration,
            result_file=response.result_file,
            host=request.host,
        )
        self.current_results.append(result)
        self.print_result(result)

    def _write_result_to_file(self, response: Response, request: Request) -> str:
        directory = self.config.output_directory
        try:
            os.makedirs(directory, mode=0o750, exist_ok=True)
        except OSError as err:
            self.error(str(err))
            return ""
        content = f"{request.raw}\n---- ↑ Request ---- Response ↓ ----\n\n{response.raw}".encode("utf-8")
        name = hashlib.md5(content).hexdigest()
        try:
            with open(os.path.join(directory, name), "wb") as handle:
                handle.write(content)
            os.chmod(os.path.join(directory, name), 0o640)
        except OSError as err:
            self.error(str(err))
        return name

    def print_result(self, result: Result) -> None:
        config = self.config
        if config.json:
            self._result_json(result)
        elif config.quiet:
            print(self._inputs_one_line(result))
        elif (
            len(self.fuzz_keywords) > 1
            or config.verbose
            or config.output_directory
            or result.scraper_data
        ):
            self._result_multiline(result)
        else:
            self._result_normal(result)

    def _input_text(self, keyword: str, result: Result) -> str:
        if keyword in self.config.command_keywords:
            return str(result.position)
        return _text(result.input.get(keyword, b""))

    def _inputs_one_line(self, result: Result) -> str:
        if len(self.fuzz_keywords) > 1:
            return "".join(f"{k} : {self._input_text(k, result)} " for k in self.fuzz_keywords)
        inputs = ""
        for keyword in self.fuzz_keywords:
            inputs = self._input_text(keyword, result)
        return inputs

    def _stats(self, result: Result) -> str:
        return (
            f"[Status: {result.status_code}, Size: {result.content_length}, "
            f"Words: {result.content_words}, Lines: {result.content_lines}, "
            f"Duration: {_milliseconds(result.duration)}ms]"
        )

    def _result_multiline(self, result: Result) -> None:
        header = f"{TERMINAL_CLEAR_LINE}{self._colorize(result.status_code)}{self._stats(result)}{ANSI_CLEAR}"
        lines = []
        if self.config.verbose:
            lines.append(f"{TERMINAL_CLEAR_LINE}| URL | {result.url}\n")
            if result.redirect_location:
                lines.append(f"{TERMINAL_CLEAR_LINE}| --> | {result.redirect_location}\n")
        if result.result_file:
            lines.append(f"{TERMINAL_CLEAR_LINE}| RES | {result.result_file}\n")
        for keyword in self.fuzz_keywords:
            lines.append(f"{TERMINAL_CLEAR_LINE}    * {keyword}: {self._input_text(keyword, result)}\n")
        if result.scraper_data:
            lines.append(f"{TERMINAL_CLEAR_LINE}| SCR |\n")
            for name, values in result.scraper_data.items():
                for value in values:
                    lines.append(f"{TERMINAL_CLEAR_LINE}    * {name}: {value}\n")
        sys.stdout.write(f"{header}\n{''.join(lines)}\n")
        sys.stdout.flush()

    def _result_normal(self, result: Result) -> None:
        inputs = self._inputs_one_line(result)
        print(
            f"{TERMINAL_CLEAR_LINE}{self._colorize(result.status_code)}{inputs:<23} "
            f"{self._stats(result)}{ANSI_CLEAR}"
        )

    def _result_json(self, result: Result) -> None:
        try:
            encoded = _marshal(result.to_dict()).decode("utf-8")
        except (TypeError, ValueError) as err:
            self.error(str(err))
            return
        _stderr(TERMINAL_CLEAR_LINE)
        print(encoded)

    def _colorize(self, status: int) -> str:
        if not self.config.colors:
            return ""
        if 200 <= status < 300:
            return ANSI_GREEN
        if 300 <= status < 400:
            return ANSI_BLUE
        if 400 <= status < 500:
            return ANSI_YELLOW
        if 500 <= status < 600:
            return ANSI_RED
        return ANSI_CLEAR


def new_output_provider(name: str, config: Config) -> Stdoutput:
    """Return the output provider for ``name``; the terminal output is the only one."""
    return Stdoutput(config)