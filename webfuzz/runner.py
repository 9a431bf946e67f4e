"""Sending prepared requests over HTTP and turning the replies into responses."""

from __future__ import annotations

import gzip
import os
import re
import time
import warnings
import zlib
from datetime import datetime, timedelta, timezone
from typing import Mapping
from urllib.parse import urlsplit

import brotli
import requests
from requests.utils import get_environ_proxies

from webfuzz.models import Config, Request, Response
from webfuzz.stdout import VERSION

MAX_DOWNLOAD_SIZE = 5242880
"""Bodies announced as larger than this many bytes are not downloaded."""

USER_AGENT = f"Fuzz Faster U Fool v{VERSION}"

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_HTTP_VERSIONS = {10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2.0"}

warnings.filterwarnings("ignore", message="Unverified HTTPS request")


def _canonical_header_key(key: str) -> str:
    """Capitalise a header name (``x-foo`` becomes ``X-Foo``); leave invalid names alone."""
    if not key or any(char not in _TOKEN_CHARS for char in key):
        return key
    chars = []
    upper = True
    for char in key:
        chars.append(char.upper() if upper else char.lower())
        upper = char == "-"
    return "".join(chars)


def _text(data: bytes) -> str:
    return data.decode("utf-8", "replace")


def _first(headers: Mapping[str, list[str]], name: str) -> str:
    values = headers.get(name) or []
    return values[0] if values else ""


def _decode_body(encoding: str, body: bytes) -> bytes | None:
    """Undo the content encoding; None means the body could not be read."""
    if encoding == "gzip":
        try:
            return gzip.decompress(body)
        except (OSError, EOFError, zlib.error):
            return body
    if encoding == "br":
        try:
            return brotli.decompress(body)
        except brotli.error:
            return None
    if encoding == "deflate":
        try:
            return zlib.decompress(body, -zlib.MAX_WBITS)
        except zlib.error:
            return None
    return body


class SimpleRunner:
    """Runs one request at a time with a shared HTTP session."""

    def __init__(self, config: Config, replay: bool):
        self.config = config
        custom_proxy = config.replay_proxy_url if replay else config.proxy_url
        self.proxies: dict[str, str] | None = (
            {"http": custom_proxy, "https": custom_proxy} if custom_proxy else None
        )
        self.cert: tuple[str, str] | None = None
        if config.client_cert and config.client_key:
            if os.path.isfile(config.client_cert) and os.path.isfile(config.client_key):
                self.cert = (config.client_cert, config.client_key)
        self.timeout: float | None = config.timeout if config.timeout > 0 else None
        self.session = requests.Session()
        self.session.headers.clear()
        self.session.headers["Accept-Encoding"] = "gzip"

    def prepare(self, inputs: Mapping[str, bytes], base_request: Request) -> Request:
        """Return a copy of ``base_request`` with every keyword replaced by its input."""
        request = base_request.copy()
        for keyword, item in inputs.items():
            value = _text(item)
            request.method = request.method.replace(keyword, value)
            request.headers = {
                _canonical_header_key(name.replace(keyword, value)): header.replace(keyword, value)
                for name, header in request.headers.items()
            }
            request.url = request.url.replace(keyword, value)
            request.data = request.data.replace(keyword.encode("utf-8"), item)
        request.input = dict(inputs)
        return request

    def _build(self, request: Request) -> requests.PreparedRequest:
        request.headers.setdefault("User-Agent", USER_AGENT)
        prepared = self.session.prepare_request(
            requests.Request(
                method=request.method,
                url=request.url,
                headers=dict(request.headers),
                data=request.data or None,
            )
        )
        prepared.method = request.method
        if self.config.raw:
            prepared.url = request.url
        request.host = request.headers.get("Host") or urlsplit(prepared.url).netloc
        return prepared

    def _dump_prepared(self, prepared: requests.PreparedRequest, host: str) -> bytes:
        target = prepared.url if self.config.raw else prepared.path_url
        lines = [f"{prepared.method} {target} HTTP/1.1", f"Host: {host}"]
        lines.extend(
            f"{name}: {value}" for name, value in prepared.headers.items() if name.lower() != "host"
        )
        body = prepared.body or b""
        if isinstance(body, str):
            body = body.encode("utf-8")
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + body

    def _proxies_for(self, url: str) -> dict[str, str]:
        if self.proxies is not None:
            return dict(self.proxies)
        return get_environ_proxies(url)

    def execute(self, request: Request) -> Response:
        """Send ``request`` and return the response; transport problems raise RequestException."""
        config = self.config
        prepared = self._build(request)
        keep_raw = bool(config.output_directory or config.audit_log)
        raw_request = ""
        if keep_raw:
            raw_request = _text(self._dump_prepared(prepared, request.host))
            request.raw = raw_request

        start = datetime.now(timezone.utc)
        started_ns = time.perf_counter_ns()
        http_response = self.session.send(
            prepared,
            stream=True,
            timeout=self.timeout,
            allow_redirects=config.follow_redirects,
            proxies=self._proxies_for(prepared.url),
            verify=False,
            cert=self.cert,
        )
        first_byte = time.perf_counter_ns() - started_ns
        request.timestamp = start

        try:
            raw = http_response.raw
            headers: dict[str, list[str]] = {}
            for name in raw.headers:
                headers.setdefault(_canonical_header_key(name), []).extend(raw.headers.getlist(name))
            response = Response(
                status_code=http_response.status_code,
                headers=headers,
                content_type=_first(headers, "Content-Type"),
                request=request,
            )

            announced = _first(headers, "Content-Length").strip()
            if _INTEGER_RE.fullmatch(announced):
                size = int(announced)
                response.content_length = size
                if config.ignore_body or size > MAX_DOWNLOAD_SIZE:
                    response.cancelled = True
                    return response

            try:
                body: bytes | None = raw.read(decode_content=False)
            except Exception:  # any transport failure leaves the body unread
                body = None

            if keep_raw:
                version = _HTTP_VERSIONS.get(getattr(raw, "version", 11), "HTTP/1.1")
                lines = [f"{version} {http_response.status_code} {http_response.reason or ''}".rstrip()]
                lines.extend(f"{name}: {value}" for name, values in headers.items() for value in values)
                request.raw = raw_request
                response.raw = "\r\n".join(lines) + "\r\n\r\n" + _text(body or b"")

            if body is not None:
                data = _decode_body(_first(headers, "Content-Encoding"), body)
                if data is not None:
                    response.content_length = len(data)
                    response.data = data
        finally:
            http_response.close()

        response.content_words = len(response.data.split(b" "))
        response.content_lines = len(response.data.split(b"\n"))
        response.duration = first_byte
        response.timestamp = start + timedelta(microseconds=first_byte / 1000)
        return response

    def dump(self, request: Request) -> bytes:
        """Return the request as it would be written on the wire."""
        prepared = self._build(request)
        return self._dump_prepared(prepared, request.host)


def new_runner(name: str, config: Config, replay: bool) -> SimpleRunner:
    """Return the runner for ``name``; the simple runner is the only one."""
    return SimpleRunner(config, replay)