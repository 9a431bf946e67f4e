"""Input providers: wordlists, external commands and the provider that combines them."""

from __future__ import annotations

import base64
import binascii
import hashlib
import html
import os
import re
import subprocess
import sys
from collections.abc import Callable, Iterable, Iterator
from typing import BinaryIO, Union
from urllib.parse import quote_plus, unquote_to_bytes

from webfuzz.models import Config, InputProviderConfig

if os.name == "nt":
    SHELL_CMD = "cmd.exe"
    SHELL_ARG = "/C"
else:
    SHELL_CMD = "/bin/sh"
    SHELL_ARG = "-c"

INPUT_MODES = ("clusterbomb", "pitchfork", "sniper")
_EXT_RE = re.compile(r"%ext%", re.IGNORECASE)


class InputError(Exception):
    """Raised when input providers cannot be set up; ``errors`` holds every problem found."""

    def __init__(self, errors: Union[str, Iterable[object]]):
        self.errors = [errors] if isinstance(errors, str) else [str(err) for err in errors]
        super().__init__("\n".join(self.errors))


def strip_comments(text: str) -> str | None:
    """Remove a trailing `` #`` comment; return None when the whole line is a comment."""
    if text.lstrip(" ").startswith("#"):
        return None
    index = text.find(" #")
    return text if index == -1 else text[:index]


def _decode(line: bytes) -> str:
    return line.decode("utf-8", "surrogateescape")


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def _scan_lines(stream: BinaryIO) -> Iterator[bytes]:
    for line in stream:
        if line.endswith(b"\n"):
            line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
        yield line


class WordlistInput:
    """Words read from a file, or from standard input when the path is ``-``."""

    def __init__(self, keyword: str, value: str, config: Config):
        self.keyword = keyword
        self.config = config
        self.active = True
        self.position = 0
        self.data: list[bytes] = []
        if value == "-":
            self.data = self._read(_scan_lines(sys.stdin.buffer))
        else:
            with open(value, "rb") as handle:
                self.data = self._read(_scan_lines(handle))

    def _read(self, lines: Iterable[bytes]) -> list[bytes]:
        config = self.config
        extensions = list(config.extensions)
        words: list[bytes] = []
        for raw in lines:
            text = _decode(raw)
            if config.dirsearch_compat and extensions and _EXT_RE.search(text):
                words.extend(_encode(_EXT_RE.sub(lambda _m, ext=ext: ext, text)) for ext in extensions)
                continue
            if config.ignore_wordlist_comments:
                stripped = strip_comments(text)
                if stripped is None:
                    continue
                text = stripped
            words.append(_encode(text))
            if not config.dirsearch_compat and self.keyword == "FUZZ" and extensions:
                words.extend(_encode(text + ext) for ext in extensions)
        return words

    def reset_position(self) -> None:
        self.position = 0

    def increment_position(self) -> None:
        self.position += 1

    def has_next(self) -> bool:
        """Tell whether there are words left at the current position."""
        return self.position < len(self.data)

    def value(self) -> bytes:
        return self.data[self.position]

    def total(self) -> int:
        return len(self.data)

    def enable(self) -> None:
        self.active = True

    def disable(self) -> None:
        self.active = False


class CommandInput:
    """Inputs produced by running a shell command; ``FFUF_NUM`` holds the position."""

    def __init__(self, keyword: str, command: str, config: Config):
        self.keyword = keyword
        self.command = command
        self.config = config
        self.active = True
        self.position = 0
        self.shell = config.input_shell or SHELL_CMD

    def reset_position(self) -> None:
        self.position = 0

    def increment_position(self) -> None:
        self.position += 1

    def has_next(self) -> bool:
        return self.position < self.config.input_num

    def value(self) -> bytes:
        """Run the command and return its standard output, or empty bytes on failure."""
        env = {**os.environ, "FFUF_NUM": str(self.position)}
        try:
            completed = subprocess.run(
                [self.shell, SHELL_ARG, self.command],
                stdout=subprocess.PIPE,
                env=env,
                check=False,
            )
        except OSError:
            return b""
        if completed.returncode != 0:
            return b""
        return completed.stdout

    def total(self) -> int:
        return self.config.input_num

    def enable(self) -> None:
        self.active = True

    def disable(self) -> None:
        self.active = False


def _html_escape(data: bytes) -> bytes:
    text = _decode(data)
    for char, entity in (("&", "&amp;"), ("'", "&#39;"), ("<", "&lt;"), (">", "&gt;"), ('"', "&#34;")):
        text = text.replace(char, entity)
    return _encode(text)


def _hasher(name: str) -> Callable[[bytes], bytes]:
    return lambda data: hashlib.new(name, data).hexdigest().encode("ascii")


_ENCODERS: dict[str, Callable[[bytes], bytes]] = {
    "b64encode": base64.b64encode,
    "b64decode": lambda data: base64.b64decode(data, validate=True),
    "hexencode": binascii.hexlify,
    "hexdecode": binascii.unhexlify,
    "urlencode": lambda data: quote_plus(data, safe="").encode("ascii"),
    "urldecode": lambda data: unquote_to_bytes(data.replace(b"+", b" ")),
    "htmlescape": _html_escape,
    "htmlunescape": lambda data: _encode(html.unescape(_decode(data))),
    "md5": _hasher("md5"),
    "sha1": _hasher("sha1"),
    "sha224": _hasher("sha224"),
    "sha256": _hasher("sha256"),
    "sha384": _hasher("sha384"),
    "sha512": _hasher("sha512"),
}


class _EncoderChain:
    def __init__(self, names: list[str]):
        unknown = [name for name in names if name not in _ENCODERS]
        if unknown:
            raise InputError(f"Encoder {unknown[0]} not found")
        self.steps = [_ENCODERS[name] for name in names]

    def encode(self, data: bytes) -> bytes:
        for step in self.steps:
            data = step(data)
        return data


InputSource = Union[WordlistInput, CommandInput]


class MainInputProvider:
    """Combines the input providers of a job according to its input mode."""

    def __init__(self, config: Config):
        self.config = config
        self.providers: list[InputSource] = []
        self.encoders: dict[str, _EncoderChain] = {}
        self.position = 0
        self._msb_iterator = 0

    @property
    def _clusterbomb(self) -> bool:
        return self.config.input_mode in ("clusterbomb", "sniper")

    def _active(self) -> list[InputSource]:
        return [p for p in self.providers if p.active]

    def add_provider(self, provider: InputProviderConfig) -> None:
        if provider.name == "command":
            self.providers.append(CommandInput(provider.keyword, provider.value, self.config))
        else:
            self.providers.append(WordlistInput(provider.keyword, provider.value, self.config))
        if provider.encoders:
            self.encoders[provider.keyword] = _EncoderChain(provider.encoders.strip().split(" "))

    def activate_keywords(self, keywords: Iterable[str]) -> None:
        """Disable every provider whose keyword is not listed."""
        wanted = set(keywords)
        for provider in self.providers:
            if provider.keyword not in wanted:
                provider.disable()

    def set_position(self, pos: int) -> None:
        if self._clusterbomb:
            self._set_clusterbomb_position(pos)
        else:
            for provider in self.providers:
                provider.position = pos

    def keywords(self) -> list[str]:
        return [p.keyword for p in self.providers]

    def advance(self) -> bool:
        """Move to the next combination; return False when all are used up."""
        if self.position >= self.total():
            return False
        self.position += 1
        return True

    def value(self) -> dict[str, bytes]:
        """Return the current keyword to input mapping, with encoders applied."""
        values: dict[str, bytes] = {}
        if self._clusterbomb:
            values = self._clusterbomb_value()
        if self.config.input_mode == "pitchfork":
            values = self._pitchfork_value()
        for key, val in values.items():
            chain = self.encoders.get(key)
            if chain is None:
                continue
            try:
                values[key] = chain.encode(val)
            except (ValueError, binascii.Error) as err:
                print(f"ERROR: {err}")
                values[key] = b""
        return values

    def reset(self) -> None:
        for provider in self.providers:
            provider.reset_position()
        self.position = 0
        self._msb_iterator = 0

    def total(self) -> int:
        active = self._active()
        if self.config.input_mode == "pitchfork":
            return max((p.total() for p in active), default=0)
        if self._clusterbomb:
            count = 1
            for provider in active:
                count *= provider.total()
            return count
        return 0

    def _pitchfork_value(self) -> dict[str, bytes]:
        values: dict[str, bytes] = {}
        for provider in self._active():
            if not provider.has_next():
                provider.reset_position()
            values[provider.keyword] = provider.value()
            provider.increment_position()
        return values

    def _clusterbomb_value(self) -> dict[str, bytes]:
        values: dict[str, bytes] = {}
        signal_next = False
        for index, provider in enumerate(self._active()):
            if signal_next:
                provider.increment_position()
                signal_next = False
            if not provider.has_next():
                if index == self._msb_iterator:
                    self._msb_iterator += 1
                    self._clusterbomb_iterator_reset()
                    return self._clusterbomb_value()
                provider.reset_position()
                signal_next = True
            values[provider.keyword] = provider.value()
            if index == 0:
                provider.increment_position()
        return values

    def _clusterbomb_iterator_reset(self) -> None:
        for index, provider in enumerate(self._active()):
            if index < self._msb_iterator:
                provider.reset_position()
            if index == self._msb_iterator:
                provider.increment_position()

    def _set_clusterbomb_position(self, pos: int) -> None:
        self.reset()
        if pos > self.total():
            return
        while self.position < pos - 1:
            self.advance()
            self.value()


def new_input_provider(config: Config) -> MainInputProvider:
    """Build the main provider for a config, raising InputError listing every problem."""
    if config.input_mode not in INPUT_MODES:
        raise InputError(f"Input mode (-mode) {config.input_mode} not recognized")
    provider = MainInputProvider(config)
    errors: list[str] = []
    for source in config.input_providers:
        try:
            provider.add_provider(source)
        except (OSError, InputError) as err:
            errors.append(str(err))
    if errors:
        raise InputError(errors)
    return provider