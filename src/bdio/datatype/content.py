"""
HTTP style content descriptors: content ranges (RFC 7233) and media types (RFC 7231).
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from bdio.errors import InvalidInput

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_CONTENT_RANGE = re.compile(
    rf"^({_TOKEN}) (?:(\d+)-(\d+)|\*)/(\d+|\*)$"
)
_MEDIA_TYPE = re.compile(rf"^({_TOKEN})/({_TOKEN})$")
_PARAMETER = re.compile(rf"^({_TOKEN})=({_TOKEN}|\"(?:[^\"\\]|\\.)*\")$")


@dataclass(frozen=True, slots=True)
class ContentRange:
    """
    A byte (or other unit) range within a complete representation.

    `first`/`last` are None for an unsatisfied range ("bytes */1234") and
    `length` is None when the complete length is unknown ("bytes 0-9/*").
    """
    unit: str
    first: Optional[int] = None
    last: Optional[int] = None
    length: Optional[int] = None

    def __post_init__(self):
        if (self.first is None) != (self.last is None):
            raise InvalidInput(str(self), "ContentRange")
        if self.first is None and self.length is None:
            raise InvalidInput(str(self), "ContentRange")
        if self.first is not None:
            if self.first < 0 or self.last < self.first:
                raise InvalidInput(str(self), "ContentRange")
            if self.length is not None and self.last >= self.length:
                raise InvalidInput(str(self), "ContentRange")

    @classmethod
    def parse(cls, text: str) -> "ContentRange":
        match = _CONTENT_RANGE.match(text) if isinstance(text, str) else None
        if match is None:
            raise InvalidInput(text, "ContentRange")
        unit, first, last, length = match.groups()
        return cls(
            unit,
            int(first) if first is not None else None,
            int(last) if last is not None else None,
            int(length) if length != "*" else None,
        )

    @classmethod
    def of_bytes(cls, first: int, last: int, length: Optional[int] = None) -> "ContentRange":
        return cls("bytes", first, last, length)

    def __str__(self) -> str:
        span = "*" if self.first is None else f"{self.first}-{self.last}"
        length = "*" if self.length is None else str(self.length)
        return f"{self.unit} {span}/{length}"


@dataclass(frozen=True, slots=True)
class MediaType:
    """
    A media type such as "text/plain; charset=utf-8".

    Type, subtype and parameter names are case-insensitive and stored lower case.
    """
    type: str
    subtype: str
    parameters: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def parse(cls, text: str) -> "MediaType":
        if not isinstance(text, str):
            raise InvalidInput(text, "ContentType")
        parts = _split_parameters(text)
        match = _MEDIA_TYPE.match(parts[0].strip())
        if match is None:
            raise InvalidInput(text, "ContentType")
        parameters = []
        for part in parts[1:]:
            parameter = _PARAMETER.match(part.strip())
            if parameter is None:
                raise InvalidInput(text, "ContentType")
            name, value = parameter.groups()
            if value.startswith('"'):
                value = re.sub(r"\\(.)", r"\1", value[1:-1])
            parameters.append((name.lower(), value))
        return cls(match.group(1).lower(), match.group(2).lower(), tuple(parameters))

    def parameter(self, name: str) -> Optional[str]:
        for key, value in self.parameters:
            if key == name.lower():
                return value
        return None

    def without_parameters(self) -> "MediaType":
        return MediaType(self.type, self.subtype)

    def __str__(self) -> str:
        text = f"{self.type}/{self.subtype}"
        for name, value in self.parameters:
            if not re.fullmatch(_TOKEN, value):
                value = '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
            text += f"; {name}={value}"
        return text


def _split_parameters(text: str) -> list:
    parts = []
    current = []
    quoted = False
    escaped = False
    for c in text:
        if escaped:
            escaped = False
        elif c == "\\" and quoted:
            escaped = True
        elif c == '"':
            quoted = not quoted
        elif c == ";" and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(c)
    parts.append("".join(current))
    return parts
