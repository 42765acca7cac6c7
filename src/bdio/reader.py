"""
Streaming BDIO reader.

Decodes a sequence of entries, each a JSON array of node objects, one node
per `read()` call. Only the current entry text and one decoded node are
held at a time.

States:
    AWAITING_ARRAY_START -> READING_NODE* -> DONE
    any state -> FAILED on malformed input or an unknown specification version

When a node declares a specification version the reader switches its
session-local context to the migrated one; that node and every node after it
are decoded under the new context. Nodes already returned are not
reinterpreted.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple, Union

from bdio import specification
from bdio.context import Context, version_of
from bdio.errors import MalformedInput, ReaderFailedError, UnsupportedSpecVersion
from bdio.model import Node

logger = logging.getLogger(__name__)

Payload = Union[str, bytes]
Entry = Union[Payload, Tuple[str, Payload]]

_WHITESPACE = " \t\n\r"


class ReaderState(Enum):
    AWAITING_ARRAY_START = "awaiting_array_start"
    READING_NODE = "reading_node"
    DONE = "done"
    FAILED = "failed"


def _split_entry(entry: Entry) -> Tuple[Optional[str], str]:
    if isinstance(entry, tuple):
        name, payload = entry
    else:
        name, payload = None, entry
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedInput(
                f"entry is not valid UTF-8: {e.reason} at byte {e.start}", name
            ) from e
    return name, payload


class BdioReader:
    """
    Pull-based reader producing one Node at a time.

    Example:
        reader = BdioReader([header_json, entry_json])
        for node in reader:
            print(node.id)

    Entries are JSON text (str or bytes), optionally paired with an entry
    name as `(name, payload)` for error messages.
    """

    def __init__(self, entries: Iterable[Entry], context: Optional[Context] = None):
        """
        Args:
            entries: Entry payloads, header first
            context: Initial context (the baseline specification by default)

        Raises:
            MalformedInput: If the first entry does not start with an array
        """
        self._entries = iter(entries)
        self._context = context or Context.for_reading()
        self._state = ReaderState.AWAITING_ARRAY_START
        self._error: Optional[BaseException] = None
        self._entry_name: Optional[str] = None
        self._text = ""
        self._pos = 0
        self._first_in_entry = True
        self._nodes_read = 0
        self._version_seen = False

        if not self._open_next_entry():
            self._fail("expected input to start with an array")

    @property
    def context(self) -> Context:
        """The active context; replaced when a version-declaring node is read."""
        return self._context

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def nodes_read(self) -> int:
        return self._nodes_read

    # =========================================================================
    # Reading
    # =========================================================================

    def read(self) -> Optional[Node]:
        """
        Read the next node.

        Returns:
            The decoded Node, or None once every entry is exhausted

        Raises:
            MalformedInput: If the input is structurally invalid (the reader fails)
            ReaderFailedError: If the reader has already failed
            InvalidInput: If a value of this node does not fit its datatype;
                the reader moves on to the next node
        """
        if self._state is ReaderState.DONE:
            return None
        if self._state is ReaderState.FAILED:
            raise ReaderFailedError(self._error)

        while True:
            self._skip_whitespace()
            if self._pos >= len(self._text):
                self._fail("unexpected end of entry, expected ']'")

            if self._text[self._pos] == "]":
                self._pos += 1
                self._skip_whitespace()
                if self._pos != len(self._text):
                    self._fail("unexpected content after the end of the array")
                if not self._open_next_entry():
                    self._state = ReaderState.DONE
                    logger.debug(f"Finished reading after {self._nodes_read} nodes")
                    return None
                continue

            if not self._first_in_entry:
                if self._text[self._pos] != ",":
                    self._fail("expected ',' between nodes")
                self._pos += 1
                self._skip_whitespace()

            try:
                wire, end = json.JSONDecoder().raw_decode(self._text, self._pos)
            except json.JSONDecodeError as e:
                self._fail(f"invalid JSON at offset {e.pos}: {e.msg}")
            if not isinstance(wire, dict):
                self._fail(f"expected a node object, found {type(wire).__name__}")

            self._pos = end
            self._first_in_entry = False
            return self._decode(wire)

    def __iter__(self) -> Iterator[Node]:
        while True:
            node = self.read()
            if node is None:
                return
            yield node

    def _decode(self, wire: dict) -> Node:
        node = self._context.expand_to_node(wire)
        try:
            migrated = self._context.migrate_for(node)
        except UnsupportedSpecVersion as e:
            # Nothing after an unknown version can be interpreted
            self._set_failed(e)
            raise
        if migrated is not None:
            if self._nodes_read > 0:
                logger.warning(
                    f"Specification version {migrated.spec_version} declared after "
                    f"{self._nodes_read} nodes were read; earlier nodes are not reinterpreted"
                )
            if self._version_seen:
                logger.warning(
                    f"Document declares a second specification version {migrated.spec_version}"
                )
            if migrated.spec_version != specification.latest().version:
                logger.info(f"Reading specification version {migrated.spec_version!r} with migration")
            logger.debug(
                f"Switching context from {self._context.spec_version!r} to {migrated.spec_version!r}"
            )
            self._context = migrated
            self._version_seen = True
            node = migrated.expand_to_node(wire)
        elif version_of(node) is not None:
            self._version_seen = True
        self._nodes_read += 1
        return node

    # =========================================================================
    # Framing
    # =========================================================================

    def _open_next_entry(self) -> bool:
        try:
            entry = next(self._entries)
        except StopIteration:
            return False
        try:
            self._entry_name, self._text = _split_entry(entry)
        except MalformedInput as e:
            self._entry_name = e.entry_name
            self._set_failed(e)
            raise
        self._pos = 0
        self._first_in_entry = True
        self._state = ReaderState.AWAITING_ARRAY_START
        self._skip_whitespace()
        if self._pos >= len(self._text) or self._text[self._pos] != "[":
            self._fail("expected input to start with an array")
        self._pos += 1
        self._state = ReaderState.READING_NODE
        logger.debug(f"Reading entry {self._entry_name or '<unnamed>'}")
        return True

    def _skip_whitespace(self) -> None:
        text = self._text
        pos = self._pos
        while pos < len(text) and text[pos] in _WHITESPACE:
            pos += 1
        self._pos = pos

    def _fail(self, message: str) -> None:
        error = MalformedInput(message, self._entry_name)
        self._set_failed(error)
        raise error

    def _set_failed(self, error: BaseException) -> None:
        self._state = ReaderState.FAILED
        self._error = error


def scan_for_spec_version(entry: Entry) -> Optional[str]:
    """
    Return the specification version declared in one entry, if any.

    Only the given entry is inspected, normally the header.

    Raises:
        MalformedInput: If the entry is not a JSON array
    """
    name, text = _split_entry(entry)
    try:
        nodes = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInput(f"invalid JSON: {e.msg}", name) from e
    if not isinstance(nodes, list):
        raise MalformedInput("expected input to start with an array", name)
    context = Context.for_reading()
    for wire in nodes:
        if isinstance(wire, dict):
            version = version_of(context.expand_to_node(wire))
            if version is not None:
                return version
    return None
