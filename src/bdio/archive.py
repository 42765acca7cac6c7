"""
BDIO archive codec.

A document is an ordered sequence of named entries: the header entry
holding exactly one metadata node, then data entries produced by the
partitioner. Each entry is a JSON array of compacted nodes. Entries are
stored in a ZIP archive; a bare JSON array is also accepted when reading.

Supports:
- BdioWriter: push nodes, entries are written as batches close
- BdioArchiveReader: iterate the named entries of an archive, header first
- encode / decode: whole-document helpers
"""

from __future__ import annotations

import io
import json
import logging
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Iterator, List, Optional, Tuple, Union

import polars as pl

from bdio.errors import EntrySizeViolation, MalformedInput
from bdio.model import BdioMetadata, Node, mint_skolem_identifier
from bdio.options import BdioOptions, OptionsValidator
from bdio.partitioning import ENTRY_OVERHEAD, Partitioner, estimate_weight
from bdio.reader import BdioReader
from bdio.vocabulary import BILL_OF_MATERIALS, HEADER_ENTRY_NAME, ContextVersion, data_entry_name

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, str, Path, BinaryIO]


_ENTRY_INDEX = re.compile(r"^bdio-entry-(\d+)\.jsonld$")


def _dumps(nodes: List[Any]) -> bytes:
    return json.dumps(nodes, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _entry_sort_key(name: str) -> Tuple[int, int, str]:
    # Numbered data entries in index order, then anything else by name
    match = _ENTRY_INDEX.match(name)
    if match:
        return (0, int(match.group(1)), name)
    return (1, 0, name)


# =============================================================================
# Writer
# =============================================================================

class BdioWriter:
    """
    Writes a document as a ZIP archive of JSON entries.

    Example:
        with BdioWriter(path, BdioOptions(base="http://example.com/")) as writer:
            writer.start(BdioMetadata.now(name="scan"))
            for node in nodes:
                writer.write(node)

    Anonymous nodes are given skolem identifiers before they are written.
    """

    def __init__(self, target: Union[str, Path, BinaryIO], options: Optional[BdioOptions] = None):
        """
        Args:
            target: File path or writable binary stream
            options: Session options

        Raises:
            OptionsValidationError: If the options are invalid
        """
        self._options = options or BdioOptions()
        OptionsValidator.validate_or_raise(self._options)
        self._context = self._options.writing_context()
        self._archive = zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED)
        self._partitioner = Partitioner(self._options.max_entry_weight, overhead=ENTRY_OVERHEAD)
        self._entry_index = 0
        self._started = False
        self._closed = False

    @property
    def context(self):
        return self._context

    @property
    def entry_count(self) -> int:
        """Number of entries written so far, header included."""
        return self._entry_index + (1 if self._started else 0)

    def start(self, metadata: Optional[BdioMetadata] = None) -> None:
        """
        Write the header entry.

        Raises:
            RuntimeError: If the header was already written
        """
        if self._started:
            raise RuntimeError("document header already written")
        metadata = metadata or BdioMetadata.now()
        header = self._context.compact(metadata.as_node(self._context))
        self._write_entry(HEADER_ENTRY_NAME, [header])
        self._started = True

    def write(self, node: Node) -> None:
        """Queue a node, writing a data entry when its batch closes."""
        if self._closed:
            raise RuntimeError("writer is closed")
        if not self._started:
            self.start()
        if self._options.strict_domains:
            node = node.to_builder().build(strict_domains=True)
        if node.id is None:
            node = node.with_id(mint_skolem_identifier(self._options.base or None))
        wire = self._context.compact(node)
        batch = self._partitioner.add(wire, estimate_weight(wire) + 1)
        if batch is not None:
            self._write_batch(batch)

    def write_all(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            self.write(node)

    def close(self) -> None:
        """Flush the open batch and finish the archive."""
        if self._closed:
            return
        if not self._started:
            self.start()
        batch = self._partitioner.flush()
        if batch is not None:
            self._write_batch(batch)
        self._archive.close()
        self._closed = True
        stats = self._partitioner.stats()
        logger.debug(
            f"Wrote {stats.total_nodes} nodes in {stats.total_batches} data entries"
        )

    def __enter__(self) -> "BdioWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _write_batch(self, nodes: List[Any]) -> None:
        self._write_entry(data_entry_name(self._entry_index), nodes)
        self._entry_index += 1

    def _write_entry(self, name: str, nodes: List[Any]) -> None:
        payload = _dumps(nodes)
        if len(payload) > self._options.max_entry_size:
            raise EntrySizeViolation(name, len(payload), self._options.max_entry_size)
        self._archive.writestr(name, payload)
        logger.debug(f"Wrote entry {name}: {len(nodes)} nodes, {len(payload)} bytes")


# =============================================================================
# Archive reader
# =============================================================================

class BdioArchiveReader:
    """
    Iterates the named entries of a document, header first.

    A ZIP archive yields its header and then its data entries in name
    order; any other input is taken as a single bare JSON array entry.
    """

    def __init__(self, source: Source):
        if isinstance(source, (str, Path)):
            source = Path(source).read_bytes()
        elif not isinstance(source, (bytes, bytearray)):
            source = source.read()
        self._blob = bytes(source)

    @property
    def is_archive(self) -> bool:
        return zipfile.is_zipfile(io.BytesIO(self._blob))

    def entry_names(self) -> List[str]:
        if not self.is_archive:
            return [HEADER_ENTRY_NAME]
        with zipfile.ZipFile(io.BytesIO(self._blob)) as archive:
            return self._ordered_names(archive)

    def __iter__(self) -> Iterator[Tuple[str, bytes]]:
        if not self.is_archive:
            yield HEADER_ENTRY_NAME, self._blob
            return
        with zipfile.ZipFile(io.BytesIO(self._blob)) as archive:
            for name in self._ordered_names(archive):
                yield name, archive.read(name)

    @staticmethod
    def _ordered_names(archive: zipfile.ZipFile) -> List[str]:
        names = [n for n in archive.namelist() if not n.endswith("/")]
        if HEADER_ENTRY_NAME not in names:
            raise MalformedInput(f"archive has no {HEADER_ENTRY_NAME} entry")
        data = sorted(
            (n for n in names if n != HEADER_ENTRY_NAME and n.endswith(".jsonld")),
            key=_entry_sort_key,
        )
        return [HEADER_ENTRY_NAME] + data


# =============================================================================
# Whole documents
# =============================================================================

@dataclass
class NodeBatch:
    """
    A decoded document.

    Attributes:
        metadata: The header node, if the document has one
        nodes: Data nodes in document order
        spec_version: Specification version the document was read under
    """
    metadata: Optional[Node] = None
    nodes: List[Node] = field(default_factory=list)
    spec_version: str = ""

    def bdio_metadata(self) -> Optional[BdioMetadata]:
        return BdioMetadata.from_node(self.metadata) if self.metadata is not None else None

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def to_dataframe(self) -> pl.DataFrame:
        """
        Summarize the data nodes.

        Columns:
        - id: string
        - types: list of type IRIs
        - terms: number of terms carried
        """
        return pl.DataFrame({
            "id": pl.Series([n.id for n in self.nodes], dtype=pl.Utf8),
            "types": pl.Series([sorted(t.iri for t in n.types) for n in self.nodes],
                               dtype=pl.List(pl.Utf8)),
            "terms": pl.Series([len(n.data) for n in self.nodes], dtype=pl.Int64),
        })


def encode(
    nodes: Union[NodeBatch, Iterable[Node]],
    metadata: Optional[BdioMetadata] = None,
    options: Optional[BdioOptions] = None,
) -> bytes:
    """
    Encode nodes as a BDIO archive.

    Args:
        nodes: Data nodes, or a NodeBatch whose metadata node is used as the header
        metadata: Document metadata (a fresh header by default)
        options: Session options
    """
    if isinstance(nodes, NodeBatch):
        if metadata is None and nodes.metadata is not None:
            metadata = BdioMetadata.from_node(nodes.metadata)
        nodes = nodes.nodes
    buffer = io.BytesIO()
    with BdioWriter(buffer, options) as writer:
        writer.start(metadata)
        writer.write_all(nodes)
    return buffer.getvalue()


def decode(blob: Source, options: Optional[BdioOptions] = None) -> NodeBatch:
    """
    Decode a BDIO archive or bare JSON array.

    The first node is taken as the metadata node when it has the metadata type.

    Raises:
        MalformedInput: If the input is structurally invalid
        InvalidInput: If a value does not fit its term's datatype
        UnsupportedSpecVersion: If the document declares an unknown version
    """
    options = options or BdioOptions()
    reader = BdioReader(BdioArchiveReader(blob), options.reading_context())
    result = NodeBatch()
    for node in reader:
        if result.metadata is None and not result.nodes and node.has_type(BILL_OF_MATERIALS):
            result.metadata = node
        else:
            result.nodes.append(node)
    result.spec_version = reader.context.spec_version
    return result


def current_context() -> ContextVersion:
    """The context version documents are written with by default."""
    return ContextVersion.default()
