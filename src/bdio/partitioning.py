"""
Weight-based partitioning of wire nodes into archive entries.

The weight of a value approximates its serialized JSON size without
encoding it. Nodes are accumulated greedily into a batch until the running
weight reaches the bound; the batch is then closed and a new one started.
Order is preserved within and across batches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Optional

import polars as pl

logger = logging.getLogger(__name__)

# Weight charged for any number, independent of its digits
NUMBER_WEIGHT = 8

# Nesting depth beyond which a value is rejected
MAX_DEPTH = 256

# Framing cost of an entry before its nodes: the array brackets
ENTRY_OVERHEAD = 2


def estimate_weight(value: Any, depth: int = 0) -> int:
    """
    Estimate the serialized size of a wire value.

    Strings cost their length plus quotes, numbers a constant, lists their
    brackets and separators plus their elements, maps their braces,
    separators and colons plus their keys and values.

    Raises:
        ValueError: If the value nests deeper than MAX_DEPTH
    """
    if depth > MAX_DEPTH:
        raise ValueError(f"value nested deeper than {MAX_DEPTH} levels")
    if isinstance(value, str):
        return 2 + len(value)
    if isinstance(value, bool):
        return 4 if value else 5
    if isinstance(value, (int, float)):
        return NUMBER_WEIGHT
    if value is None:
        return 4
    if isinstance(value, (list, tuple)):
        return 2 + len(value) + sum(estimate_weight(v, depth + 1) for v in value)
    if isinstance(value, dict):
        return 2 + 3 * len(value) + sum(
            estimate_weight(str(k), depth + 1) + estimate_weight(v, depth + 1)
            for k, v in value.items()
        )
    return 2 + len(str(value))


def entry_overhead(node_count: int = 0) -> int:
    """Weight of the framing around `node_count` nodes of one entry."""
    return ENTRY_OVERHEAD + max(node_count - 1, 0)


# =============================================================================
# Partitioner
# =============================================================================

@dataclass
class PartitionStats:
    """Statistics for the batches closed by a Partitioner."""

    total_batches: int = 0
    total_nodes: int = 0
    total_weight: int = 0
    oversized_batches: int = 0
    batch_weights: List[int] = field(default_factory=list)
    batch_sizes: List[int] = field(default_factory=list)

    def to_dataframe(self) -> pl.DataFrame:
        """
        Export one row per closed batch.

        Columns:
        - batch: int
        - nodes: int
        - weight: int
        """
        return pl.DataFrame({
            "batch": pl.Series(list(range(self.total_batches)), dtype=pl.Int64),
            "nodes": pl.Series(self.batch_sizes, dtype=pl.Int64),
            "weight": pl.Series(self.batch_weights, dtype=pl.Int64),
        })


class Partitioner:
    """
    Incremental greedy batcher.

    Example:
        partitioner = Partitioner(max_weight=1024)
        for node in nodes:
            batch = partitioner.add(node)
            if batch:
                write_entry(batch)
        last = partitioner.flush()
        if last:
            write_entry(last)

    A batch only exceeds the bound when it holds a single node that alone
    exceeds it; such a node is emitted alone rather than dropped.
    """

    def __init__(self, max_weight: int, overhead: int = 0):
        """
        Args:
            max_weight: Bound on the summed weight of a batch
            overhead: Weight charged to every batch before its first node
        """
        if max_weight <= 0:
            raise ValueError(f"max_weight must be positive: {max_weight}")
        self._max_weight = max_weight
        self._overhead = overhead
        self._batch: List[Any] = []
        self._weight = overhead
        self._stats = PartitionStats()

    @property
    def max_weight(self) -> int:
        return self._max_weight

    @property
    def pending(self) -> int:
        """Number of nodes in the open batch."""
        return len(self._batch)

    def add(self, node: Any, weight: Optional[int] = None) -> Optional[List[Any]]:
        """
        Add a node, returning a batch if one was closed.

        At most one batch is returned per call: a node that does not fit the
        open batch closes it and starts the next one.
        """
        if weight is None:
            weight = estimate_weight(node)

        closed = None
        if self._batch and self._weight + weight > self._max_weight:
            closed = self._close()

        self._batch.append(node)
        self._weight += weight

        if closed is None and self._weight >= self._max_weight:
            closed = self._close()
        return closed

    def flush(self) -> Optional[List[Any]]:
        """Close and return the open batch, if it holds any node."""
        if not self._batch:
            return None
        return self._close()

    def stats(self) -> PartitionStats:
        return self._stats

    def _close(self) -> List[Any]:
        batch = self._batch
        weight = self._weight
        if weight > self._max_weight:
            if len(batch) == 1:
                logger.warning(
                    f"Node weight {weight} exceeds the entry bound {self._max_weight}, "
                    f"writing it alone"
                )
            self._stats.oversized_batches += 1
        self._stats.total_batches += 1
        self._stats.total_nodes += len(batch)
        self._stats.total_weight += weight
        self._stats.batch_weights.append(weight)
        self._stats.batch_sizes.append(len(batch))
        logger.debug(f"Closed batch of {len(batch)} nodes, weight {weight}")

        self._batch = []
        self._weight = self._overhead
        return batch


def partition(nodes: Iterable[Any], max_weight: int) -> Iterator[List[Any]]:
    """
    Greedily split wire nodes into batches bounded by `max_weight`.

    Yields:
        Non-empty batches whose concatenation is the input, in order
    """
    partitioner = Partitioner(max_weight)
    for node in nodes:
        batch = partitioner.add(node)
        if batch is not None:
            yield batch
    last = partitioner.flush()
    if last is not None:
        yield last
