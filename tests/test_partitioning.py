"""
Tests for weight-based partitioning.
"""

import logging

import polars as pl
import pytest

from bdio.partitioning import (
    ENTRY_OVERHEAD,
    MAX_DEPTH,
    NUMBER_WEIGHT,
    PartitionStats,
    Partitioner,
    entry_overhead,
    estimate_weight,
    partition,
)


def _weights_of(batch):
    return sum(estimate_weight(node) for node in batch)


# ========== Weight Tests ==========

class TestEstimateWeight:
    """Tests for the serialized size estimate."""

    @pytest.mark.parametrize("value,weight", [
        ("", 2),
        ("abc", 5),
        (True, 4),
        (False, 5),
        (None, 4),
        (7, NUMBER_WEIGHT),
        (123456789, NUMBER_WEIGHT),
        (1.5, NUMBER_WEIGHT),
        ([], 2),
        (["a", "b"], 10),
        ({}, 2),
        ({"a": 1}, 16),
    ])
    def test_scalars_and_collections(self, value, weight):
        assert estimate_weight(value) == weight

    def test_nested(self):
        """Test containers sum the weights of their members."""
        node = {"@id": "x", "path": ["a", {"b": None}]}
        inner = 2 + 3 + 3 + 4
        path = 2 + 2 + 3 + inner
        assert estimate_weight(node) == 2 + 3 * 2 + (5 + 3) + (6 + path)

    def test_rejects_deep_nesting(self):
        value = []
        for _ in range(MAX_DEPTH + 2):
            value = [value]
        with pytest.raises(ValueError, match="nested"):
            estimate_weight(value)

    def test_entry_overhead(self):
        assert entry_overhead() == ENTRY_OVERHEAD
        assert entry_overhead(1) == ENTRY_OVERHEAD
        assert entry_overhead(4) == ENTRY_OVERHEAD + 3


# ========== Partitioner Tests ==========

class TestPartitioner:
    """Tests for the incremental Partitioner."""

    def test_rejects_non_positive_bound(self):
        with pytest.raises(ValueError):
            Partitioner(0)

    def test_closes_when_bound_reached(self):
        """Test a batch whose weight reaches the bound exactly is closed."""
        partitioner = Partitioner(10)
        assert partitioner.add("a", weight=5) is None
        assert partitioner.add("b", weight=5) == ["a", "b"]
        assert partitioner.pending == 0
        assert partitioner.flush() is None

    def test_closes_before_overflow(self):
        """Test a node that does not fit closes the open batch and starts the next."""
        partitioner = Partitioner(10)
        partitioner.add("a", weight=6)
        assert partitioner.add("b", weight=6) == ["a"]
        assert partitioner.pending == 1
        assert partitioner.flush() == ["b"]

    def test_overhead_charged_per_batch(self):
        partitioner = Partitioner(10, overhead=2)
        partitioner.add("a", weight=5)
        assert partitioner.add("b", weight=5) == ["a"]
        assert partitioner.flush() == ["b"]
        assert partitioner.stats().batch_weights == [7, 7]

    def test_oversized_node_emitted_alone(self, caplog):
        """Test a node heavier than the bound is written alone, not dropped."""
        partitioner = Partitioner(10)
        partitioner.add("a", weight=3)
        with caplog.at_level(logging.WARNING, logger="bdio.partitioning"):
            assert partitioner.add("big", weight=50) == ["a"]
            assert partitioner.add("c", weight=3) == ["big"]
        assert partitioner.flush() == ["c"]
        assert partitioner.stats().oversized_batches == 1
        assert "exceeds the entry bound" in caplog.text

    def test_stats(self):
        partitioner = Partitioner(10)
        for node in ["a", "b", "c"]:
            partitioner.add(node, weight=4)
        partitioner.flush()

        stats = partitioner.stats()
        assert stats.total_batches == 2
        assert stats.total_nodes == 3
        assert stats.total_weight == 12
        assert stats.batch_sizes == [2, 1]


class TestPartition:
    """Tests for the partition generator."""

    def test_empty(self):
        assert list(partition([], 10)) == []

    def test_concatenation_preserves_order(self):
        nodes = [{"@id": f"n{i}", "path": "x" * (i % 7)} for i in range(50)]
        batches = list(partition(nodes, 80))
        assert all(batches)
        assert [node for batch in batches for node in batch] == nodes

    def test_bound_holds(self):
        """Test every multi-node batch fits the bound."""
        nodes = [{"@id": f"n{i}", "name": "y" * (i * 3 % 40)} for i in range(100)]
        for batch in partition(nodes, 120):
            assert len(batch) == 1 or _weights_of(batch) <= 120

    def test_oversized_singleton(self):
        big = "x" * 100
        assert list(partition([big, "a", "b"], 20)) == [[big], ["a", "b"]]

    def test_single_batch_when_everything_fits(self):
        assert list(partition(["a", "b", "c"], 1000)) == [["a", "b", "c"]]


# ========== Stats Export Tests ==========

class TestPartitionStats:
    """Tests for PartitionStats export."""

    def test_to_dataframe(self):
        stats = PartitionStats(
            total_batches=2,
            total_nodes=3,
            total_weight=20,
            batch_weights=[12, 8],
            batch_sizes=[2, 1],
        )
        df = stats.to_dataframe()
        assert isinstance(df, pl.DataFrame)
        assert df.columns == ["batch", "nodes", "weight"]
        assert df["nodes"].to_list() == [2, 1]
        assert df["weight"].sum() == 20

    def test_empty_dataframe(self):
        assert len(PartitionStats().to_dataframe()) == 0
