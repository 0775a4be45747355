"""
Unit tests for the structural differ (personality_migration/comparison/differ.py)

Tests covering:
- Strict equality for scalars, mappings and sequences
- Missing-key reporting in both directions
- Ignored fields and timestamp suppression
- Custom comparators and path rendering
"""

from dataclasses import dataclass

import pytest

from personality_migration.comparison.differ import (
    ComparisonOptions,
    Discrepancy,
    DiscrepancyType,
    StructuralDiffer,
    diff,
)


class TestScalarComparison:
    """Tests for leaf value comparison."""

    @pytest.mark.parametrize(
        "value",
        [
            None,
            0,
            1.5,
            "text",
            True,
            [],
            {},
            {"a": [1, {"b": None}], "c": "x"},
        ],
    )
    def test_value_matches_itself(self, value):
        """Test any value compared with an equal copy matches."""
        result = diff(value, value)
        assert result.match is True
        assert result.discrepancies == []

    def test_root_scalar_mismatch_uses_empty_path(self):
        """Test differing root scalars report a single mismatch at the root."""
        result = diff(1, 2)
        assert result.match is False
        assert result.discrepancies == [Discrepancy("", DiscrepancyType.VALUE_MISMATCH, 1, 2)]

    def test_bool_does_not_equal_int(self):
        """Test True and 1 are different values."""
        result = diff({"flag": True}, {"flag": 1})
        assert result.match is False
        assert result.discrepancies[0].path == "flag"

    def test_none_only_equals_none(self):
        """Test None is not equal to empty or falsy values."""
        for other in (0, "", [], {}, False):
            assert diff(None, other).match is False
        assert diff(None, None).match is True

    def test_type_mismatch_between_containers(self):
        """Test a mapping against a list is a value mismatch."""
        result = diff({"a": {}}, {"a": []})
        assert result.discrepancies == [
            Discrepancy("a", DiscrepancyType.VALUE_MISMATCH, {}, [])
        ]

    def test_id_mismatch(self):
        """Test the canonical field mismatch shape."""
        result = diff({"id": 3}, {"id": 4})
        assert result.discrepancies == [
            Discrepancy(path="id", type=DiscrepancyType.VALUE_MISMATCH, legacy=3, new=4)
        ]


class TestSymmetry:
    """Tests for argument-order behaviour."""

    def test_match_is_symmetric(self):
        """Test swapping arguments never changes the match outcome."""
        pairs = [
            ({"a": 1}, {"a": 1}),
            ({"a": 1}, {"a": 2}),
            ({"a": 1}, {"b": 1}),
            ([1, 2], [1, 2, 3]),
        ]
        for left, right in pairs:
            assert diff(left, right).match == diff(right, left).match

    def test_missing_key_direction_swaps(self):
        """Test swapping arguments swaps the missing-key discrepancy type."""
        forward = diff({"a": 1, "b": 2}, {"a": 1})
        backward = diff({"a": 1}, {"a": 1, "b": 2})

        assert forward.discrepancies[0].type == DiscrepancyType.MISSING_KEYS_NEW
        assert backward.discrepancies[0].type == DiscrepancyType.MISSING_KEYS_LEGACY
        assert forward.discrepancies[0].keys == backward.discrepancies[0].keys == ["b"]


class TestMappings:
    """Tests for object comparison."""

    def test_missing_keys_new(self):
        """Test keys only in legacy are reported as missing from new."""
        result = diff({"a": 1, "z": 2, "m": 3}, {"a": 1})
        assert len(result.discrepancies) == 1
        discrepancy = result.discrepancies[0]
        assert discrepancy.path == ""
        assert discrepancy.type == DiscrepancyType.MISSING_KEYS_NEW
        assert discrepancy.keys == ["m", "z"]
        assert discrepancy.legacy == {"z": 2, "m": 3}
        assert discrepancy.new is None

    def test_missing_and_extra_keys_reported_together(self):
        """Test both directions are reported at the same path."""
        result = diff({"a": 1}, {"b": 1})
        types = [d.type for d in result.discrepancies]
        assert types == [DiscrepancyType.MISSING_KEYS_NEW, DiscrepancyType.MISSING_KEYS_LEGACY]

    def test_key_order_is_ignored(self):
        """Test insertion order of keys does not matter."""
        assert diff({"a": 1, "b": 2}, {"b": 2, "a": 1}).match is True

    def test_nested_path(self):
        """Test nested differences render dot and bracket paths."""
        legacy = {"a": {"b": [0, 1, {"c": "old"}]}}
        new = {"a": {"b": [0, 1, {"c": "new"}]}}

        result = diff(legacy, new)
        assert [d.path for d in result.discrepancies] == ["a.b[2].c"]

    def test_dataclass_values_are_compared_by_fields(self):
        """Test dataclass instances are normalized before comparison."""

        @dataclass
        class Profile:
            name: str
            temperature: float

        assert diff(Profile("a", 0.5), {"name": "a", "temperature": 0.5}).match is True
        result = diff(Profile("a", 0.5), Profile("a", 0.7))
        assert result.discrepancies[0].path == "temperature"


class TestSequences:
    """Tests for array comparison."""

    def test_longer_new_array(self):
        """Test an extra element in new reports legacy as None."""
        result = diff([1, 2], [1, 2, 3])
        assert result.discrepancies == [
            Discrepancy("[2]", DiscrepancyType.VALUE_MISMATCH, None, 3)
        ]

    def test_shorter_new_array(self):
        """Test a missing element in new reports new as None."""
        result = diff({"aliases": ["a", "b"]}, {"aliases": ["a"]})
        assert result.discrepancies == [
            Discrepancy("aliases[1]", DiscrepancyType.VALUE_MISMATCH, "b", None)
        ]

    def test_order_matters(self):
        """Test arrays compare position by position."""
        result = diff([1, 2], [2, 1])
        assert [d.path for d in result.discrepancies] == ["[0]", "[1]"]

    def test_tuple_and_list_compare_structurally(self):
        """Test tuples and lists with equal items match."""
        assert diff((1, 2), [1, 2]).match is True


class TestComparisonOptions:
    """Tests for ignore, timestamp and custom comparator options."""

    def test_ignored_field_skipped_at_any_depth(self):
        """Test ignored keys are skipped wherever they appear."""
        legacy = {"_internalId": 1, "child": {"_internalId": 2, "x": 1}}
        new = {"_internalId": 9, "child": {"_internalId": 8, "x": 1}}

        assert diff(legacy, new).match is False
        assert diff(legacy, new, {"ignore_fields": ["_internalId"]}).match is True

    def test_ignored_field_missing_on_one_side_still_reported(self):
        """Test ignoring applies only to keys present on both sides."""
        result = diff({"a": 1, "_internalId": 5}, {"a": 1}, {"ignore_fields": ["_internalId"]})
        assert result.match is False
        assert result.discrepancies[0].type == DiscrepancyType.MISSING_KEYS_NEW

    def test_timestamps_compared_by_default(self):
        """Test timestamp fields are compared unless disabled."""
        legacy = {"createdAt": "2024-01-01", "updatedAt": "2024-01-02", "name": "x"}
        new = {"createdAt": "2025-01-01", "updatedAt": "2025-01-02", "name": "x"}

        assert diff(legacy, new).match is False
        assert diff(legacy, new, ComparisonOptions(compare_timestamps=False)).match is True

    def test_timestamp_suppression_keeps_other_fields(self):
        """Test disabling timestamps still compares other fields."""
        legacy = {"createdAt": 1, "name": "x"}
        new = {"createdAt": 2, "name": "y"}

        result = diff(legacy, new, ComparisonOptions(compare_timestamps=False))
        assert [d.path for d in result.discrepancies] == ["name"]

    def test_custom_comparator_is_authoritative(self):
        """Test a custom comparator overrides structural comparison."""
        options = ComparisonOptions(
            custom_comparators={"temperature": lambda a, b: abs(a - b) < 0.01}
        )
        assert diff({"temperature": 0.7}, {"temperature": 0.701}, options).match is True

        options = ComparisonOptions(custom_comparators={"aliases": lambda a, b: False})
        result = diff({"aliases": ["x"]}, {"aliases": ["x"]}, options)
        assert result.discrepancies == [
            Discrepancy("aliases", DiscrepancyType.VALUE_MISMATCH, ["x"], ["x"])
        ]

    def test_coerce_rejects_unknown_type(self):
        """Test options must be None, ComparisonOptions or a mapping."""
        with pytest.raises(TypeError):
            ComparisonOptions.coerce("ignore everything")

    def test_merge_unions_ignore_fields(self):
        """Test per-call options layer on top of defaults."""
        defaults = ComparisonOptions(ignore_fields=("a",), custom_comparators={"x": max})
        merged = defaults.merge({"ignore_fields": ["b"], "compare_timestamps": False})

        assert merged.ignore_fields == ("a", "b")
        assert merged.compare_timestamps is False
        assert merged.custom_comparators == {"x": max}
        assert defaults.merge(None) is defaults


class TestCycleGuard:
    """Tests for self-referencing structures."""

    def test_cyclic_structures_terminate(self):
        """Test a value containing itself does not recurse forever."""
        legacy = {"name": "a"}
        legacy["self"] = legacy
        new = {"name": "a"}
        new["self"] = new

        result = StructuralDiffer().diff(legacy, new)
        assert result.match is True


class TestDiscrepancySerialization:
    """Tests for Discrepancy.to_dict."""

    def test_discrepancy_to_dict(self):
        """Test serialization includes keys only for missing-key discrepancies."""
        value = Discrepancy("id", DiscrepancyType.VALUE_MISMATCH, 3, 4).to_dict()
        assert value == {"path": "id", "type": "value_mismatch", "legacy": 3, "new": 4}

        missing = diff({"a": 1}, {}).discrepancies[0].to_dict()
        assert missing["keys"] == ["a"]
