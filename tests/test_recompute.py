#!/usr/bin/env python3
"""
Test suite for the derived-field recompute loop.

Test organization:
1. TestRecompute - fixed point, chains, idempotence, input immutability
2. TestNonConvergence - pass cap on cyclic configurations
3. TestRecomputer - per-form owner applying user edits
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from formbuilder.fields import delete_field
from formbuilder.models import DerivedFieldConfig, Field, FieldType
from formbuilder.recompute import (
    Recomputer,
    RecomputeInProgressError,
    RecomputeState,
    build_snapshot,
    recompute,
    recompute_pass,
)

NOW = datetime(2024, 6, 15, tzinfo=timezone.utc)


def number(field_id, value=None):
    return Field(id=field_id, type=FieldType.NUMBER, label=field_id.upper(), default_value=value)


def derived(field_id, parents, formula, value=None):
    return Field(
        id=field_id,
        type=FieldType.TEXT,
        label=field_id.upper(),
        default_value=value,
        derived=DerivedFieldConfig(parents=list(parents), formula=formula),
    )


def values(fields):
    return {f.id: f.value for f in fields}


class TestRecompute:
    """Test recompute over acyclic parent graphs."""

    def test_single_derived_field(self):
        """Test that a derived field picks up its parents' sum."""
        fields = [number("a", 2), number("b", 3), derived("total", ["a", "b"], "sum()")]

        result = recompute(fields)

        assert result.converged
        assert values(result.fields)["total"] == "5"
        assert result.changed == {"total"}

    def test_chain_settles(self):
        """Test that a derived field of a derived field settles over several passes."""
        fields = [
            derived("doubled_total", ["total", "total"], "sum()"),
            derived("total", ["a", "b"], "sum()"),
            number("a", 1),
            number("b", 2),
        ]

        result = recompute(fields)

        assert result.converged
        assert values(result.fields)["total"] == "3"
        assert values(result.fields)["doubled_total"] == "6"
        assert result.passes == 3

    def test_idempotent_on_stable_snapshot(self):
        """Test that recomputing a settled form changes nothing."""
        fields = [
            number("a", 4),
            number("b", 6),
            derived("avg", ["a", "b"], "average()"),
            derived("label", ["avg"], "concat()"),
        ]
        first = recompute(fields)

        second = recompute(first.fields)

        assert second.converged
        assert second.changed == set()
        assert second.passes == 1
        assert values(second.fields) == values(first.fields)

    def test_input_is_not_mutated(self):
        """Test that recompute returns new fields and leaves its input alone."""
        fields = [number("a", 2), derived("total", ["a"], "sum()")]

        recompute(fields)

        assert fields[1].value is None

    def test_unchanged_fields_are_reused(self):
        """Test that a pass only copies fields whose value changed."""
        fields = [number("a", 2), derived("total", ["a"], "sum()", value="2")]

        updated = recompute_pass(fields)

        assert updated[0] is fields[0]
        assert updated[1] is fields[1]

    def test_calculate_age_uses_reference_time(self):
        """Test that the reference time is passed down to the evaluator."""
        fields = [
            Field(id="dob", type=FieldType.DATE, label="DOB", default_value="2000-01-01"),
            derived("age", ["dob"], "calculateAge()"),
        ]

        result = recompute(fields, now=NOW)

        assert values(result.fields)["age"] == 24

    def test_stale_parent_after_delete(self):
        """Test that a derived field survives its parent being deleted."""
        fields = [number("a", 2), number("b", 3), derived("total", ["a", "b"], "sum()")]
        fields = delete_field(recompute(fields).fields, "b")

        result = recompute(fields)

        assert values(result.fields)["total"] == "2"

    def test_snapshot_is_read_only(self):
        """Test that snapshots cannot be modified."""
        snapshot = build_snapshot([number("a", 1)])

        with pytest.raises(TypeError):
            snapshot["a"] = 2

    def test_total_past_float_range(self):
        """Test that parents too large to add up leave the derived field empty."""
        fields = [
            number("a", 1e308),
            number("b", "1e308"),
            derived("total", ["a", "b"], "sum()", value="5"),
            derived("mean", ["a", "b"], "average()"),
            derived("big", ["c"], "max()"),
            number("c", 10**400),
        ]

        result = recompute(fields)

        assert result.converged
        assert result.fields[2].value == ""
        assert result.fields[3].value == ""
        assert result.fields[4].value == ""

    def test_empty_form(self):
        """Test that a form without fields converges immediately."""
        result = recompute([])

        assert result.converged
        assert result.passes == 1


class TestNonConvergence:
    """Test the pass cap."""

    def test_cycle_reports_did_not_converge(self, caplog):
        """Test that a self-feeding pair of fields stops at the pass cap."""
        fields = [
            number("seed", 1),
            derived("x", ["seed", "y"], "sum()"),
            derived("y", ["x"], "sum()"),
        ]

        with caplog.at_level(logging.WARNING, logger="formbuilder.recompute"):
            result = recompute(fields, max_passes=10)

        assert not result.converged
        assert result.passes == 10
        assert "did not converge" in result.error
        assert "did not converge" in caplog.text

    def test_default_cap_is_bounded(self):
        """Test that the default cap also terminates."""
        fields = [number("seed", 1), derived("x", ["seed", "x"], "sum()")]

        result = recompute(fields)

        assert not result.converged
        assert result.passes == len(fields) + 1

    def test_invalid_cap(self):
        """Test that a cap below one is rejected."""
        with pytest.raises(ValueError):
            recompute([number("a", 1)], max_passes=0)


class TestRecomputer:
    """Test the per-form recompute owner."""

    def setup_method(self):
        """Build a small form before each test."""
        self.recomputer = Recomputer(
            [number("a", 1), number("b", 2), derived("total", ["a", "b"], "sum()")]
        )

    def test_set_value_recomputes(self):
        """Test that editing a parent updates the derived field."""
        self.recomputer.set_value("a", 10)

        assert self.recomputer.values()["total"] == "12"
        assert self.recomputer.state is RecomputeState.IDLE

    def test_set_value_of_derived_field_rejected(self):
        """Test that derived values cannot be edited directly."""
        with pytest.raises(ValueError):
            self.recomputer.set_value("total", "99")

    def test_set_value_unknown_field(self):
        """Test that unknown ids raise KeyError."""
        with pytest.raises(KeyError):
            self.recomputer.set_value("ghost", 1)

    def test_reentrant_recompute_rejected(self):
        """Test that a second pass cannot start while one is running."""
        self.recomputer.state = RecomputeState.RECOMPUTING

        with pytest.raises(RecomputeInProgressError):
            self.recomputer.recompute()

    def test_last_result_is_kept(self):
        """Test that the latest result is available after recompute."""
        result = self.recomputer.recompute()

        assert self.recomputer.last_result is result
        assert result.converged
