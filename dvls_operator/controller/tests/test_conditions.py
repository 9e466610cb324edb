"""Tests for status condition upsert/remove."""

from __future__ import annotations

from datetime import UTC, datetime

from dvls_operator.controller.conditions import find_condition, remove_condition, set_condition
from dvls_operator.controller.models import Condition, ConditionStatus

T0 = datetime(2024, 1, 1, tzinfo=UTC)
T1 = datetime(2024, 1, 2, tzinfo=UTC)


class TestSetCondition:
    def test_insert(self):
        conditions: list[Condition] = []
        assert set_condition(conditions, "Available", ConditionStatus.UNKNOWN, "Reconciling", now=T0)
        assert len(conditions) == 1
        assert conditions[0].type == "Available"
        assert conditions[0].last_transition_time == T0

    def test_status_change_moves_transition_time(self):
        conditions: list[Condition] = []
        set_condition(conditions, "Available", ConditionStatus.UNKNOWN, "Reconciling", now=T0)
        set_condition(conditions, "Available", ConditionStatus.TRUE, "Synced", now=T1)
        assert len(conditions) == 1
        assert conditions[0].status == ConditionStatus.TRUE
        assert conditions[0].reason == "Synced"
        assert conditions[0].last_transition_time == T1

    def test_same_status_keeps_transition_time(self):
        conditions: list[Condition] = []
        set_condition(conditions, "Degraded", ConditionStatus.TRUE, "Reconciling", "a", now=T0)
        changed = set_condition(conditions, "Degraded", ConditionStatus.TRUE, "Reconciling", "b", now=T1)
        assert changed
        assert conditions[0].message == "b"
        assert conditions[0].last_transition_time == T0

    def test_unchanged_reports_false(self):
        conditions: list[Condition] = []
        set_condition(conditions, "Degraded", ConditionStatus.TRUE, "Reconciling", "a", now=T0)
        assert not set_condition(conditions, "Degraded", ConditionStatus.TRUE, "Reconciling", "a", now=T1)

    def test_one_entry_per_type(self):
        conditions: list[Condition] = []
        set_condition(conditions, "Available", ConditionStatus.TRUE)
        set_condition(conditions, "Degraded", ConditionStatus.TRUE)
        set_condition(conditions, "Available", ConditionStatus.FALSE)
        assert [c.type for c in conditions] == ["Available", "Degraded"]


class TestRemoveCondition:
    def test_remove_present(self):
        conditions: list[Condition] = []
        set_condition(conditions, "Available", ConditionStatus.TRUE)
        set_condition(conditions, "Degraded", ConditionStatus.TRUE)
        assert remove_condition(conditions, "Degraded")
        assert find_condition(conditions, "Degraded") is None
        assert find_condition(conditions, "Available") is not None

    def test_remove_absent_is_noop(self):
        conditions: list[Condition] = []
        set_condition(conditions, "Available", ConditionStatus.TRUE)
        assert not remove_condition(conditions, "Degraded")
        assert len(conditions) == 1
