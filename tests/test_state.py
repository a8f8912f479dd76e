"""Unit tests for TableState: parse generations, edits and snapshots."""

# pylint: disable=missing-class-docstring,missing-function-docstring

from aitable.state import ERROR, IDLE, READING, RECONCILED, TableState
from aitable.table import DEFAULT_HEADERS


class TestDefaults:

    def test_starts_with_default_table(self):
        state = TableState()
        assert state.headers == DEFAULT_HEADERS
        assert state.status == IDLE
        assert len(state.rows) == 1

    def test_view_numbers_rows(self):
        state = TableState()
        state.commit(state.begin("f.csv"), [{"SN": "", "A": "x"}, {"zone": "Z"}, {"SN": "", "A": "y"}])
        view = state.view()
        assert view["rows"] == [{"SN": 1, "A": "x"}, {"zone": "Z"}, {"SN": 1, "A": "y"}]
        assert view["headers"] == ["SN", "A"]


class TestGenerations:

    def test_commit_replaces_rows(self):
        state = TableState()
        token = state.begin("a.csv")
        assert state.status == READING
        assert state.commit(token, [{"x": 1}])
        assert state.rows == [{"x": 1}]
        assert state.status == RECONCILED

    def test_stale_commit_is_discarded(self):
        state = TableState()
        first = state.begin("a.csv")
        second = state.begin("b.csv")
        assert not state.commit(first, [{"stale": 1}])
        assert state.commit(second, [{"fresh": 1}])
        assert state.rows == [{"fresh": 1}]

    def test_reset_invalidates_in_flight_attempt(self):
        state = TableState()
        token = state.begin("a.csv")
        state.reset()
        assert not state.commit(token, [{"x": 1}])
        assert state.headers == DEFAULT_HEADERS

    def test_fail_keeps_previous_rows(self):
        state = TableState()
        state.commit(state.begin("a.csv"), [{"x": 1}])
        token = state.begin("b.csv")
        state.fail(token, "normalize", "no structured data located")
        assert state.rows == [{"x": 1}]
        assert state.status == ERROR
        assert state.view()["error"] == {"stage": "normalize", "message": "no structured data located"}

    def test_stale_fail_ignored(self):
        state = TableState()
        old = state.begin("a.csv")
        state.begin("b.csv")
        assert not state.fail(old, "model", "boom")
        assert state.error is None


class TestFixedHeaders:

    def test_commit_reconciles_to_fixed_schema(self):
        state = TableState(fixed_headers=["SN", "Activity"])
        state.commit(state.begin(), [{"Activity": "Dig", "Extra": 1}, {"zone": "Z"}])
        assert state.rows == [{"SN": "", "Activity": "Dig"}, {"zone": "Z"}]
        assert state.headers == ["SN", "Activity"]


class TestEdits:

    def test_set_cell_replaces_rows_list(self):
        state = TableState()
        state.commit(state.begin(), [{"a": 1}])
        before = state.rows
        state.set_cell(0, "a", 2)
        assert state.rows == [{"a": 2}]
        assert before == [{"a": 1}]

    def test_insert_and_remove(self):
        state = TableState()
        state.commit(state.begin(), [{"a": 1, "b": 2}])
        state.insert_row(0)
        assert state.rows == [{"a": 1, "b": 2}, {"a": "", "b": ""}]
        state.remove_row(0)
        assert state.rows == [{"a": "", "b": ""}]

    def test_snapshot_is_a_copy(self):
        state = TableState()
        state.commit(state.begin(), [{"a": "x", "b": "y"}])
        headers, rows = state.snapshot()
        rows[0]["b"] = "changed"
        assert state.rows == [{"a": "x", "b": "y"}]
        assert headers == ["a", "b"]

    def test_snapshot_keeps_first_column_values(self):
        state = TableState()
        state.commit(state.begin(), [{"Country": "Canada", "Area": "9.98M"}, {"zone": "Z"}, {"Country": "Chad"}])
        _, rows = state.snapshot()
        assert rows == [{"Country": "Canada", "Area": "9.98M"}, {"zone": "Z"}, {"Country": "Chad", "Area": ""}]
        assert state.view()["rows"][0]["Country"] == 1
