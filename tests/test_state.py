"""
Tests for agegate.state module.

Tests state management including:
- Loading and saving raw JSON state files
- Aging and secondary state stores
- Missing, empty, and corrupted files loading as "no prior state"
- Write failures surfacing as StateError
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
import json

import pytest

from agegate.exceptions import StateError
from agegate.state import (
    AgingState,
    AgingStateStore,
    SecondaryState,
    SecondaryStateStore,
    format_timestamp,
    load_state,
    parse_timestamp,
    save_state,
)
from agegate.versioning import parse_version


class TestStateFileOperations:
    """Tests for loading and saving state files."""

    def test_save_and_load_state(self, tmp_path):
        """Test round-trip save and load of a raw dictionary."""
        state_file = tmp_path / "state.json"
        save_state({"candidateVersion": "1.2.3"}, state_file)

        assert load_state(state_file) == {"candidateVersion": "1.2.3"}

    def test_save_formatting(self, tmp_path):
        """Test sorted keys, indentation, and trailing newline."""
        state_file = tmp_path / "state.json"
        save_state({"b": 1, "a": 2}, state_file)

        text = state_file.read_text(encoding="utf-8")
        assert text == '{\n  "a": 2,\n  "b": 1\n}\n'

    def test_save_creates_parent_directory(self, tmp_path):
        """Test that save creates parent directories if needed."""
        state_file = tmp_path / "nested" / "dir" / "state.json"
        save_state({}, state_file)

        assert state_file.exists()

    def test_save_leaves_no_temp_file(self, tmp_path):
        """Test that the temporary file is renamed away."""
        state_file = tmp_path / "state.json"
        save_state({"a": 1}, state_file)

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_load_missing_file_raises(self, tmp_path):
        """Test that loading a nonexistent file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_state(tmp_path / "nonexistent.json")

    def test_load_invalid_json_raises(self, tmp_path):
        """Test that loading invalid JSON raises JSONDecodeError."""
        state_file = tmp_path / "invalid.json"
        state_file.write_text("This is not JSON", encoding="utf-8")

        with pytest.raises(json.JSONDecodeError):
            load_state(state_file)


class TestTimestamps:
    """Tests for timestamp formatting and parsing."""

    def test_format_uses_z_suffix(self):
        value = datetime(2025, 3, 1, 8, 30, tzinfo=UTC)
        assert format_timestamp(value) == "2025-03-01T08:30:00Z"

    def test_format_converts_to_utc(self):
        value = datetime(2025, 3, 1, 10, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value) == "2025-03-01T08:30:00Z"

    def test_parse_z_suffix(self):
        assert parse_timestamp("2025-03-01T08:30:00Z") == datetime(
            2025, 3, 1, 8, 30, tzinfo=UTC
        )

    def test_parse_naive_is_utc(self):
        """Test that a timestamp without offset is read as UTC."""
        parsed = parse_timestamp("2025-03-01T08:30:00")
        assert parsed.tzinfo is not None
        assert parsed == datetime(2025, 3, 1, 8, 30, tzinfo=UTC)

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestAgingStateStore:
    """Tests for the aging state store."""

    def _state(self) -> AgingState:
        return AgingState(
            candidate_version=parse_version("1.72.1"),
            first_seen_utc=datetime(2025, 3, 1, tzinfo=UTC),
            last_check_utc=datetime(2025, 3, 5, tzinfo=UTC),
        )

    def test_save_and_load(self, tmp_path):
        """Test round trip through the store."""
        store = AgingStateStore(tmp_path / "aging-state.json")
        store.save(self._state())

        assert store.load() == self._state()

    def test_file_layout(self, tmp_path):
        """Test the on-disk keys."""
        state_file = tmp_path / "aging-state.json"
        AgingStateStore(state_file).save(self._state())

        data = json.loads(state_file.read_text(encoding="utf-8"))
        assert data == {
            "candidateVersion": "1.72.1",
            "firstSeenUtc": "2025-03-01T00:00:00Z",
            "lastCheckUtc": "2025-03-05T00:00:00Z",
        }

    def test_missing_file_loads_none(self, tmp_path):
        assert AgingStateStore(tmp_path / "missing.json").load() is None

    def test_empty_file_loads_none(self, tmp_path):
        state_file = tmp_path / "aging-state.json"
        state_file.write_text("", encoding="utf-8")

        assert AgingStateStore(state_file).load() is None

    def test_corrupt_file_loads_none(self, tmp_path):
        state_file = tmp_path / "aging-state.json"
        state_file.write_text("{not json", encoding="utf-8")

        assert AgingStateStore(state_file).load() is None

    def test_non_object_loads_none(self, tmp_path):
        state_file = tmp_path / "aging-state.json"
        state_file.write_text("[1, 2, 3]", encoding="utf-8")

        assert AgingStateStore(state_file).load() is None

    @pytest.mark.parametrize(
        "data",
        [
            {"candidateVersion": "1.2.3", "firstSeenUtc": "2025-03-01T00:00:00Z"},
            {
                "candidateVersion": "not-a-version",
                "firstSeenUtc": "2025-03-01T00:00:00Z",
                "lastCheckUtc": "2025-03-01T00:00:00Z",
            },
            {
                "candidateVersion": "1.2.3",
                "firstSeenUtc": "last week",
                "lastCheckUtc": "2025-03-01T00:00:00Z",
            },
            {
                "candidateVersion": 123,
                "firstSeenUtc": "2025-03-01T00:00:00Z",
                "lastCheckUtc": "2025-03-01T00:00:00Z",
            },
        ],
    )
    def test_malformed_fields_load_none(self, tmp_path, data):
        """Test that missing or unparsable fields load as no prior state."""
        state_file = tmp_path / "aging-state.json"
        state_file.write_text(json.dumps(data), encoding="utf-8")

        assert AgingStateStore(state_file).load() is None

    def test_write_failure_raises_state_error(self, tmp_path):
        """Test that an unwritable location raises StateError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        store = AgingStateStore(blocker / "aging-state.json")

        with pytest.raises(StateError):
            store.save(self._state())


class TestSecondaryStateStore:
    """Tests for the secondary state store."""

    def test_save_and_load(self, tmp_path):
        store = SecondaryStateStore(tmp_path / "secondary-state.json")
        state = SecondaryState(
            last_installed_version=parse_version("2.0.1"),
            installed_at_utc=datetime(2025, 3, 2, 9, 0, tzinfo=UTC),
        )
        store.save(state)

        assert store.load() == state
        data = json.loads(store.state_file.read_text(encoding="utf-8"))
        assert data == {
            "installedAtUtc": "2025-03-02T09:00:00Z",
            "lastInstalledVersion": "2.0.1",
        }

    def test_missing_file_loads_none(self, tmp_path):
        assert SecondaryStateStore(tmp_path / "missing.json").load() is None
