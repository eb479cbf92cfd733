"""Tests for debounced auto-save."""

import time
import pytest
from unittest.mock import Mock

from errors import PersistenceError
from memory.autosave import DebouncedAutoSaver
from schemas.profile import AgentProfile


class TestDebouncedAutoSaver:
    """Test write coalescing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = Mock()
        self.profiles = [AgentProfile(agent_name=f"v{i}") for i in range(3)]

    def test_rapid_edits_are_coalesced(self):
        saver = DebouncedAutoSaver(self.store, delay_seconds=0.05)
        for profile in self.profiles:
            saver.schedule("tok", profile, [])

        time.sleep(0.5)

        self.store.save.assert_called_once_with("tok", self.profiles[-1], [])

    def test_flush_writes_immediately(self):
        saver = DebouncedAutoSaver(self.store, delay_seconds=60)
        saver.schedule("tok", self.profiles[0], [])

        saver.flush()

        self.store.save.assert_called_once()
        assert saver.pending_tokens() == []

    def test_tokens_are_independent(self):
        saver = DebouncedAutoSaver(self.store, delay_seconds=60)
        saver.schedule("a", self.profiles[0], [])
        saver.schedule("b", self.profiles[1], [])

        saver.flush("a")

        self.store.save.assert_called_once_with("a", self.profiles[0], [])
        assert saver.pending_tokens() == ["b"]
        saver.cancel()

    def test_save_now_supersedes_pending_state(self):
        saver = DebouncedAutoSaver(self.store, delay_seconds=60)
        saver.schedule("tok", self.profiles[0], [])

        assert saver.save_now("tok", self.profiles[2], [])
        saver.flush()

        self.store.save.assert_called_once_with("tok", self.profiles[2], [])

    def test_failures_are_reported_not_raised(self):
        self.store.save.side_effect = PersistenceError("disk full")
        on_error = Mock()
        saver = DebouncedAutoSaver(self.store, delay_seconds=60, on_error=on_error)
        saver.schedule("tok", self.profiles[0], [])

        saver.flush()

        on_error.assert_called_once()
        assert on_error.call_args.args[0] == "tok"
