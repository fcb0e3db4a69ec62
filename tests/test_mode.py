"""
Unit tests for the Draft/Active mode controller.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket.mode import ModeController, is_active_mode_string


class TestModeController:
    """Tests for mode state and notifications."""

    def test_starts_in_draft(self):
        mode = ModeController()
        assert not mode.is_active()
        assert mode.is_draft()
        assert mode.mode_string == 'draft'

    def test_set_active_notifies_once(self):
        mode = ModeController()
        events = []
        mode.subscribe(events.append)

        mode.set_mode(True)

        assert mode.is_active()
        assert mode.mode_string == 'active'
        assert events == [{'changeType': 'bracketMode', 'bracketMode': True}]

    def test_repeated_set_still_notifies(self):
        mode = ModeController()
        events = []
        mode.subscribe(events.append)

        mode.set_mode(True)
        mode.set_mode(True)

        assert mode.is_active()
        assert len(events) == 2
        assert all(e['bracketMode'] is True for e in events)

    def test_transitions_both_ways(self):
        mode = ModeController()
        mode.set_mode(True)
        mode.set_mode(False)
        assert mode.is_draft()

    def test_unsubscribe(self):
        mode = ModeController()
        events = []
        unsubscribe = mode.subscribe(events.append)

        unsubscribe()
        mode.set_mode(True)

        assert events == []
        # Unsubscribing twice is harmless
        unsubscribe()

    def test_failing_listener_does_not_block_others(self):
        mode = ModeController()
        events = []

        def broken(event):
            raise RuntimeError("listener failed")

        mode.subscribe(broken)
        mode.subscribe(events.append)

        mode.set_mode(True)

        assert mode.is_active()
        assert len(events) == 1

    def test_listeners_called_in_subscription_order(self):
        mode = ModeController()
        calls = []
        mode.subscribe(lambda e: calls.append('first'))
        mode.subscribe(lambda e: calls.append('second'))

        mode.set_mode(False)

        assert calls == ['first', 'second']

    def test_independent_instances(self):
        a = ModeController()
        b = ModeController()
        a.set_mode(True)
        assert not b.is_active()


def test_mode_string_parsing():
    assert is_active_mode_string('active')
    assert not is_active_mode_string('draft')
    assert not is_active_mode_string(None)
