"""
Session registry: one state per user, generation-guarded timeouts.
"""

import asyncio

import pytest

from hudify.core.session_registry import SessionRegistry
from hudify.models.playback import PlayerCommand
from hudify.models.session import DeviceSelectionContext, ListeningContext, Mode
from hudify.models.settings import UserSettings

from helpers import TEST_TIMEOUT_SEC, WAIT_PAST_TIMEOUT_SEC, RecordingDisplay


@pytest.fixture
def registry():
    return SessionRegistry()


def test_create_get_destroy(registry, display):
    state = registry.create("u", display)
    assert registry.get("u") is state
    assert len(registry) == 1
    assert state.mode is Mode.IDLE

    assert registry.destroy("u") is True
    assert registry.get("u") is None
    assert len(registry) == 0
    assert registry.destroy("u") is False


def test_recreate_replaces_previous_state(registry):
    first = registry.create("u", RecordingDisplay())
    second = registry.create("u", RecordingDisplay())
    assert registry.get("u") is second
    assert first is not second
    assert len(registry) == 1
    assert not registry.is_current(first, first.generation)


def test_update_bumps_generation_and_keeps_settings(registry, display):
    state = registry.create("u", display, UserSettings(preferred_player="other"))
    gen = state.generation
    registry.update(state, ListeningContext())
    assert state.generation == gen + 1
    assert state.mode is Mode.LISTENING_FOR_TRACK_ID
    registry.reset(state)
    assert state.mode is Mode.IDLE
    assert state.preferred_player == "other"


def test_pending_command_only_in_selection_mode(registry, display):
    state = registry.create("u", display)
    assert state.pending_command is None
    registry.update(state, DeviceSelectionContext(candidates=(), pending_command=PlayerCommand.NEXT))
    assert state.pending_command is PlayerCommand.NEXT
    registry.reset(state)
    assert state.pending_command is None


@pytest.mark.asyncio
async def test_timeout_resets_and_shows_message_once(registry, display):
    state = registry.create("u", display)
    registry.update(state, ListeningContext())
    registry.schedule_timeout(state, TEST_TIMEOUT_SEC, "timed out")

    await asyncio.sleep(WAIT_PAST_TIMEOUT_SEC)

    assert state.mode is Mode.IDLE
    assert display.texts == ["timed out"]
    assert state.timeout_handle is None


@pytest.mark.asyncio
async def test_rescheduling_cancels_previous_timer(registry, display):
    state = registry.create("u", display)
    registry.update(state, ListeningContext())
    registry.schedule_timeout(state, TEST_TIMEOUT_SEC, "first")
    first = state.timeout_handle
    registry.schedule_timeout(state, TEST_TIMEOUT_SEC, "second")

    assert first.cancelled()
    await asyncio.sleep(WAIT_PAST_TIMEOUT_SEC)
    assert display.texts == ["second"]


@pytest.mark.asyncio
async def test_transition_makes_pending_timer_stale(registry, display):
    state = registry.create("u", display)
    registry.update(state, ListeningContext())
    registry.schedule_timeout(state, TEST_TIMEOUT_SEC, "timed out")
    handle = state.timeout_handle

    registry.reset(state)

    assert handle.cancelled()
    await asyncio.sleep(WAIT_PAST_TIMEOUT_SEC)
    assert display.texts == []


def test_fired_timer_checks_generation(registry, display):
    state = registry.create("u", display)
    registry.update(state, ListeningContext())
    gen = state.generation
    # Simulate a callback that was already queued when the state moved on
    registry.update(state, ListeningContext())
    registry._on_timeout(state, gen, Mode.LISTENING_FOR_TRACK_ID, "stale")

    assert state.mode is Mode.LISTENING_FOR_TRACK_ID
    assert display.texts == []


@pytest.mark.asyncio
async def test_destroy_cancels_timer(registry, display):
    state = registry.create("u", display)
    registry.update(state, ListeningContext())
    registry.schedule_timeout(state, TEST_TIMEOUT_SEC, "timed out")

    registry.destroy("u")

    await asyncio.sleep(WAIT_PAST_TIMEOUT_SEC)
    assert display.texts == []
