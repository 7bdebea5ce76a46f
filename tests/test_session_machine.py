"""
Session mode machine: lifecycle, mode routing, gestures, settings.
"""

import asyncio

import pytest

from hudify.config import WEB_URL
from hudify.core.session_machine import LOGIN_PROMPT, SessionModeMachine, login_url
from hudify.core.settings_store import SettingsStore
from hudify.core.track_identification import LISTENING_MESSAGE, TIMEOUT_MESSAGE
from hudify.models.lookup import SongMatch
from hudify.models.session import Mode
from hudify.models.settings import UserSettings

from helpers import USER, WAIT_PAST_TIMEOUT_SEC, RecordingDisplay


def test_login_url_quotes_user_id():
    assert login_url("a b/c") == f"{WEB_URL}/login/a%20b%2Fc"


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_linked_user_sees_now_playing(self, machine, display, player):
        session = await machine.start_session(USER, display)

        assert session.mode is Mode.IDLE
        assert player.call_names == ["current_state"]
        assert display.texts == ["Now Playing\n\nSong: Blue Monday\nArtist: New Order\nAlbum: Power"]

    @pytest.mark.asyncio
    async def test_unlinked_user_gets_login_link(self, machine, display, player):
        await machine.start_session("stranger", display)

        assert display.messages == [(f"{LOGIN_PROMPT}\n\n{login_url('stranger')}", None)]
        assert player.calls == []

    @pytest.mark.asyncio
    async def test_one_state_per_user(self, machine):
        first = await machine.start_session(USER, RecordingDisplay())
        second = await machine.start_session(USER, RecordingDisplay())

        assert len(machine.registry) == 1
        assert machine.registry.get(USER) is second
        assert first is not second

    @pytest.mark.asyncio
    async def test_stale_connection_cannot_end_new_session(self, machine):
        old_display, new_display = RecordingDisplay(), RecordingDisplay()
        await machine.start_session(USER, old_display)
        await machine.start_session(USER, new_display)

        assert machine.end_session(USER, old_display) is False
        assert USER in machine.registry
        assert machine.end_session(USER, new_display) is True
        assert USER not in machine.registry

    @pytest.mark.asyncio
    async def test_end_session_cancels_pending_timeout(self, machine, display):
        await machine.start_session(USER, display)
        await machine.handle_transcript(USER, "Shazam")
        machine.end_session(USER)

        await asyncio.sleep(WAIT_PAST_TIMEOUT_SEC)
        assert TIMEOUT_MESSAGE not in display.texts

    @pytest.mark.asyncio
    async def test_start_uses_stored_settings(self, linked_vault, lookup, player_factory, factory_calls, display):
        store = SettingsStore()
        store.update(USER, {"preferred_player": "Custom"})
        machine = SessionModeMachine.build(
            linked_vault, lookup, settings_store=store, player_factory=player_factory, settle_delay_sec=0
        )

        session = await machine.start_session(USER, display)

        assert session.preferred_player == "custom"
        assert factory_calls == [("custom", "access-1")]

    @pytest.mark.asyncio
    async def test_notify_linked_shows_current(self, machine, display, player):
        await machine.notify_linked(USER)
        assert player.calls == []

        machine.registry.create(USER, display)
        await machine.notify_linked(USER)
        assert player.call_names == ["current_state"]


class TestTranscripts:
    @pytest.fixture
    def session(self, machine, display):
        return machine.registry.create(USER, display)

    @pytest.mark.asyncio
    async def test_idle_command(self, machine, session, player):
        await machine.handle_transcript(USER, "Next song please")
        assert player.call_names == ["next", "current_state"]

    @pytest.mark.asyncio
    async def test_unrecognized_text_does_nothing(self, machine, session, player, display):
        await machine.handle_transcript(USER, "nice weather today")
        assert player.calls == []
        assert display.messages == []

    @pytest.mark.asyncio
    async def test_non_final_transcripts_are_ignored(self, machine, session, player):
        await machine.handle_transcript(USER, "Next.", is_final=False)
        assert player.calls == []

    @pytest.mark.asyncio
    async def test_unknown_user_is_ignored(self, machine, player):
        await machine.handle_transcript("nobody", "Next.")
        assert player.calls == []

    @pytest.mark.asyncio
    async def test_trigger_wins_over_command(self, machine, session, player):
        await machine.handle_transcript(USER, "next. what song is this")
        assert session.mode is Mode.LISTENING_FOR_TRACK_ID
        assert player.calls == []

    @pytest.mark.asyncio
    async def test_list_devices_trigger(self, machine, session, player, display):
        await machine.handle_transcript(USER, "List devices")
        assert player.call_names == ["list_devices"]

    @pytest.mark.asyncio
    async def test_identify_then_answer(self, machine, session, lookup, display, player):
        lookup.match = SongMatch("Yesterday", "The Beatles")

        await machine.handle_transcript(USER, "What song is this?")
        assert display.messages[-1] == (LISTENING_MESSAGE, 40)

        # A command phrase while listening is a query, not a command
        await machine.handle_transcript(USER, "next. yesterday all my troubles")

        assert lookup.queries == ["next. yesterday all my troubles"]
        assert display.texts[-1] == "Song: Yesterday\nArtist: The Beatles"
        assert player.calls == []
        assert session.mode is Mode.IDLE

    @pytest.mark.asyncio
    async def test_late_transcript_after_timeout_is_an_idle_command(self, machine, session, lookup, display, player):
        await machine.handle_transcript(USER, "shazam")
        await asyncio.sleep(WAIT_PAST_TIMEOUT_SEC)

        assert display.texts[-1] == TIMEOUT_MESSAGE
        assert session.mode is Mode.IDLE

        await machine.handle_transcript(USER, "Next.")
        assert lookup.queries == []
        assert player.call_names == ["next", "current_state"]

    @pytest.mark.asyncio
    async def test_voice_disabled(self, machine, session, player):
        machine.apply_settings(USER, UserSettings(voice_commands_enabled=False))
        await machine.handle_transcript(USER, "Next.")
        assert player.calls == []

    @pytest.mark.asyncio
    async def test_preferred_player_survives_mode_changes(self, machine, session, factory_calls):
        machine.apply_settings(USER, UserSettings(preferred_player="custom"))

        await machine.handle_transcript(USER, "shazam")
        await machine.handle_transcript(USER, "some lyrics")
        await machine.handle_transcript(USER, "Pause.")

        assert session.preferred_player == "custom"
        assert factory_calls == [("custom", "access-1")]


class TestGestures:
    @pytest.fixture
    def session(self, machine, display):
        return machine.registry.create(USER, display)

    @pytest.mark.asyncio
    async def test_head_up_shows_current(self, machine, session, player):
        await machine.handle_head_position(USER, "Up")
        assert player.call_names == ["current_state"]

    @pytest.mark.asyncio
    async def test_head_down_does_nothing(self, machine, session, player):
        await machine.handle_head_position(USER, "down")
        assert player.calls == []

    @pytest.mark.asyncio
    async def test_head_up_ignored_outside_idle(self, machine, session, player):
        machine._track_flow.enter(session)
        await machine.handle_head_position(USER, "up")
        assert player.calls == []
        assert session.mode is Mode.LISTENING_FOR_TRACK_ID

    @pytest.mark.asyncio
    async def test_hud_disabled(self, machine, session, player):
        machine.apply_settings(USER, UserSettings(heads_up_display_enabled=False))
        await machine.handle_head_position(USER, "up")
        assert player.calls == []


def test_host_error_is_displayed(machine, display):
    machine.registry.create(USER, display)
    machine.handle_error(USER, "microphone unavailable")
    assert display.messages == [("Error: microphone unavailable", None)]


def test_host_error_for_unknown_user(machine):
    machine.handle_error("nobody", "boom")
    assert len(machine.registry) == 0
