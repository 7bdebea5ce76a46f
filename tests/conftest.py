"""
Shared fixtures: recording display, scripted player, fake song lookup, vault on tmp_path.
"""

import time

import pytest

from helpers import FakeLookup, FakePlayer, RecordingDisplay, StubRefresher, TEST_KEY, TEST_TIMEOUT_SEC, USER
from hudify.core.credential_vault import CredentialVault
from hudify.core.crypto import TokenCipher
from hudify.core.session_machine import SessionModeMachine
from hudify.models.credentials import Credentials


@pytest.fixture
def cipher():
    return TokenCipher(TEST_KEY)


@pytest.fixture
def refresher():
    return StubRefresher()


@pytest.fixture
def vault(tmp_path, cipher, refresher):
    return CredentialVault(tmp_path / "spotify_tokens.json", cipher, refresher=refresher)


@pytest.fixture
def linked_vault(vault):
    vault.set(
        USER,
        Credentials(
            access_token="access-1",
            refresh_token="refresh-1",
            expires_at=int(time.time() * 1000) + 3_600_000,
        ),
    )
    return vault


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def factory_calls():
    return []


@pytest.fixture
def player_factory(player, factory_calls):
    def build(name, access_token):
        factory_calls.append((name, access_token))
        return player

    return build


@pytest.fixture
def lookup():
    return FakeLookup()


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def machine(linked_vault, lookup, player_factory):
    return SessionModeMachine.build(
        linked_vault,
        lookup,
        player_factory=player_factory,
        timeout_sec=TEST_TIMEOUT_SEC,
        settle_delay_sec=0,
        listening_prompt_ms=40,
    )
