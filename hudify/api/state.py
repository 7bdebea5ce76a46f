"""Shared application state (injected into routes)."""
from typing import Optional

from hudify.config import CREDENTIALS_PATH, TOKEN_ENCRYPTION_KEY
from hudify.core.credential_vault import CredentialVault
from hudify.core.crypto import TokenCipher
from hudify.core.players import PlayerFactory, create_player
from hudify.core.session_machine import SessionModeMachine
from hudify.core.settings_store import SettingsStore
from hudify.core.song_lookup import ShazamLookup
from hudify.core.spotify_client import refresh_access_token_async
from hudify.core.track_identification import SongLookup


class AppState:
    def __init__(
        self,
        vault: Optional[CredentialVault] = None,
        lookup: Optional[SongLookup] = None,
        settings_store: Optional[SettingsStore] = None,
        player_factory: PlayerFactory = create_player,
    ) -> None:
        self._vault = vault
        self._lookup = lookup
        self._player_factory = player_factory
        self._machine: Optional[SessionModeMachine] = None
        self.settings_store = settings_store or SettingsStore()

    @property
    def vault(self) -> CredentialVault:
        # Built on first use; an invalid TOKEN_ENCRYPTION_KEY raises here
        if self._vault is None:
            vault = CredentialVault(
                CREDENTIALS_PATH,
                TokenCipher(TOKEN_ENCRYPTION_KEY),
                refresher=refresh_access_token_async,
            )
            vault.load()
            self._vault = vault
        return self._vault

    @property
    def machine(self) -> SessionModeMachine:
        if self._machine is None:
            self._machine = SessionModeMachine.build(
                self.vault,
                self._lookup or ShazamLookup(),
                settings_store=self.settings_store,
                player_factory=self._player_factory,
            )
        return self._machine


_state = AppState()


def get_state() -> AppState:
    return _state
