"""Core services: credential vault, recognizer, playback and selection flows, session machine."""
from hudify.core.credential_vault import CredentialVault
from hudify.core.session_machine import SessionModeMachine

__all__ = ["CredentialVault", "SessionModeMachine"]
