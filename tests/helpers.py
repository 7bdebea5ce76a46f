"""
Test doubles shared across the suite.
"""

import base64

from hudify.models.credentials import TokenGrant
from hudify.models.playback import DeviceDescriptor, PlaybackSnapshot

TEST_KEY = base64.b64encode(bytes(range(32))).decode()
USER = "user-1"

# Short enough for tests to wait out
TEST_TIMEOUT_SEC = 0.05
WAIT_PAST_TIMEOUT_SEC = 0.2


class RecordingDisplay:
    def __init__(self):
        self.messages = []

    def show_message(self, text, duration_ms=None):
        self.messages.append((text, duration_ms))

    @property
    def texts(self):
        return [text for text, _ in self.messages]


class FakePlayer:
    """
    Records every call by method name.

    failures: method name -> list of exceptions raised on successive calls.
    on_list_devices: hook run inside list_devices (simulates work racing the call).
    """

    def __init__(self, devices=None, snapshot=None):
        self.calls = []
        self.devices = list(devices or [])
        self.snapshot = snapshot or PlaybackSnapshot(
            is_playing=True, track_name="Blue Monday", artists="New Order", album_name="Power"
        )
        self.failures = {}
        self.on_list_devices = None

    @property
    def call_names(self):
        return [c[0] for c in self.calls]

    async def _record(self, name, *args):
        self.calls.append((name,) + args)
        pending = self.failures.get(name)
        if pending:
            raise pending.pop(0)

    async def play(self):
        await self._record("play")

    async def pause(self):
        await self._record("pause")

    async def next(self):
        await self._record("next")

    async def previous(self):
        await self._record("previous")

    async def current_state(self):
        await self._record("current_state")
        return self.snapshot

    async def list_devices(self):
        await self._record("list_devices")
        if self.on_list_devices is not None:
            self.on_list_devices()
        return list(self.devices)

    async def transfer_playback(self, device_ids):
        await self._record("transfer_playback", list(device_ids))


class FakeLookup:
    def __init__(self, match=None, error=None):
        self.match = match
        self.error = error
        self.queries = []

    async def find_track(self, text):
        self.queries.append(text)
        if self.error is not None:
            raise self.error
        return self.match


class StubRefresher:
    def __init__(self, grant=None, error=None):
        self.grant = grant or TokenGrant(access_token="fresh-access", expires_in_seconds=3600)
        self.error = error
        self.calls = []

    async def __call__(self, refresh_token):
        self.calls.append(refresh_token)
        if self.error is not None:
            raise self.error
        return self.grant


def make_devices(n):
    return [DeviceDescriptor(id=f"dev-{i}", name=f"Device {i}", type="Speaker") for i in range(1, n + 1)]


