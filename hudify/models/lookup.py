"""Song lookup result."""
from dataclasses import dataclass


@dataclass(frozen=True)
class SongMatch:
    track_name: str
    artist: str
