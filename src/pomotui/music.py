"""Background music for work sessions.

This module owns the external audio player process used to stream lofi radio,
and the read-only Spotify "now playing" display.

Philosophy:
- At most one player process alive at any time
- The player binary is probed once, at construction; never per call
- Failures (no player, spawn error, network error) become return values and
  status text, never exceptions
- Process cleanup on exit (atexit handler), so a crash cannot leave a stream
  playing after pomotui is gone

Public API (the "studs"):
    MusicManager: Mode-aware controller used by the dashboard
    RadioPlayer: Player process lifecycle for the station catalog
    SpotifyDisplay: Polls the Spotify Web API for the current track
    PlayerDetector: One-time probe for an installed player
    LOFI_STATIONS: Fixed station catalog
"""

import atexit
import logging
import shutil
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import requests

logger = logging.getLogger(__name__)


class MusicMode(Enum):
    """Music source for the lifetime of a MusicManager."""

    RADIO = "radio"
    SPOTIFY = "spotify"
    OFF = "off"


@dataclass(frozen=True)
class Station:
    """Entry in the station catalog."""

    name: str
    url: str


LOFI_STATIONS: tuple[Station, ...] = (
    Station("Lofi Girl", "https://play.streamafrica.net/lofiradio"),
    Station("ChillHop", "https://streams.fluxfm.de/Chillhop/mp3-128/streams.fluxfm.de/"),
    Station("Box Lofi", "https://stream.zeno.fm/f3wvbbqmdg8uv"),
    Station("Lofi Cafe", "https://stream.zeno.fm/0r0xa792kwzuv"),
    Station("Study Beats", "https://stream.zeno.fm/yn65fsaurfhvv"),
)


@dataclass
class MusicStatus:
    """Snapshot of radio playback for display."""

    is_playing: bool
    station_name: str
    station_index: int
    total_stations: int


@dataclass(frozen=True)
class PlayerCommand:
    """An installed player and the flags that make it quiet and headless."""

    name: str
    path: str
    args: tuple[str, ...]

    def build(self, url: str) -> list[str]:
        return [self.path, *self.args, url]


class PlayerDetector:
    """Find the first installed audio player, in preference order."""

    # Preference order matters: mpv handles flaky streams best
    PLAYER_ARGS: dict[str, tuple[str, ...]] = {
        "mpv": ("--no-video", "--really-quiet"),
        "ffplay": ("-nodisp", "-autoexit", "-loglevel", "quiet"),
        "cvlc": ("--intf", "dummy", "--quiet"),
        "mplayer": ("-really-quiet", "-noconsolecontrols"),
    }

    @classmethod
    def detect(cls, candidates: list[str] | None = None) -> PlayerCommand | None:
        """Probe PATH for a supported player.

        Args:
            candidates: Player names to try (default: all supported, in order)

        Returns:
            PlayerCommand for the first player found, or None
        """
        for name in candidates or list(cls.PLAYER_ARGS):
            path = shutil.which(name)
            if path:
                logger.debug(f"Found audio player {name} at {path}")
                return PlayerCommand(name=name, path=path, args=cls.PLAYER_ARGS.get(name, ()))
            logger.debug(f"Audio player not found: {name}")

        logger.warning("No audio player found (install mpv, ffplay, vlc or mplayer)")
        return None


class RadioPlayer:
    """Streams one station at a time through an external player process.

    There is no pause-in-place: pausing stops the process and resuming
    relaunches the stream from its live edge.
    """

    TERMINATE_TIMEOUT = 2

    def __init__(self, stations: tuple[Station, ...] = LOFI_STATIONS):
        """Initialize player and probe for a player binary.

        Args:
            stations: Station catalog (must not be empty)
        """
        if not stations:
            raise ValueError("Station catalog must not be empty")
        self.stations = stations
        self.current_station_index = 0
        self.player = PlayerDetector.detect()
        self._process: subprocess.Popen | None = None

    @property
    def is_playing(self) -> bool:
        if self._process is None:
            return False
        if self._process.poll() is not None:
            # Stream ended or player crashed on its own
            logger.debug(f"Player exited with code {self._process.returncode}")
            self._process = None
            return False
        return True

    def get_available_player(self) -> str | None:
        return self.player.name if self.player else None

    def play(self) -> bool:
        """Start streaming the selected station.

        Returns:
            True if a player process is running afterwards
        """
        if self.player is None:
            return False
        if self.is_playing:
            return True

        station = self.stations[self.current_station_index]
        try:
            self._process = subprocess.Popen(
                self.player.build(station.url),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Failed to start {self.player.name}: {e}")
            self._process = None
            return False

        logger.debug(f"Playing {station.name} with {self.player.name} (pid {self._process.pid})")
        return True

    def stop(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return

        try:
            process.terminate()
            try:
                process.wait(timeout=self.TERMINATE_TIMEOUT)
            except subprocess.TimeoutExpired:
                logger.warning(f"Force killing player process {process.pid}")
                process.kill()
                process.wait(timeout=1)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Error stopping player process: {e}")

    def pause(self) -> None:
        self.stop()

    def resume(self) -> bool:
        return self.play()

    def toggle(self) -> bool:
        """Stop if playing, else play.

        Returns:
            True if playing afterwards
        """
        if self.is_playing:
            self.stop()
            return False
        return self.play()

    def next_station(self) -> None:
        self.set_station((self.current_station_index + 1) % len(self.stations))

    def previous_station(self) -> None:
        self.set_station((self.current_station_index - 1) % len(self.stations))

    def set_station(self, index: int) -> None:
        """Select a station, switching the stream if one is playing.

        Out-of-range indexes are ignored.
        """
        if not 0 <= index < len(self.stations):
            return
        was_playing = self.is_playing
        self.stop()
        self.current_station_index = index
        if was_playing:
            self.play()

    def get_current_station(self) -> Station:
        return self.stations[self.current_station_index]

    def get_stations(self) -> list[Station]:
        return list(self.stations)

    def get_status(self) -> MusicStatus:
        return MusicStatus(
            is_playing=self.is_playing,
            station_name=self.get_current_station().name,
            station_index=self.current_station_index,
            total_stations=len(self.stations),
        )


@dataclass
class SpotifyTrack:
    """Track reported by the Spotify currently-playing endpoint."""

    name: str
    artist: str
    album: str
    is_playing: bool


class SpotifyDisplay:
    """Read-only view of the user's Spotify playback.

    Polling runs on a daemon thread that only updates the cached track and
    invokes the callback; it never touches the session engine.
    """

    CURRENTLY_PLAYING_URL = "https://api.spotify.com/v1/me/player/currently-playing"
    API_TIMEOUT = 5

    def __init__(self, access_token: str | None = None, timeout: float = API_TIMEOUT):
        self.access_token = access_token
        self.timeout = timeout
        self._current_track: SpotifyTrack | None = None
        self._poll_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def set_access_token(self, token: str) -> None:
        self.access_token = token

    def is_configured(self) -> bool:
        return self.access_token is not None

    def get_cached_track(self) -> SpotifyTrack | None:
        return self._current_track

    def get_current_track(self) -> SpotifyTrack | None:
        """Fetch the current track.

        A failed request (network error, timeout, rejected token, malformed
        body) returns None and keeps the cached track. "Nothing playing"
        clears it.

        Returns:
            SpotifyTrack or None
        """
        if not self.access_token:
            return None

        try:
            response = requests.get(
                self.CURRENTLY_PLAYING_URL,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.debug(f"Spotify poll failed: {e}")
            return None

        if response.status_code == 204:
            self._current_track = None
            return None
        if response.status_code == 401:
            logger.warning("Spotify rejected the access token")
            return None
        if not response.ok:
            logger.debug(f"Spotify API returned {response.status_code}")
            return None

        try:
            data = response.json()
            item = data.get("item") if data else None
            if not item:
                return None
            track = SpotifyTrack(
                name=item["name"],
                artist=", ".join(artist["name"] for artist in item.get("artists", [])),
                album=item.get("album", {}).get("name", ""),
                is_playing=bool(data.get("is_playing", False)),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.debug(f"Unexpected Spotify response: {e}")
            return None

        self._current_track = track
        return track

    def start_polling(
        self, callback: Callable[[SpotifyTrack | None], None], interval: float = 5.0
    ) -> None:
        """Fetch now, then every ``interval`` seconds, on a background thread."""
        self.stop_polling()
        self._stop_event = threading.Event()
        stop_event = self._stop_event

        def poll_loop() -> None:
            while not stop_event.is_set():
                track = self.get_current_track()
                if stop_event.is_set():
                    break
                callback(track)
                if stop_event.wait(interval):
                    break

        self._poll_thread = threading.Thread(target=poll_loop, name="spotify-poll", daemon=True)
        self._poll_thread.start()
        logger.debug(f"Spotify polling every {interval}s")

    def stop_polling(self) -> None:
        self._stop_event.set()
        thread, self._poll_thread = self._poll_thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1)

    @property
    def is_polling(self) -> bool:
        return self._poll_thread is not None and self._poll_thread.is_alive()


def _truncate(text: str, limit: int, keep: int) -> str:
    return text[:keep] + "..." if len(text) > limit else text


class MusicManager:
    """Mode-aware music controller.

    Radio mode controls a local player process. Spotify mode only displays
    what the user is playing elsewhere; transport controls do nothing. Off
    mode does nothing at all. Transport methods return False when they do
    not apply.

    Example:
        >>> music = MusicManager(MusicMode.RADIO)
        >>> music.play()
        True
        >>> music.get_status_text()
        '♪ Lofi Girl'
        >>> music.cleanup()
    """

    def __init__(
        self,
        mode: MusicMode = MusicMode.RADIO,
        spotify_token: str | None = None,
        poll_interval: float = 5.0,
        stations: tuple[Station, ...] = LOFI_STATIONS,
    ):
        """Initialize music manager.

        Args:
            mode: Music source, fixed for this manager's lifetime
            spotify_token: Spotify access token (Spotify mode only)
            poll_interval: Seconds between Spotify polls
            stations: Radio station catalog
        """
        self.mode = mode
        self.radio = RadioPlayer(stations)
        self.spotify = SpotifyDisplay(spotify_token)
        self._on_status_change: Callable[[str], None] | None = None
        self._cleaned_up = False

        if mode is MusicMode.SPOTIFY and spotify_token:
            self.spotify.start_polling(self._handle_track, poll_interval)

        # Register cleanup handler for process exit
        atexit.register(self.cleanup)

    def _handle_track(self, track: SpotifyTrack | None) -> None:
        if self._on_status_change is None:
            return
        if track is None:
            # Nothing playing or poll failed; the display text may still have changed
            self._on_status_change(self.get_status_text())
        else:
            self._on_status_change(f"{track.name} - {track.artist}")

    def set_on_status_change(self, callback: Callable[[str], None] | None) -> None:
        """Register the status listener. Called from the polling thread."""
        self._on_status_change = callback

    def play(self) -> bool:
        if self.mode is not MusicMode.RADIO:
            return False
        return self.radio.play()

    def stop(self) -> None:
        if self.mode is MusicMode.RADIO:
            self.radio.stop()

    def pause(self) -> None:
        self.stop()

    def resume(self) -> bool:
        return self.play()

    def toggle(self) -> bool:
        if self.mode is not MusicMode.RADIO:
            return False
        return self.radio.toggle()

    def next_station(self) -> bool:
        if self.mode is not MusicMode.RADIO:
            return False
        self.radio.next_station()
        return True

    def previous_station(self) -> bool:
        if self.mode is not MusicMode.RADIO:
            return False
        self.radio.previous_station()
        return True

    def get_mode(self) -> MusicMode:
        return self.mode

    def get_status(self) -> MusicStatus:
        status = self.radio.get_status()
        status.is_playing = self.is_playing()
        return status

    def get_status_text(self) -> str:
        if self.mode is MusicMode.OFF:
            return "Music: Off"

        if self.mode is MusicMode.SPOTIFY:
            track = self.spotify.get_cached_track()
            if track and track.is_playing:
                name = _truncate(track.name, 20, 17)
                artist = _truncate(track.artist, 15, 12)
                return f"♪ {name} - {artist}"
            return "♪ Spotify: Not playing"

        if not self.has_player():
            return "♪ No player found"
        status = self.radio.get_status()
        state = "" if status.is_playing else " (paused)"
        return f"♪ {status.station_name}{state}"

    def is_playing(self) -> bool:
        if self.mode is MusicMode.RADIO:
            return self.radio.is_playing
        if self.mode is MusicMode.SPOTIFY:
            track = self.spotify.get_cached_track()
            return track.is_playing if track else False
        return False

    def has_player(self) -> bool:
        if self.mode is MusicMode.RADIO:
            return self.radio.get_available_player() is not None
        return True

    def cleanup(self) -> None:
        """Stop playback and polling. Safe to call any number of times."""
        self.radio.stop()
        self.spotify.stop_polling()
        if not self._cleaned_up:
            self._cleaned_up = True
            atexit.unregister(self.cleanup)
            logger.debug("Music cleanup complete")


__all__ = [
    "LOFI_STATIONS",
    "MusicManager",
    "MusicMode",
    "MusicStatus",
    "PlayerCommand",
    "PlayerDetector",
    "RadioPlayer",
    "SpotifyDisplay",
    "SpotifyTrack",
    "Station",
]
