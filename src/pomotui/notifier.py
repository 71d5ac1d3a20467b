"""End-of-session notification.

Rings the terminal bell through a rich console and plays the platform's
stock notification sound in a detached process. Nothing here waits for the
sound to finish, and a missing sound player is not an error.
"""

import logging
import subprocess
import sys

from rich.console import Console

logger = logging.getLogger(__name__)

LINUX_SOUND_COMMAND = (
    "paplay /usr/share/sounds/freedesktop/stereo/complete.oga 2>/dev/null"
    " || aplay /usr/share/sounds/alsa/Front_Center.wav 2>/dev/null"
    " || true"
)


def get_sound_command(platform: str | None = None) -> list[str]:
    """Command that plays a short notification sound on ``platform``."""
    platform = platform or sys.platform

    if platform == "darwin":
        return ["afplay", "/System/Library/Sounds/Glass.aiff"]
    if platform == "win32":
        return [
            "powershell",
            "-c",
            "(New-Object Media.SoundPlayer 'C:\\Windows\\Media\\notify.wav').PlaySync()",
        ]
    return ["sh", "-c", LINUX_SOUND_COMMAND]


def ring_bell(console: Console | None = None) -> None:
    """Ring the terminal bell.

    While a rich `Live` display is active, sys.stdout is redirected through
    it and a raw BEL character would be stripped, so the bell goes out as a
    control code on the given console.
    """
    console = console or Console()
    try:
        console.bell()
    except (OSError, ValueError) as e:
        logger.debug(f"Could not ring terminal bell: {e}")


def notify_user(sound: bool = True, console: Console | None = None) -> bool:
    """Ring the bell and start the notification sound.

    Args:
        sound: Also play the platform notification sound
        console: Console to ring the bell on (default: a new stdout console)

    Returns:
        True if the sound process was started
    """
    ring_bell(console)
    if not sound:
        return False

    command = get_sound_command()
    try:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Notification sound failed ({command[0]}): {e}")
        return False
    return True


__all__ = ["get_sound_command", "notify_user", "ring_bell"]
