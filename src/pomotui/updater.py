"""Update checker.

Compares the installed version with the latest GitHub release.

Public API (the "studs"):
    compare_versions: Ordering of two dotted version strings
    fetch_latest_release: Latest release metadata from the GitHub API
    check_for_updates: Combined check for this platform
"""

import logging
import platform
import sys
from dataclasses import dataclass, field

import requests

from pomotui import __version__

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com/repos/pomotui/pomotui/releases/latest"
CHECK_TIMEOUT = 5


class UpdateError(Exception):
    """Raised when the latest release cannot be determined."""

    pass


@dataclass
class ReleaseAsset:
    name: str
    browser_download_url: str


@dataclass
class GitHubRelease:
    tag_name: str
    assets: list[ReleaseAsset] = field(default_factory=list)


@dataclass
class PlatformInfo:
    platform: str  # darwin | linux | windows
    arch: str  # x64 | arm64
    binary_name: str


@dataclass
class UpdateCheckResult:
    update_available: bool
    current_version: str
    latest_version: str
    download_url: str | None = None


def _version_parts(version: str) -> list[int]:
    parts = []
    for piece in version.strip().removeprefix("v").split("."):
        digits = ""
        for char in piece:
            if not char.isdigit():
                break
            digits += char
        parts.append(int(digits) if digits else 0)
    return parts


def compare_versions(current: str, latest: str) -> int:
    """Compare dotted versions.

    Returns:
        1 if ``latest`` is newer, -1 if ``current`` is newer, 0 if equal
    """
    current_parts = _version_parts(current)
    latest_parts = _version_parts(latest)

    for i in range(max(len(current_parts), len(latest_parts))):
        curr = current_parts[i] if i < len(current_parts) else 0
        lat = latest_parts[i] if i < len(latest_parts) else 0
        if lat > curr:
            return 1
        if curr > lat:
            return -1
    return 0


def get_platform_info() -> PlatformInfo:
    if sys.platform == "darwin":
        name = "darwin"
    elif sys.platform == "win32":
        name = "windows"
    else:
        name = "linux"

    machine = platform.machine().lower()
    arch = "arm64" if machine in ("arm64", "aarch64") else "x64"
    suffix = ".exe" if name == "windows" else ""
    return PlatformInfo(platform=name, arch=arch, binary_name=f"pomotui-{name}-{arch}{suffix}")


def get_current_version() -> str:
    return __version__


def fetch_latest_release(timeout: float = CHECK_TIMEOUT) -> GitHubRelease:
    """Fetch the latest release.

    Raises:
        UpdateError: On network failure, non-2xx status or unexpected body
    """
    try:
        response = requests.get(
            GITHUB_API_URL,
            headers={
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": "pomotui-updater",
            },
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise UpdateError(f"Could not reach GitHub: {e}") from e

    if not response.ok:
        raise UpdateError(f"GitHub API returned {response.status_code}")

    try:
        data = response.json()
        return GitHubRelease(
            tag_name=str(data["tag_name"]),
            assets=[
                ReleaseAsset(name=a["name"], browser_download_url=a["browser_download_url"])
                for a in data.get("assets", [])
            ],
        )
    except (ValueError, KeyError, TypeError) as e:
        raise UpdateError(f"Unexpected release data: {e}") from e


def check_for_updates(timeout: float = CHECK_TIMEOUT) -> UpdateCheckResult:
    """Check whether a newer release exists.

    Raises:
        UpdateError: If the release lookup fails
    """
    current_version = get_current_version()
    release = fetch_latest_release(timeout)
    platform_info = get_platform_info()

    asset = next((a for a in release.assets if a.name == platform_info.binary_name), None)
    result = UpdateCheckResult(
        update_available=compare_versions(current_version, release.tag_name) > 0,
        current_version=current_version,
        latest_version=release.tag_name,
        download_url=asset.browser_download_url if asset else None,
    )
    logger.debug(f"Update check: current={current_version} latest={release.tag_name}")
    return result


__all__ = [
    "GitHubRelease",
    "PlatformInfo",
    "ReleaseAsset",
    "UpdateCheckResult",
    "UpdateError",
    "check_for_updates",
    "compare_versions",
    "fetch_latest_release",
    "get_current_version",
    "get_platform_info",
]
