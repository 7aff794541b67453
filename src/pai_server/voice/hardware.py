"""
Host platform detection for voice provider selection.

Native providers only make sense on their own operating system; these
helpers keep the ``platform`` checks in one place so tests can patch
them.
"""

import logging
import platform

logger = logging.getLogger("pai-server.voice.hardware")


def is_mac() -> bool:
    """Detect if running on macOS (Darwin)."""
    return platform.system() == "Darwin"


def is_windows() -> bool:
    """Detect if running on Windows."""
    return platform.system() == "Windows"


def get_hardware_info() -> dict[str, str]:
    """Get a summary of host information relevant to voice output.

    Returns:
        Dictionary with hardware details:
        - "platform": Operating system name.
        - "machine": CPU architecture.
        - "family": "macos", "windows" or "other".
    """
    if is_mac():
        family = "macos"
    elif is_windows():
        family = "windows"
    else:
        family = "other"

    logger.debug("Host platform family: %s", family)
    return {
        "platform": platform.system(),
        "machine": platform.machine(),
        "family": family,
    }
