"""
Host platform detection utilities.

Maps the running operating system onto the platforms that have a
native policy store, and checks for administrative privileges.
"""

import logging
import os
import platform
import sys
from typing import Optional

from ..core.models import Platform


logger = logging.getLogger(__name__)

_SYSTEM_PLATFORMS = {
    "windows": Platform.WINDOWS,
    "darwin": Platform.MACOS,
}


def detect_platform() -> Optional[Platform]:
    """
    Detect the platform of the current host.

    Returns:
        Optional[Platform]: Windows or macOS, or None for unsupported systems
    """
    system = platform.system().lower()
    detected = _SYSTEM_PLATFORMS.get(system)
    if detected is None:
        logger.debug("No native policy store for system %r", system)
    return detected


def is_admin() -> bool:
    """
    Check if the current process has administrative privileges.

    Returns:
        bool: True if running with admin/root privileges, False otherwise.
    """
    if sys.platform == "win32":
        try:
            import ctypes
            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (AttributeError, OSError):
            return False
    # Unix-like systems
    return hasattr(os, "geteuid") and os.geteuid() == 0
