"""
macOS preference domain provider.

Reads a whole domain with `defaults export` and parses the plist;
writes single keys with `defaults write` and a typed flag. Native keys
are '<domain>:<key>' where the domain may be an absolute plist path.
"""

import logging
import plistlib
from typing import Any, List, Tuple

from ..core.models import Platform, PolicyScope, ValueType
from ..exceptions import (
    AccessDeniedError, MalformedValueError, ProviderError, SettingNotFoundError
)
from .base import COMMAND_NOT_FOUND, SettingsProvider


logger = logging.getLogger(__name__)

_DENIED_MARKERS = ("permission denied", "operation not permitted", "could not write")
_MISSING_MARKERS = ("does not exist",)


def split_native_key(native_key: str) -> Tuple[str, str]:
    """Split 'com.apple.domain:key' into domain and key."""
    domain, _, key = native_key.partition(":")
    if not domain or not key:
        raise MalformedValueError(f"Preference key must be '<domain>:<key>': {native_key}")
    return domain, key


class MacDefaultsProvider(SettingsProvider):
    """
    Preference adapter for macOS.

    Scope is ignored: the domain in the native key already says whether
    a setting lives in the user or the system preferences.
    """

    platform = Platform.MACOS

    def __init__(self, timeout: int = 30, defaults_path: str = "/usr/bin/defaults"):
        """Initialize macOS defaults provider."""
        super().__init__(timeout)
        self.defaults_path = defaults_path

    def read(self, native_key: str, scope: PolicyScope) -> Any:
        """Read a preference; returns None when domain or key is absent."""
        domain, key = split_native_key(native_key)
        result = self.execute_command([self.defaults_path, "export", domain, "-"])

        if not result['success']:
            stderr = (result['stderr'] or '').lower()
            if any(marker in stderr for marker in _MISSING_MARKERS):
                return None
            self._raise_for_result(result, native_key, "read")

        if not result['stdout'].strip():
            return None

        try:
            preferences = plistlib.loads(result['stdout'].encode('utf-8'))
        except (plistlib.InvalidFileException, ValueError) as e:
            raise MalformedValueError(f"Unparseable preferences for {domain}: {e}")

        if not isinstance(preferences, dict):
            raise MalformedValueError(f"Preferences for {domain} are not a dictionary")
        return preferences.get(key)

    def write(self, native_key: str, value: Any, value_type: ValueType,
              scope: PolicyScope) -> None:
        """Write a preference with its native type flag."""
        domain, key = split_native_key(native_key)
        arguments = self._encode(value, value_type, native_key)

        result = self.execute_command([self.defaults_path, "write", domain, key] + arguments)
        self._raise_for_result(result, native_key, "write")
        logger.debug("Wrote %s %s", native_key, arguments[0])

    def _raise_for_result(self, result: dict, native_key: str, operation: str) -> None:
        if result['success']:
            return

        stderr = (result['stderr'] or '').strip()
        if result['exit_code'] == COMMAND_NOT_FOUND:
            raise SettingNotFoundError(f"defaults not available: {stderr}")
        if any(marker in stderr.lower() for marker in _DENIED_MARKERS):
            raise AccessDeniedError(f"Access denied on {operation} of {native_key}: {stderr}")
        raise ProviderError(f"defaults {operation} failed for {native_key}: {stderr}")

    def _encode(self, value: Any, value_type: ValueType, native_key: str) -> List[str]:
        """Coerce a typed value into `defaults write` arguments."""
        if value_type == ValueType.BOOL:
            if not isinstance(value, bool):
                raise MalformedValueError(f"{native_key}: expected bool, got {value!r}")
            return ["-bool", "TRUE" if value else "FALSE"]

        if value_type == ValueType.INT:
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedValueError(f"{native_key}: expected int, got {value!r}")
            return ["-int", str(value)]

        if value_type == ValueType.FLOAT:
            if isinstance(value, bool) or not isinstance(value, float):
                raise MalformedValueError(f"{native_key}: expected float, got {value!r}")
            return ["-float", repr(value)]

        if value_type == ValueType.STRING:
            if not isinstance(value, str):
                raise MalformedValueError(f"{native_key}: expected string, got {value!r}")
            return ["-string", value]

        if value_type == ValueType.BINARY:
            if not isinstance(value, (bytes, bytearray)):
                raise MalformedValueError(f"{native_key}: expected bytes, got {value!r}")
            return ["-data", bytes(value).hex()]

        raise MalformedValueError(f"{native_key}: unsupported value type {value_type}")
