"""
Windows Registry provider.

Reads and writes single registry values through PowerShell. Machine
scope targets HKEY_LOCAL_MACHINE, user scope HKEY_CURRENT_USER. Native
keys are written as '<key path>\\<value name>' relative to the hive.
"""

import json
import logging
from pathlib import Path
from typing import Any, Tuple

from ..core.models import Platform, PolicyScope, ValueType
from ..exceptions import (
    AccessDeniedError, MalformedValueError, ProviderError, SettingNotFoundError
)
from .base import COMMAND_NOT_FOUND, SettingsProvider


logger = logging.getLogger(__name__)

# ERROR_ACCESS_DENIED, used as the script exit code for permission failures
ACCESS_DENIED_EXIT = 5

HIVES = {
    PolicyScope.MACHINE: "HKEY_LOCAL_MACHINE",
    PolicyScope.USER: "HKEY_CURRENT_USER",
}

# Integers are unsigned; GetValue and New-ItemProperty use the signed forms
DWORD_MAX = 2 ** 32 - 1
QWORD_MAX = 2 ** 64 - 1

_READ_SCRIPT = """
$ErrorActionPreference = 'Stop'
try {{
    $key = Get-Item -LiteralPath {path}
}} catch [System.Management.Automation.ItemNotFoundException] {{
    @{{ 'found' = $false }} | ConvertTo-Json -Compress
    exit 0
}} catch [System.UnauthorizedAccessException], [System.Security.SecurityException] {{
    Write-Error $_.Exception.Message
    exit 5
}}
$value = $key.GetValue({name}, $null, 'DoNotExpandEnvironmentNames')
if ($null -eq $value) {{
    @{{ 'found' = $false }} | ConvertTo-Json -Compress
    exit 0
}}
@{{
    'found' = $true
    'kind' = $key.GetValueKind({name}).ToString()
    'value' = $value
}} | ConvertTo-Json -Compress
"""

_WRITE_SCRIPT = """
$ErrorActionPreference = 'Stop'
try {{
    $regPath = {path}
    if (-not (Test-Path -LiteralPath $regPath)) {{
        New-Item -Path $regPath -Force | Out-Null
    }}
    New-ItemProperty -LiteralPath $regPath -Name {name} -Value {value} -PropertyType {kind} -Force | Out-Null
}} catch [System.UnauthorizedAccessException], [System.Security.SecurityException] {{
    Write-Error $_.Exception.Message
    exit 5
}} catch {{
    Write-Error $_.Exception.Message
    exit 1
}}
"""


def ps_quote(text: str) -> str:
    """Quote a string as a PowerShell single-quoted literal."""
    return "'" + text.replace("'", "''") + "'"


def split_native_key(native_key: str) -> Tuple[str, str]:
    """Split 'SOFTWARE\\...\\ValueName' into key path and value name."""
    key_path, _, value_name = native_key.rpartition("\\")
    if not key_path or not value_name:
        raise MalformedValueError(f"Registry key must be '<path>\\<value>': {native_key}")
    return key_path, value_name


def to_signed(value: int, bits: int) -> int:
    """Reinterpret an unsigned integer as two's complement of the given width."""
    return value - (1 << bits) if value >= 1 << (bits - 1) else value


class WindowsRegistryProvider(SettingsProvider):
    """
    Registry adapter for Windows 10/11 systems.

    Uses PowerShell so that elevation and registry redirection behave
    the same way they do for administrators running the scripts by hand.
    """

    platform = Platform.WINDOWS

    def __init__(self, timeout: int = 30, powershell_path: str = None):
        """Initialize Windows registry provider."""
        super().__init__(timeout)
        self.powershell_path = powershell_path or self._find_powershell()

    def read(self, native_key: str, scope: PolicyScope) -> Any:
        """Read a registry value; returns None when key or value is absent."""
        key_path, value_name = split_native_key(native_key)
        script = _READ_SCRIPT.format(
            path=ps_quote(self._registry_path(key_path, scope)),
            name=ps_quote(value_name),
        )

        result = self._execute_powershell(script)
        self._raise_for_result(result, native_key, scope, "read")

        try:
            data = json.loads(result['stdout'])
        except json.JSONDecodeError as e:
            raise MalformedValueError(f"Unparseable registry output for {native_key}: {e}")

        if not data.get('found'):
            return None
        return self._decode(data.get('kind'), data.get('value'), native_key)

    def write(self, native_key: str, value: Any, value_type: ValueType,
              scope: PolicyScope) -> None:
        """Create or overwrite a registry value."""
        key_path, value_name = split_native_key(native_key)
        kind, literal = self._encode(value, value_type, native_key)
        script = _WRITE_SCRIPT.format(
            path=ps_quote(self._registry_path(key_path, scope)),
            name=ps_quote(value_name),
            value=literal,
            kind=kind,
        )

        result = self._execute_powershell(script)
        self._raise_for_result(result, native_key, scope, "write")
        logger.debug("Wrote %s\\%s (%s)", HIVES[scope], native_key, kind)

    def _registry_path(self, key_path: str, scope: PolicyScope) -> str:
        return f"Registry::{HIVES[PolicyScope(scope)]}\\{key_path}"

    def _raise_for_result(self, result: dict, native_key: str, scope: PolicyScope,
                          operation: str) -> None:
        """Translate a failed PowerShell run into a provider error."""
        if result['success']:
            return

        stderr = (result['stderr'] or '').strip()
        location = f"{HIVES[PolicyScope(scope)]}\\{native_key}"
        if result['exit_code'] == ACCESS_DENIED_EXIT:
            raise AccessDeniedError(f"Access denied on {operation} of {location}: {stderr}")
        if result['exit_code'] == COMMAND_NOT_FOUND:
            raise SettingNotFoundError(f"PowerShell not available: {stderr}")
        raise ProviderError(f"Registry {operation} failed for {location}: {stderr}")

    def _decode(self, kind: str, value: Any, native_key: str) -> Any:
        """Convert the JSON form of a registry value to a Python value."""
        if kind in ('DWord', 'QWord'):
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedValueError(f"{native_key}: {kind} value is not an integer: {value!r}")
            return value & (DWORD_MAX if kind == 'DWord' else QWORD_MAX)
        if kind in ('String', 'ExpandString'):
            return str(value)
        if kind == 'MultiString':
            return list(value) if isinstance(value, list) else [value]
        if kind == 'Binary':
            if isinstance(value, int):
                value = [value]
            try:
                return bytes(value or [])
            except (TypeError, ValueError) as e:
                raise MalformedValueError(f"{native_key}: invalid binary data: {e}")
        raise MalformedValueError(f"{native_key}: unsupported registry kind {kind!r}")

    def _encode(self, value: Any, value_type: ValueType, native_key: str) -> Tuple[str, str]:
        """Return (PropertyType, PowerShell literal) for a value."""
        if value_type == ValueType.BOOL:
            if not isinstance(value, bool):
                raise MalformedValueError(f"{native_key}: expected bool, got {value!r}")
            return 'DWord', '1' if value else '0'

        if value_type == ValueType.INT:
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedValueError(f"{native_key}: expected int, got {value!r}")
            if not 0 <= value <= QWORD_MAX:
                raise MalformedValueError(f"{native_key}: {value} is outside the unsigned 64-bit range")
            if value <= DWORD_MAX:
                return 'DWord', str(to_signed(value, 32))
            return 'QWord', str(to_signed(value, 64))

        if value_type == ValueType.STRING:
            if not isinstance(value, str):
                raise MalformedValueError(f"{native_key}: expected string, got {value!r}")
            return 'String', ps_quote(value)

        if value_type == ValueType.FLOAT:
            # The registry has no floating point kind
            if isinstance(value, bool) or not isinstance(value, float):
                raise MalformedValueError(f"{native_key}: expected float, got {value!r}")
            return 'String', ps_quote(repr(value))

        if value_type == ValueType.BINARY:
            if not isinstance(value, (bytes, bytearray)):
                raise MalformedValueError(f"{native_key}: expected bytes, got {value!r}")
            if not value:
                return 'Binary', '([byte[]]@())'
            items = ",".join(f"0x{b:02x}" for b in value)
            return 'Binary', f"([byte[]]({items}))"

        raise MalformedValueError(f"{native_key}: unsupported value type {value_type}")

    def _execute_powershell(self, script: str) -> dict:
        """Run a PowerShell script non-interactively."""
        return self.execute_command([
            self.powershell_path, "-NoProfile", "-NonInteractive",
            "-ExecutionPolicy", "Bypass", "-Command", script
        ])

    def _find_powershell(self) -> str:
        """Find PowerShell executable path."""
        # Try PowerShell 7+ first, then Windows PowerShell
        possible_paths = [
            r"C:\Program Files\PowerShell\7\pwsh.exe",
            r"C:\Program Files (x86)\PowerShell\7\pwsh.exe",
            r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe",
            r"C:\Windows\SysWOW64\WindowsPowerShell\v1.0\powershell.exe"
        ]

        for path in possible_paths:
            if Path(path).exists():
                return path

        # Fallback to PATH lookup
        return "powershell.exe"
