"""
Base provider interface for native settings stores.

Defines the key/value interface that every platform-specific
adapter must implement. Adapters know nothing about friendly
policy names, baselines or compliance.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.models import Platform, PolicyScope, ValueType


logger = logging.getLogger(__name__)

# Shell convention for "command not found"
COMMAND_NOT_FOUND = 127


class SettingsProvider(ABC):
    """
    Abstract base class for native settings store adapters.

    Implementations perform raw reads and writes of a single
    native key and must be safe to call from several threads.
    """

    platform: Optional[Platform] = None

    def __init__(self, timeout: int = 30):
        """
        Initialize provider.

        Args:
            timeout: Timeout in seconds for each native store command
        """
        self.timeout = timeout

    @abstractmethod
    def read(self, native_key: str, scope: PolicyScope) -> Any:
        """
        Read a native setting.

        Args:
            native_key: Platform-specific key identifier
            scope: Machine or user scope

        Returns:
            Any: Raw native value, or None if the setting is not set

        Raises:
            AccessDeniedError: If the store refuses the read
            SettingNotFoundError: If the store itself is unreachable
            MalformedValueError: If the stored data cannot be parsed
        """
        pass

    @abstractmethod
    def write(self, native_key: str, value: Any, value_type: ValueType,
              scope: PolicyScope) -> None:
        """
        Write a native setting.

        Args:
            native_key: Platform-specific key identifier
            value: Value to store
            value_type: Declared type used for native coercion
            scope: Machine or user scope

        Raises:
            AccessDeniedError: If the store refuses the write
            MalformedValueError: If the value cannot be encoded
        """
        pass

    def execute_command(self, command: List[str], timeout: Optional[int] = None) -> Dict[str, Any]:
        """
        Execute a system command with timeout.

        Args:
            command: Command and arguments to execute
            timeout: Timeout in seconds (provider default if None)

        Returns:
            Dict[str, Any]: Execution result with stdout, stderr, and exit code
        """
        timeout = timeout or self.timeout
        start_time = datetime.now(timezone.utc)

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False
            )

            end_time = datetime.now(timezone.utc)
            execution_time_ms = int((end_time - start_time).total_seconds() * 1000)
            logger.debug("%s exited %s in %sms", command[0], result.returncode, execution_time_ms)

            return {
                'stdout': result.stdout,
                'stderr': result.stderr,
                'exit_code': result.returncode,
                'execution_time_ms': execution_time_ms,
                'success': result.returncode == 0
            }

        except subprocess.TimeoutExpired:
            return {
                'stdout': '',
                'stderr': f'Command timed out after {timeout} seconds',
                'exit_code': -1,
                'execution_time_ms': timeout * 1000,
                'success': False
            }
        except FileNotFoundError as e:
            return {
                'stdout': '',
                'stderr': str(e),
                'exit_code': COMMAND_NOT_FOUND,
                'execution_time_ms': 0,
                'success': False
            }
        except OSError as e:
            return {
                'stdout': '',
                'stderr': str(e),
                'exit_code': -1,
                'execution_time_ms': 0,
                'success': False
            }
