"""Native settings store adapters."""

from .base import SettingsProvider
from .factory import ProviderFactory
from .macos import MacDefaultsProvider
from .windows import WindowsRegistryProvider

__all__ = ["SettingsProvider", "ProviderFactory", "MacDefaultsProvider", "WindowsRegistryProvider"]
