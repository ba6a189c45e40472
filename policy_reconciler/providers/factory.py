"""
Provider factory for creating platform-specific settings adapters.

The adapter is selected once at startup; everything above it is
written against the SettingsProvider interface only.
"""

from typing import Dict, Type

from ..core.models import Platform
from ..exceptions import ProviderUnavailableError
from .base import SettingsProvider
from .macos import MacDefaultsProvider
from .windows import WindowsRegistryProvider


class ProviderFactory:
    """
    Factory class for creating platform-specific settings providers.
    """

    _providers: Dict[Platform, Type[SettingsProvider]] = {
        Platform.WINDOWS: WindowsRegistryProvider,
        Platform.MACOS: MacDefaultsProvider,
    }

    @classmethod
    def get_provider(cls, platform: Platform, **kwargs) -> SettingsProvider:
        """
        Get provider for the specified platform.

        Args:
            platform: Host platform
            **kwargs: Passed to the provider constructor (e.g. timeout)

        Returns:
            SettingsProvider: Platform-specific adapter instance

        Raises:
            ProviderUnavailableError: If the platform is not supported
        """
        try:
            platform = Platform(platform)
        except ValueError:
            raise ProviderUnavailableError(f"Unsupported platform: {platform}")

        if platform not in cls._providers:
            raise ProviderUnavailableError(f"Unsupported platform: {platform.value}")

        return cls._providers[platform](**kwargs)

    @classmethod
    def get_supported_platforms(cls) -> list[Platform]:
        """
        Get list of supported platform types.

        Returns:
            list[Platform]: Platforms with a registered provider
        """
        return list(cls._providers.keys())
