"""
Policy router: the public get/set surface over friendly policy names.

Resolves a friendly name through the catalog, dispatches to the
platform's provider adapter and decodes native values through the
policy's declared value type.
"""

import logging
from typing import Any, List, Mapping, Optional

from .catalog.catalog import PolicyCatalog
from .core.models import CurrentSetting, Platform, PolicyDefinition, PolicyScope
from .core.values import check_value, decode_native, values_equal
from .exceptions import ProviderUnavailableError
from .providers.base import SettingsProvider


logger = logging.getLogger(__name__)


class PolicyRouter:
    """
    Uniform GetPolicy/SetPolicy/ListAvailablePolicies entry point.

    Both the catalog and the providers are injected so tests and
    alternative stores can be substituted.
    """

    def __init__(self, catalog: PolicyCatalog,
                 providers: Mapping[Platform, SettingsProvider]):
        """
        Initialize the router.

        Args:
            catalog: Policy catalog used for every lookup
            providers: Provider adapter per platform
        """
        self.catalog = catalog
        self.providers = {Platform(platform): provider for platform, provider in providers.items()}

    def get_policy(self, platform: Platform, name: str,
                   scope: PolicyScope = PolicyScope.MACHINE) -> CurrentSetting:
        """
        Read the current value of a policy.

        Args:
            platform: Target platform
            name: Friendly policy name
            scope: Machine or user scope (ignored on macOS)

        Returns:
            CurrentSetting: Value decoded to the declared type; present=False when unset

        Raises:
            UnknownPolicyError: If the policy is not in the catalog
            ProviderError: If the native store read fails
        """
        definition = self.catalog.get(platform, name)
        scope = PolicyScope(scope)
        provider = self._provider_for(definition.platform)

        raw = provider.read(definition.native_key, scope)
        if raw is None:
            logger.debug("%s (%s) is not set", name, definition.native_key)
            return self._setting(definition, scope, None, present=False)

        value = decode_native(definition.value_type, raw)
        return self._setting(definition, scope, value, present=True)

    def set_policy(self, platform: Platform, name: str, value: Any,
                   scope: PolicyScope = PolicyScope.MACHINE,
                   verify: bool = True) -> bool:
        """
        Write a policy value.

        The value must already have the policy's declared type; the
        provider performs the native coercion (e.g. bool -> DWORD 0/1).

        Args:
            platform: Target platform
            name: Friendly policy name
            value: Value to write
            scope: Machine or user scope (ignored on macOS)
            verify: Read the value back and compare after writing

        Returns:
            bool: True if written (and, with verify, read back unchanged)

        Raises:
            UnknownPolicyError: If the policy is not in the catalog
            PolicyValueError: If the value does not match the declared type
            ProviderError: If the native store write fails
        """
        definition = self.catalog.get(platform, name)
        scope = PolicyScope(scope)
        provider = self._provider_for(definition.platform)
        value = check_value(definition.value_type, value)

        provider.write(definition.native_key, value, definition.value_type, scope)
        logger.info("Set %s = %r (%s)", name, value, scope.value)

        if not verify:
            return True

        current = self.get_policy(definition.platform, name, scope)
        if not current.present or not values_equal(current.value, value):
            logger.warning("%s read back as %r after writing %r", name, current.value, value)
            return False
        return True

    def list_available_policies(self, platform: Optional[Platform] = None) -> List[PolicyDefinition]:
        """
        List catalog definitions sorted by friendly name.

        Args:
            platform: Restrict to one platform (all platforms if None)
        """
        return self.catalog.list(platform)

    def _provider_for(self, platform: Platform) -> SettingsProvider:
        try:
            return self.providers[platform]
        except KeyError:
            raise ProviderUnavailableError(f"No provider configured for platform '{platform.value}'")

    @staticmethod
    def _setting(definition: PolicyDefinition, scope: PolicyScope, value: Any,
                 present: bool) -> CurrentSetting:
        return CurrentSetting(
            friendly_name=definition.friendly_name,
            description=definition.description,
            platform=definition.platform,
            native_key=definition.native_key,
            value_type=definition.value_type,
            scope=scope,
            value=value,
            present=present,
        )
