"""
Policy catalog: friendly policy name -> native provider parameters.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.models import Platform, PolicyDefinition
from ..exceptions import UnknownPolicyError


class PolicyCatalog:
    """
    Immutable table of policy definitions keyed by (platform, friendly name).

    Built once at startup and handed to the router. Lookups of unknown
    names raise UnknownPolicyError; there is no fallback definition.
    """

    def __init__(self, definitions: Iterable[PolicyDefinition]):
        """
        Build the catalog.

        Args:
            definitions: Policy definitions for any number of platforms

        Raises:
            ValueError: If two definitions share a (platform, name) pair
        """
        table: Dict[Tuple[Platform, str], PolicyDefinition] = {}
        for definition in definitions:
            key = (definition.platform, definition.friendly_name)
            if key in table:
                raise ValueError(
                    f"Duplicate policy '{definition.friendly_name}' "
                    f"for platform '{definition.platform.value}'"
                )
            table[key] = definition

        self._table = MappingProxyType(table)

    def __len__(self) -> int:
        return len(self._table)

    def get(self, platform: Platform, name: str) -> PolicyDefinition:
        """
        Look up a policy definition.

        Raises:
            UnknownPolicyError: If the platform has no policy with this name
        """
        try:
            return self._table[(Platform(platform), name)]
        except (KeyError, ValueError):
            raise UnknownPolicyError(platform, name) from None

    def contains(self, platform: Platform, name: str) -> bool:
        """Whether the platform has a policy with this name."""
        try:
            return (Platform(platform), name) in self._table
        except ValueError:
            return False

    def list(self, platform: Optional[Platform] = None) -> List[PolicyDefinition]:
        """
        List definitions sorted by friendly name.

        Args:
            platform: Restrict to one platform (all platforms if None)
        """
        if platform is not None:
            platform = Platform(platform)
        definitions = [
            d for d in self._table.values()
            if platform is None or d.platform == platform
        ]
        return sorted(definitions, key=lambda d: (d.friendly_name, d.platform.value))

    def platforms(self) -> List[Platform]:
        """Platforms that have at least one definition."""
        return sorted({platform for platform, _ in self._table}, key=lambda p: p.value)

    def extend(self, definitions: Iterable[PolicyDefinition]) -> "PolicyCatalog":
        """Return a new catalog with additional definitions."""
        return PolicyCatalog(list(self._table.values()) + list(definitions))
