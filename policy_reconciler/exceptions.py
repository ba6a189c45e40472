"""
Exception hierarchy for the policy reconciler.

Catalog and baseline errors are fatal for a reconciliation run.
Provider errors describe a single failed read or write against the
native settings store and are reported per policy.
"""


class PolicyReconcilerError(Exception):
    """Base class for all reconciler errors."""


class UnknownPolicyError(PolicyReconcilerError):
    """Raised when a (platform, friendly name) pair is not in the catalog."""

    def __init__(self, platform, name: str):
        self.platform = platform
        self.name = name
        platform_name = getattr(platform, "value", platform)
        super().__init__(f"Unknown policy '{name}' for platform '{platform_name}'")


class CatalogError(PolicyReconcilerError):
    """Raised when a catalog definition file cannot be loaded."""


class BaselineInvalidError(PolicyReconcilerError):
    """Raised when a baseline document is unreadable or malformed."""


class ProviderError(PolicyReconcilerError):
    """A native settings store operation failed."""


class AccessDeniedError(ProviderError):
    """The native store refused the operation (usually missing elevation)."""


class SettingNotFoundError(ProviderError):
    """The native store itself could not be reached."""


class MalformedValueError(ProviderError):
    """A native value could not be decoded or encoded."""


class PolicyValueError(ProviderError):
    """A value does not match the policy's declared value type."""


class ProviderUnavailableError(ProviderError):
    """No provider adapter is configured for the requested platform."""
