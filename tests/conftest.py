"""
Test fixtures and utilities for the policy reconciler test suite.

Provides an in-memory settings provider, a small catalog and sample
baselines used across multiple test modules.
"""

import json
import threading

import pytest

from policy_reconciler.catalog.catalog import PolicyCatalog
from policy_reconciler.core.models import (
    Platform, PolicyDefinition, PolicyScope, ValueType
)
from policy_reconciler.providers.base import SettingsProvider
from policy_reconciler.router import PolicyRouter


class FakeProvider(SettingsProvider):
    """In-memory provider keyed by (scope, native key)."""

    def __init__(self, values=None, platform=Platform.WINDOWS):
        super().__init__()
        self.platform = platform
        self.values = dict(values or {})
        self.read_errors = {}
        self.write_errors = {}
        self.ignore_writes = set()
        self.reads = []
        self.writes = []
        self._lock = threading.Lock()

    def read(self, native_key, scope):
        with self._lock:
            self.reads.append((native_key, scope))
        if native_key in self.read_errors:
            raise self.read_errors[native_key]
        return self.values.get((scope, native_key))

    def write(self, native_key, value, value_type, scope):
        with self._lock:
            self.writes.append((native_key, value, value_type, scope))
        if native_key in self.write_errors:
            raise self.write_errors[native_key]
        if native_key in self.ignore_writes:
            return
        # Store the native form, as the registry would
        if value_type == ValueType.BOOL:
            value = int(value)
        self.values[(scope, native_key)] = value


SCREENSAVER_KEY = r"SOFTWARE\Policies\Test\ScreenSaveTimeOut"
LOCKSCREEN_KEY = r"SOFTWARE\Policies\Test\NoLockScreen"
FIREWALL_KEY = r"SOFTWARE\Policies\Test\EnableFirewall"
TELEMETRY_KEY = r"SOFTWARE\Policies\Test\AllowTelemetry"
CERT_KEY = r"SOFTWARE\Policies\Test\CertHash"


def make_definition(name, native_key, value_type, default=None,
                    platform=Platform.WINDOWS, description=None):
    return PolicyDefinition(
        friendly_name=name,
        platform=platform,
        native_key=native_key,
        value_type=value_type,
        default_value=default,
        description=description or f"Test policy {name}",
    )


@pytest.fixture
def test_catalog():
    """A small catalog with one policy per value type."""
    return PolicyCatalog([
        make_definition("ScreenSaverTimeout", SCREENSAVER_KEY, ValueType.STRING, "900"),
        make_definition("DisableLockScreen", LOCKSCREEN_KEY, ValueType.BOOL, False),
        make_definition("FirewallEnabled", FIREWALL_KEY, ValueType.BOOL, True),
        make_definition("TelemetryLevel", TELEMETRY_KEY, ValueType.INT, 1),
        make_definition("CertificateHash", CERT_KEY, ValueType.BINARY, b""),
        make_definition("ScreenSaverTimeout", "com.apple.screensaver:idleTime",
                        ValueType.INT, 1200, platform=Platform.MACOS),
    ])


@pytest.fixture
def fake_provider():
    """Provider with a compliant, a drifted and an unset policy."""
    return FakeProvider({
        (PolicyScope.MACHINE, FIREWALL_KEY): 1,
        (PolicyScope.MACHINE, TELEMETRY_KEY): 3,
    })


@pytest.fixture
def router(test_catalog, fake_provider):
    """Router over the test catalog and fake provider."""
    return PolicyRouter(test_catalog, {Platform.WINDOWS: fake_provider})


@pytest.fixture
def three_entry_document():
    """Baseline with one compliant, one drifted and one missing policy."""
    return {
        "metadata": {"name": "Test Baseline", "version": "1.0"},
        "policies": {
            "FirewallEnabled": {
                "value": True,
                "description": "Firewall on",
                "severity": "High",
                "autoRemediate": True,
            },
            "TelemetryLevel": {
                "value": 1,
                "description": "Basic telemetry",
                "severity": "Medium",
                "autoRemediate": True,
            },
            "ScreenSaverTimeout": {
                "value": "600",
                "description": "Ten minute screen saver",
                "severity": "Low",
                "autoRemediate": False,
            },
        },
    }


@pytest.fixture
def baseline_file(tmp_path, three_entry_document):
    """Three-entry baseline written as JSON."""
    path = tmp_path / "baseline.json"
    path.write_text(json.dumps(three_entry_document))
    return path


