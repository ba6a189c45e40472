"""
Core orchestrator for the policy reconciler.

The PolicyReconciler class wires configuration, catalog, provider,
router and engine together for one host platform.
"""

import logging
from typing import Dict, Optional

from ..catalog.loader import build_catalog
from ..exceptions import ProviderUnavailableError
from ..providers.base import SettingsProvider
from ..providers.factory import ProviderFactory
from ..reporting.generator import ReportGenerator
from ..router import PolicyRouter
from ..utils.os_detection import detect_platform
from .config import DEFAULT_CONFIG, load_config, merge_config
from .engine import ReconciliationEngine
from .models import Platform, PolicyScope, RemediationReport


logger = logging.getLogger(__name__)


class PolicyReconciler:
    """
    Main entry point for reconciliation runs.

    The catalog and the provider are built once per instance and
    shared by every run.
    """

    def __init__(self, config_path: Optional[str] = None,
                 platform: Optional[Platform] = None,
                 config: Optional[Dict] = None,
                 provider: Optional[SettingsProvider] = None):
        """
        Initialize the reconciler.

        Args:
            config_path: Path to configuration file (optional)
            platform: Target platform (detected from the host if None)
            config: Already loaded configuration (overrides config_path)
            provider: Provider adapter to use instead of the platform default

        Raises:
            ProviderUnavailableError: If no platform is given and the host is unsupported
            CatalogError: If an extra catalog file is invalid
        """
        if config is not None:
            self.config = merge_config(DEFAULT_CONFIG, config)
        else:
            self.config = load_config(config_path)
        engine_config = self.config["engine"]

        detected = platform or detect_platform()
        if detected is None:
            raise ProviderUnavailableError(
                "Host platform has no native policy store; pass an explicit platform"
            )
        self.platform = Platform(detected)

        self.catalog = build_catalog(self.config["catalog"].get("extra_definitions") or [])
        self.provider = provider or ProviderFactory.get_provider(
            self.platform, timeout=engine_config.get("provider_timeout", 30)
        )
        self.router = PolicyRouter(self.catalog, {self.platform: self.provider})
        self.report_generator = ReportGenerator()

    @property
    def scope(self) -> PolicyScope:
        """Default scope from configuration."""
        return PolicyScope(self.config["engine"].get("scope", "machine"))

    def create_engine(self, scope: Optional[PolicyScope] = None) -> ReconciliationEngine:
        """Create a fresh engine for one run."""
        engine_config = self.config["engine"]
        return ReconciliationEngine(
            self.router,
            self.platform,
            scope=scope or self.scope,
            max_workers=engine_config.get("max_workers", 1),
            verify_writes=engine_config.get("verify_writes", True),
        )

    def reconcile(self, baseline_path: str, enforce: bool = False,
                  scope: Optional[PolicyScope] = None) -> RemediationReport:
        """
        Assess (and optionally enforce) a baseline, then write the run log.

        Args:
            baseline_path: Path to the baseline document
            enforce: Write expected values for drifted policies
            scope: Machine or user scope (configured default if None)

        Returns:
            RemediationReport: Complete run report

        Raises:
            BaselineInvalidError: If the baseline cannot be loaded or names
                an unknown policy
            OSError: If the run log cannot be written to the output directory
        """
        engine = self.create_engine(scope)
        report = engine.run(baseline_path, enforce=enforce)

        output_dir = self.config["reporting"].get("output_dir")
        if output_dir:
            formats = self.config["reporting"].get("formats") or ["json"]
            self.report_generator.write_run_log(report, output_dir, formats)

        return report

    def generate_report(self, report: RemediationReport, format: str = "json",
                        output_path: Optional[str] = None,
                        template_path: Optional[str] = None) -> str:
        """Write a report to a file and return its path."""
        return self.report_generator.generate_report(
            report, format=format, output_path=output_path, template_path=template_path
        )
