"""
Reconciliation engine.

Drives one run through Idle -> BaselineLoaded -> Assessed ->
(EnforcementRequested -> Enforced | EnforcementSkipped) -> Reported ->
Terminal and decides the run's exit code.
"""

import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TypeVar, Union

from ..baseline.loader import BaselineLoader
from ..exceptions import (
    AccessDeniedError, BaselineInvalidError, ProviderError, UnknownPolicyError
)
from ..router import PolicyRouter
from .models import (
    Baseline, BaselineEntry, ComplianceResult, ComplianceStatus, ExitCode,
    Platform, PolicyScope, RemediationAction, RemediationOutcome,
    RemediationReport, ReportMetadata, ReportSummary
)
from .values import normalize_expected, values_equal


logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class EngineState(str, Enum):
    """States of a reconciliation run."""
    IDLE = "Idle"
    BASELINE_LOADED = "BaselineLoaded"
    ASSESSED = "Assessed"
    ENFORCEMENT_REQUESTED = "EnforcementRequested"
    ENFORCED = "Enforced"
    ENFORCEMENT_SKIPPED = "EnforcementSkipped"
    REPORTED = "Reported"
    TERMINAL = "Terminal"


_TRANSITIONS = {
    EngineState.IDLE: {EngineState.BASELINE_LOADED},
    EngineState.BASELINE_LOADED: {EngineState.ASSESSED},
    EngineState.ASSESSED: {EngineState.ENFORCEMENT_REQUESTED, EngineState.ENFORCEMENT_SKIPPED},
    EngineState.ENFORCEMENT_REQUESTED: {EngineState.ENFORCED},
    EngineState.ENFORCED: {EngineState.REPORTED},
    EngineState.ENFORCEMENT_SKIPPED: {EngineState.REPORTED},
    EngineState.REPORTED: {EngineState.TERMINAL},
    EngineState.TERMINAL: set(),
}

REMEDIATION_DISABLED = "Remediation disabled for this policy"


def compute_exit_code(summary: ReportSummary, enforce: bool,
                      baseline_loaded: bool = True) -> ExitCode:
    """
    Decide the exit code of a run from its counts alone.

    Args:
        summary: Compliance and remediation counts
        enforce: Whether enforcement was requested
        baseline_loaded: False if the baseline could not be loaded

    Returns:
        ExitCode: Worst-case outcome of the run
    """
    if not baseline_loaded:
        return ExitCode.CRITICAL_ERROR

    drifted = summary.non_compliant_policies + summary.missing_policies
    if not enforce:
        return ExitCode.SUCCESS if drifted == 0 else ExitCode.NON_COMPLIANCE

    if summary.remediation_failures > 0:
        return ExitCode.REMEDIATION_FAILURES
    if drifted > summary.remediation_successes:
        return ExitCode.NON_COMPLIANCE
    return ExitCode.SUCCESS


class ReconciliationEngine:
    """
    Compares a baseline against the host and optionally enforces it.

    Each baseline entry is assessed and enforced independently: one
    failing provider call never stops the rest of the run.
    """

    def __init__(self, router: PolicyRouter, platform: Platform,
                 scope: PolicyScope = PolicyScope.MACHINE,
                 max_workers: int = 1, verify_writes: bool = True,
                 loader: Optional[BaselineLoader] = None):
        """
        Initialize the engine.

        Args:
            router: Policy router used for every read and write
            platform: Platform whose catalog entries the baseline refers to
            scope: Machine or user scope for Windows policies
            max_workers: Threads used for per-entry assess/enforce calls
            verify_writes: Read values back after enforcement writes
            loader: Baseline loader (default loader if None)
        """
        self.router = router
        self.platform = Platform(platform)
        self.scope = PolicyScope(scope)
        self.max_workers = max(1, int(max_workers))
        self.verify_writes = verify_writes
        self.loader = loader or BaselineLoader()
        self._reset()

    def _reset(self) -> None:
        self.state = EngineState.IDLE
        self.baseline: Optional[Baseline] = None
        self.enforcement_requested = False
        self.compliance_results: List[ComplianceResult] = []
        self.remediation_outcomes: List[RemediationOutcome] = []

    def _transition(self, new_state: EngineState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid engine transition {self.state.value} -> {new_state.value}")
        logger.debug("Engine state %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def run(self, baseline: Union[Baseline, str, Path], enforce: bool = False) -> RemediationReport:
        """
        Perform a complete reconciliation run.

        Args:
            baseline: Baseline object or path to a baseline document
            enforce: Write expected values for non-compliant entries

        Returns:
            RemediationReport: Complete run report

        Raises:
            BaselineInvalidError: If the baseline cannot be loaded or names
                a policy not in the catalog
        """
        if self.state != EngineState.IDLE:
            self._reset()

        self.load(baseline)
        self.assess()
        if enforce:
            self.enforce()
        else:
            self.skip_enforcement()
        report = self.report()
        self._transition(EngineState.TERMINAL)
        return report

    def load(self, baseline: Union[Baseline, str, Path]) -> Baseline:
        """
        Load the baseline and check every policy name against the catalog.

        Raises:
            BaselineInvalidError: If the document is unreadable, malformed or
                names an unknown policy (chained to the UnknownPolicyError)
        """
        if not isinstance(baseline, Baseline):
            baseline = self.loader.load(baseline)

        for entry in baseline.entries:
            try:
                self.router.catalog.get(self.platform, entry.policy_name)
            except UnknownPolicyError as e:
                raise BaselineInvalidError(f"Invalid baseline {baseline.metadata.name}: {e}") from e

        self.baseline = baseline
        self._transition(EngineState.BASELINE_LOADED)
        logger.info(
            "Loaded baseline %s %s with %d policies",
            baseline.metadata.name, baseline.metadata.version, len(baseline.entries)
        )
        return baseline

    def assess(self) -> List[ComplianceResult]:
        """Classify every baseline entry against the host."""
        if self.state != EngineState.BASELINE_LOADED:
            raise RuntimeError(f"Cannot assess in state {self.state.value}")

        results = self._map(self._assess_entry, self.baseline.entries)
        self.compliance_results = sorted(results, key=lambda r: r.policy_name)
        self._transition(EngineState.ASSESSED)
        return self.compliance_results

    def enforce(self) -> List[RemediationOutcome]:
        """Attempt one remediation for every non-compliant entry."""
        self._transition(EngineState.ENFORCEMENT_REQUESTED)
        self.enforcement_requested = True

        drifted = [r for r in self.compliance_results if r.status != ComplianceStatus.COMPLIANT]
        outcomes = self._map(self._enforce_result, drifted)
        self.remediation_outcomes = sorted(outcomes, key=lambda o: o.policy_name)
        self._transition(EngineState.ENFORCED)
        return self.remediation_outcomes

    def skip_enforcement(self) -> None:
        """Record that this run only assesses."""
        self._transition(EngineState.ENFORCEMENT_SKIPPED)
        self.enforcement_requested = False

    def report(self) -> RemediationReport:
        """Assemble the report and compute the exit code."""
        self._transition(EngineState.REPORTED)

        summary = ReportSummary.from_results(self.compliance_results, self.remediation_outcomes)
        exit_code = compute_exit_code(summary, self.enforcement_requested)
        baseline = self.baseline

        metadata = ReportMetadata(
            baseline_path=str(baseline.source_path) if baseline.source_path else None,
            baseline_name=baseline.metadata.name,
            baseline_version=baseline.metadata.version,
            platform=self.platform,
            scope=self.scope,
            enforcement_mode=self.enforcement_requested,
            exit_code=exit_code,
            hostname=socket.gethostname(),
        )

        logger.info(
            "Reconciliation finished: %d compliant, %d non-compliant, %d missing, exit code %d",
            summary.compliant_policies, summary.non_compliant_policies,
            summary.missing_policies, int(exit_code)
        )

        return RemediationReport(
            metadata=metadata,
            summary=summary,
            compliance_results=list(self.compliance_results),
            remediation_outcomes=list(self.remediation_outcomes),
        )

    def _assess_entry(self, entry: BaselineEntry) -> ComplianceResult:
        """Read one policy and classify it."""
        definition = self.router.catalog.get(self.platform, entry.policy_name)
        expected = normalize_expected(definition.value_type, entry.expected_value)

        try:
            setting = self.router.get_policy(self.platform, entry.policy_name, self.scope)
        except ProviderError as e:
            logger.warning("Could not read %s: %s", entry.policy_name, e)
            return self._result(entry, None, ComplianceStatus.MISSING, f"Read failed: {e}")

        if not setting.present:
            logger.info("%s is not configured", entry.policy_name)
            return self._result(entry, None, ComplianceStatus.MISSING, "Setting is not configured")

        if values_equal(setting.value, expected):
            return self._result(entry, setting.value, ComplianceStatus.COMPLIANT)

        logger.info(
            "Drift on %s: current %r, expected %r",
            entry.policy_name, setting.value, entry.expected_value
        )
        return self._result(entry, setting.value, ComplianceStatus.NON_COMPLIANT)

    def _enforce_result(self, result: ComplianceResult) -> RemediationOutcome:
        """Apply the expected value of one non-compliant entry."""
        name = result.policy_name

        if not result.auto_remediate:
            return RemediationOutcome(
                policy_name=name,
                action=RemediationAction.SKIPPED,
                old_value=result.current_value,
                success=False,
                message=REMEDIATION_DISABLED,
            )

        try:
            applied = self.router.set_policy(
                self.platform, name, result.expected_value, self.scope,
                verify=self.verify_writes
            )
        except AccessDeniedError as e:
            logger.warning("Access denied remediating %s: %s", name, e)
            return self._error_outcome(result, str(e))
        except ProviderError as e:
            logger.error("Failed to remediate %s: %s", name, e)
            return self._error_outcome(result, str(e))

        if applied:
            return RemediationOutcome(
                policy_name=name,
                action=RemediationAction.REMEDIATED,
                old_value=result.current_value,
                new_value=result.expected_value,
                success=True,
                message="Policy set to expected value",
            )

        return RemediationOutcome(
            policy_name=name,
            action=RemediationAction.ATTEMPTED_FAILED,
            old_value=result.current_value,
            new_value=result.expected_value,
            success=False,
            message="Value did not persist after writing",
        )

    def _result(self, entry: BaselineEntry, current, status: ComplianceStatus,
                message: Optional[str] = None) -> ComplianceResult:
        return ComplianceResult(
            policy_name=entry.policy_name,
            description=entry.description,
            severity=entry.severity,
            current_value=current,
            expected_value=entry.expected_value,
            status=status,
            auto_remediate=entry.auto_remediate,
            message=message,
        )

    @staticmethod
    def _error_outcome(result: ComplianceResult, message: str) -> RemediationOutcome:
        return RemediationOutcome(
            policy_name=result.policy_name,
            action=RemediationAction.ERROR,
            old_value=result.current_value,
            success=False,
            message=message,
        )

    def _map(self, func: Callable[[T], R], items: Iterable[T]) -> List[R]:
        """Apply func to every item, in worker threads if configured."""
        items = list(items)
        if self.max_workers == 1 or len(items) < 2:
            return [func(item) for item in items]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(func, items))
