"""
Policy Baseline Reconciler

Reconciles a declarative baseline of named configuration policies
against the Windows Registry or macOS preference domains, reporting
drift and optionally enforcing compliance.
"""

__version__ = "1.0.0"

from .router import PolicyRouter
from .core.engine import ReconciliationEngine, compute_exit_code
from .core.models import ExitCode, Platform, PolicyScope, RemediationReport
from .core.orchestrator import PolicyReconciler

__all__ = [
    "PolicyRouter",
    "ReconciliationEngine",
    "PolicyReconciler",
    "RemediationReport",
    "ExitCode",
    "Platform",
    "PolicyScope",
    "compute_exit_code",
]
