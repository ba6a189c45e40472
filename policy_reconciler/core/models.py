"""
Data models for the policy reconciler using Pydantic for validation.
"""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used for every model default."""
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    """Supported host platforms."""
    WINDOWS = "windows"
    MACOS = "macos"


class PolicyScope(str, Enum):
    """Where a policy is stored. Only meaningful on Windows."""
    MACHINE = "machine"
    USER = "user"


class ValueType(str, Enum):
    """Declared value type of a policy in the native store."""
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    BINARY = "binary"
    FLOAT = "float"


class Severity(str, Enum):
    """Baseline entry severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ComplianceStatus(str, Enum):
    """Classification of a single baseline entry against the host."""
    COMPLIANT = "Compliant"
    NON_COMPLIANT = "NonCompliant"
    MISSING = "Missing"


class RemediationAction(str, Enum):
    """What enforcement did for a non-compliant entry."""
    REMEDIATED = "Remediated"
    ATTEMPTED_FAILED = "AttemptedFailed"
    SKIPPED = "Skipped"
    ERROR = "Error"


class ExitCode(IntEnum):
    """Process exit codes of a reconciliation run."""
    SUCCESS = 0
    NON_COMPLIANCE = 1
    REMEDIATION_FAILURES = 2
    CRITICAL_ERROR = 3


class PolicyDefinition(BaseModel):
    """Catalog entry describing how a friendly policy maps to a native setting."""
    model_config = ConfigDict(frozen=True)

    friendly_name: str = Field(..., description="Name used by baselines and callers")
    platform: Platform
    native_key: str = Field(..., description="Registry path\\value or domain:key")
    value_type: ValueType
    default_value: Any = None
    description: str = ""
    category: Optional[str] = Field(None, description="Free-form grouping, e.g. firewall")

    @field_validator('friendly_name', 'native_key')
    @classmethod
    def validate_not_empty(cls, v):
        """Names and keys must not be blank."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v


class CurrentSetting(BaseModel):
    """Value of a policy as read from the host, annotated with catalog data."""
    model_config = ConfigDict(frozen=True)

    friendly_name: str
    description: str
    platform: Platform
    native_key: str
    value_type: ValueType
    scope: PolicyScope
    value: Any = None
    present: bool = False


class BaselineEntry(BaseModel):
    """Expected state of one policy in a baseline document."""
    model_config = ConfigDict(frozen=True)

    policy_name: str
    expected_value: Any
    description: str = ""
    severity: Severity = Severity.MEDIUM
    auto_remediate: bool = False


class BaselineMetadata(BaseModel):
    """Identity of a baseline document."""
    name: str = "Unnamed Baseline"
    version: str = "0.0.0"
    description: Optional[str] = None

    @field_validator('version', mode='before')
    @classmethod
    def coerce_version(cls, v):
        """Accept numeric versions such as 1.2 written without quotes."""
        return str(v) if v is not None else "0.0.0"


class Baseline(BaseModel):
    """Parsed baseline: metadata plus entries sorted by policy name."""
    metadata: BaselineMetadata = Field(default_factory=BaselineMetadata)
    entries: List[BaselineEntry] = Field(default_factory=list)
    source_path: Optional[Path] = None

    @field_validator('entries')
    @classmethod
    def sort_entries(cls, v):
        """Keep entries in deterministic order."""
        return sorted(v, key=lambda e: e.policy_name)

    @property
    def policy_names(self) -> List[str]:
        return [entry.policy_name for entry in self.entries]


class _ReportModel(BaseModel):
    """Report models serialize with camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        ser_json_bytes='base64',
    )


class ComplianceResult(_ReportModel):
    """Classification of one baseline entry."""
    policy_name: str
    description: str = ""
    severity: Severity
    current_value: Any = None
    expected_value: Any = None
    status: ComplianceStatus
    auto_remediate: bool = False
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class RemediationOutcome(_ReportModel):
    """Result of enforcing one non-compliant entry."""
    policy_name: str
    action: RemediationAction
    old_value: Any = None
    new_value: Any = None
    success: bool = False
    message: str = ""
    timestamp: datetime = Field(default_factory=utcnow)


class ReportSummary(_ReportModel):
    """Counts derived from compliance results and remediation outcomes."""
    total_policies: int = 0
    compliant_policies: int = 0
    non_compliant_policies: int = 0
    missing_policies: int = 0
    remediation_attempts: int = 0
    remediation_successes: int = 0
    remediation_failures: int = 0
    remediation_skipped: int = 0

    @classmethod
    def from_results(cls, results: List[ComplianceResult],
                     outcomes: List[RemediationOutcome]) -> "ReportSummary":
        """Calculate summary statistics from results and outcomes."""
        failed_actions = (RemediationAction.ATTEMPTED_FAILED, RemediationAction.ERROR)
        return cls(
            total_policies=len(results),
            compliant_policies=sum(1 for r in results if r.status == ComplianceStatus.COMPLIANT),
            non_compliant_policies=sum(1 for r in results if r.status == ComplianceStatus.NON_COMPLIANT),
            missing_policies=sum(1 for r in results if r.status == ComplianceStatus.MISSING),
            remediation_attempts=sum(1 for o in outcomes if o.action != RemediationAction.SKIPPED),
            remediation_successes=sum(1 for o in outcomes if o.action == RemediationAction.REMEDIATED),
            remediation_failures=sum(1 for o in outcomes if o.action in failed_actions),
            remediation_skipped=sum(1 for o in outcomes if o.action == RemediationAction.SKIPPED),
        )


class ReportMetadata(_ReportModel):
    """Identity and outcome of a reconciliation run."""
    timestamp: datetime = Field(default_factory=utcnow)
    baseline_path: Optional[str] = None
    baseline_name: str
    baseline_version: str
    platform: Platform
    scope: PolicyScope
    enforcement_mode: bool
    exit_code: ExitCode
    hostname: Optional[str] = None


class RemediationReport(_ReportModel):
    """Terminal artifact of one reconciliation run."""
    metadata: ReportMetadata
    summary: ReportSummary
    compliance_results: List[ComplianceResult] = Field(default_factory=list)
    remediation_outcomes: List[RemediationOutcome] = Field(default_factory=list)

    @property
    def exit_code(self) -> ExitCode:
        return self.metadata.exit_code

    @property
    def drifted(self) -> List[ComplianceResult]:
        """Results that are not compliant."""
        return [r for r in self.compliance_results if r.status != ComplianceStatus.COMPLIANT]

    def to_dict(self) -> dict:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")
