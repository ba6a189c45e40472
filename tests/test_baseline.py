"""
Unit tests for baseline loading.
"""

import json
import logging

import pytest

from policy_reconciler.baseline.loader import BaselineLoader, baseline_from_dict, load_baseline
from policy_reconciler.core.models import Severity
from policy_reconciler.exceptions import BaselineInvalidError


YAML_BASELINE = """
metadata:
  name: Corporate Mac
  version: 2.1
  description: Desktop hardening
policies:
  ScreenSaverTimeout:
    value: 600
    severity: critical
    autoRemediate: true
  GuestAccountEnabled:
    value: false
"""


class TestBaselineLoader:
    """Test loading baseline files."""

    def test_load_json(self, baseline_file):
        """Test loading the shared JSON baseline."""
        baseline = load_baseline(baseline_file)

        assert baseline.metadata.name == "Test Baseline"
        assert baseline.metadata.version == "1.0"
        assert baseline.policy_names == ["FirewallEnabled", "ScreenSaverTimeout", "TelemetryLevel"]
        assert baseline.source_path == baseline_file

    def test_entry_fields(self, baseline_file):
        """Test entry values, severity and remediation flag."""
        entries = {e.policy_name: e for e in load_baseline(baseline_file).entries}

        assert entries["FirewallEnabled"].expected_value is True
        assert entries["FirewallEnabled"].severity == Severity.HIGH
        assert entries["FirewallEnabled"].auto_remediate is True
        assert entries["ScreenSaverTimeout"].expected_value == "600"
        assert entries["ScreenSaverTimeout"].auto_remediate is False

    def test_load_yaml(self, tmp_path):
        """Test YAML baselines are supported."""
        path = tmp_path / "mac.yml"
        path.write_text(YAML_BASELINE)

        baseline = load_baseline(path)

        assert baseline.metadata.version == "2.1"
        assert baseline.metadata.description == "Desktop hardening"
        entries = {e.policy_name: e for e in baseline.entries}
        assert entries["ScreenSaverTimeout"].severity == Severity.CRITICAL
        assert entries["GuestAccountEnabled"].expected_value is False
        assert entries["GuestAccountEnabled"].auto_remediate is False
        assert entries["GuestAccountEnabled"].severity == Severity.MEDIUM

    def test_utf8_bom_accepted(self, tmp_path, three_entry_document):
        """Test files saved with a byte order mark still load."""
        path = tmp_path / "bom.json"
        path.write_bytes(b"\xef\xbb\xbf" + json.dumps(three_entry_document).encode("utf-8"))

        assert len(load_baseline(path).entries) == 3

    def test_missing_file(self, tmp_path):
        """Test a missing file is an invalid baseline."""
        with pytest.raises(BaselineInvalidError, match="Cannot read baseline"):
            load_baseline(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Test unparseable JSON is an invalid baseline."""
        path = tmp_path / "broken.json"
        path.write_text("{\"policies\": ")

        with pytest.raises(BaselineInvalidError, match="not valid"):
            load_baseline(path)

    def test_invalid_yaml(self, tmp_path):
        """Test unparseable YAML is an invalid baseline."""
        path = tmp_path / "broken.yaml"
        path.write_text("policies: [unclosed\n")

        with pytest.raises(BaselineInvalidError):
            load_baseline(path)


class TestBaselineParsing:
    """Test structural validation of baseline documents."""

    def test_missing_policies(self):
        """Test the policies section is required."""
        with pytest.raises(BaselineInvalidError, match="missing required 'policies'"):
            baseline_from_dict({"metadata": {"name": "x"}})

    @pytest.mark.parametrize("document", [
        [],
        "policies",
        {"policies": ["ScreenSaverTimeout"]},
        {"policies": {"ScreenSaverTimeout": 600}},
        {"policies": {"ScreenSaverTimeout": {"severity": "high"}}},
        {"policies": {"ScreenSaverTimeout": {"value": 1, "autoRemediate": "yes"}}},
        {"policies": {"": {"value": 1}}},
        {"metadata": "v1", "policies": {}},
    ])
    def test_malformed_documents(self, document):
        """Test malformed documents are rejected as a whole."""
        with pytest.raises(BaselineInvalidError):
            baseline_from_dict(document)

    def test_empty_policies(self):
        """Test an empty policies section is valid."""
        baseline = baseline_from_dict({"policies": {}})

        assert baseline.entries == []
        assert baseline.metadata.name == "Unnamed Baseline"

    def test_null_value_allowed(self):
        """Test an explicit null is kept as the expected value."""
        baseline = baseline_from_dict({"policies": {"LoginWindowText": {"value": None}}})

        assert baseline.entries[0].expected_value is None

    def test_unknown_severity_defaults_to_medium(self, caplog):
        """Test unknown severities fall back to medium with a warning."""
        caplog.set_level(logging.WARNING)
        baseline = baseline_from_dict({
            "policies": {"ScreenSaverTimeout": {"value": 600, "severity": "Urgent"}}
        })

        assert baseline.entries[0].severity == Severity.MEDIUM
        assert "unknown severity" in caplog.text

    def test_source_in_error_message(self):
        """Test errors name the document they came from."""
        with pytest.raises(BaselineInvalidError, match="corp.json"):
            BaselineLoader().parse({}, source="corp.json")
