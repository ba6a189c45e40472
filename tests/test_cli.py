"""
Tests for the command line interface.

The provider factory is patched so every command runs against an
in-memory Windows host built from the built-in catalog.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from policy_reconciler.catalog import build_default_catalog
from policy_reconciler.cli import cli, console
from policy_reconciler.core.models import Platform, PolicyScope
from conftest import FakeProvider


CATALOG = build_default_catalog()


def native_key(name, platform=Platform.WINDOWS):
    return CATALOG.get(platform, name).native_key


@pytest.fixture
def host():
    """Windows host with one compliant and one drifted policy."""
    return FakeProvider({
        (PolicyScope.MACHINE, native_key("FirewallDomainProfileEnabled")): 1,
        (PolicyScope.MACHINE, native_key("TelemetryLevel")): 3,
    })


@pytest.fixture(autouse=True)
def patched_provider(host):
    with patch('policy_reconciler.core.orchestrator.ProviderFactory.get_provider',
               return_value=host) as get_provider:
        yield get_provider


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep rich from wrapping long policy names and registry paths."""
    monkeypatch.setattr(console, "width", 200)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def quiet_config(tmp_path):
    """Configuration that keeps log records out of command output."""
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: ERROR\n")
    return str(path)


@pytest.fixture
def cli_baseline(tmp_path):
    path = tmp_path / "corporate.json"
    path.write_text(json.dumps({
        "metadata": {"name": "Corporate Desktop", "version": "3.0"},
        "policies": {
            "FirewallDomainProfileEnabled": {"value": True, "severity": "High", "autoRemediate": True},
            "TelemetryLevel": {"value": 1, "severity": "Medium", "autoRemediate": True},
            "ScreenSaverTimeout": {"value": "600", "severity": "Low", "autoRemediate": False},
        },
    }))
    return str(path)


class TestCheckCommand:
    """Test the check command."""

    def test_check_reports_drift(self, runner, quiet_config, cli_baseline, host):
        """Test drift gives exit code 1 and no writes."""
        result = runner.invoke(cli, ['-c', quiet_config, 'check', cli_baseline, '-p', 'windows'])

        assert result.exit_code == 1
        assert "TelemetryLevel" in result.output
        assert "Corporate Desktop" in result.output
        assert host.writes == []

    def test_check_json_output(self, runner, quiet_config, cli_baseline):
        """Test the JSON report is printed to stdout."""
        result = runner.invoke(cli, ['-c', quiet_config, 'check', cli_baseline,
                                     '-p', 'windows', '--format', 'json'])

        data = json.loads(result.output)
        assert result.exit_code == 1
        assert data["summary"]["compliantPolicies"] == 1
        assert data["summary"]["nonCompliantPolicies"] == 1
        assert data["summary"]["missingPolicies"] == 1
        assert data["metadata"]["exitCode"] == 1

    def test_check_compliant_host(self, runner, quiet_config, cli_baseline, host):
        """Test a compliant host exits 0."""
        host.values[(PolicyScope.MACHINE, native_key("TelemetryLevel"))] = 1
        host.values[(PolicyScope.MACHINE, native_key("ScreenSaverTimeout"))] = "600"

        result = runner.invoke(cli, ['-c', quiet_config, 'check', cli_baseline,
                                     '-p', 'windows', '--format', 'summary'])

        assert result.exit_code == 0

    def test_check_writes_output_file(self, runner, quiet_config, cli_baseline, tmp_path):
        """Test --output saves the JSON report."""
        output = tmp_path / "out" / "report.json"

        result = runner.invoke(cli, ['-c', quiet_config, 'check', cli_baseline,
                                     '-p', 'windows', '-o', str(output)])

        assert result.exit_code == 1
        assert json.loads(output.read_text())["metadata"]["baselineName"] == "Corporate Desktop"

    def test_unwritable_output_is_critical(self, runner, quiet_config, cli_baseline, tmp_path):
        """Test an --output path that cannot be created exits 3."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        result = runner.invoke(cli, ['-c', quiet_config, 'check', cli_baseline, '-p', 'windows',
                                     '-o', str(blocker / "report.json")])

        assert result.exit_code == 3
        assert "Failed to write report" in result.output
        assert "TelemetryLevel" in result.output

    def test_check_user_scope(self, runner, quiet_config, cli_baseline, host):
        """Test --scope reads user values."""
        result = runner.invoke(cli, ['-c', quiet_config, 'check', cli_baseline,
                                     '-p', 'windows', '-s', 'user', '--format', 'json'])

        assert json.loads(result.output)["summary"]["missingPolicies"] == 3
        assert {scope for _, scope in host.reads} == {PolicyScope.USER}

    def test_malformed_baseline_is_critical(self, runner, quiet_config, tmp_path):
        """Test an invalid baseline exits 3."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"metadata": {"name": "No policies"}}))

        result = runner.invoke(cli, ['-c', quiet_config, 'check', str(path), '-p', 'windows'])

        assert result.exit_code == 3
        assert "Critical error" in result.output

    def test_unknown_policy_is_critical(self, runner, quiet_config, tmp_path, host):
        """Test a baseline naming an unknown policy exits 3."""
        path = tmp_path / "unknown.json"
        path.write_text(json.dumps({"policies": {"NotARealPolicy": {"value": 1}}}))

        result = runner.invoke(cli, ['-c', quiet_config, 'check', str(path), '-p', 'windows'])

        assert result.exit_code == 3
        assert host.reads == []

    def test_unsupported_host(self, runner, quiet_config, cli_baseline):
        """Test hosts without a policy store need an explicit platform."""
        with patch('policy_reconciler.core.orchestrator.detect_platform', return_value=None):
            result = runner.invoke(cli, ['-c', quiet_config, 'check', cli_baseline])

        assert result.exit_code == 3


class TestEnforceCommand:
    """Test the enforce command."""

    def test_enforce_with_yes(self, runner, quiet_config, cli_baseline, host):
        """Test enforcement remediates and skips as configured."""
        result = runner.invoke(cli, ['-c', quiet_config, 'enforce', cli_baseline,
                                     '-p', 'windows', '--yes', '--format', 'json'])

        data = json.loads(result.output)
        actions = {o["policyName"]: o["action"] for o in data["remediationOutcomes"]}
        assert actions == {"ScreenSaverTimeout": "Skipped", "TelemetryLevel": "Remediated"}
        assert result.exit_code == 1
        assert host.values[(PolicyScope.MACHINE, native_key("TelemetryLevel"))] == 1

    def test_enforce_failure_exit_code(self, runner, quiet_config, cli_baseline, host):
        """Test failed remediation exits 2."""
        host.ignore_writes.add(native_key("TelemetryLevel"))

        result = runner.invoke(cli, ['-c', quiet_config, 'enforce', cli_baseline,
                                     '-p', 'windows', '-y'])

        assert result.exit_code == 2

    def test_enforce_cancelled(self, runner, quiet_config, cli_baseline, host):
        """Test declining the confirmation changes nothing."""
        result = runner.invoke(cli, ['-c', quiet_config, 'enforce', cli_baseline, '-p', 'windows'],
                               input="n\n")

        assert "Operation cancelled" in result.output
        assert result.exit_code == 0
        assert host.writes == []

    def test_enforce_invalid_baseline_is_critical(self, runner, quiet_config, tmp_path, host):
        """Test enforcement stops with exit 3 before any write."""
        path = tmp_path / "unknown.json"
        path.write_text(json.dumps({"policies": {"NotARealPolicy": {"value": 1}}}))

        result = runner.invoke(cli, ['-c', quiet_config, 'enforce', str(path), '-p', 'windows', '-y'])

        assert result.exit_code == 3
        assert "Critical error" in result.output
        assert host.writes == []


class TestReportCommand:
    """Test the report command."""

    def test_html_report(self, runner, quiet_config, cli_baseline, tmp_path):
        """Test writing an HTML report."""
        output = tmp_path / "report.html"

        result = runner.invoke(cli, ['-c', quiet_config, 'report', cli_baseline,
                                     '-o', str(output), '--format', 'html', '-p', 'windows'])

        assert result.exit_code == 1
        assert "Corporate Desktop" in output.read_text(encoding="utf-8")

    def test_run_log_directory(self, runner, tmp_path, cli_baseline):
        """Test the configured output directory receives a run log."""
        runs = tmp_path / "runs"
        config = tmp_path / "config.yaml"
        config.write_text(
            "logging:\n  level: ERROR\n"
            f"reporting:\n  output_dir: '{runs.as_posix()}'\n  formats: [json, html]\n"
        )

        result = runner.invoke(cli, ['-c', str(config), 'check', cli_baseline, '-p', 'windows'])

        assert result.exit_code == 1
        assert sorted(p.suffix for p in runs.iterdir()) == [".html", ".json"]

    def test_unwritable_run_log_directory(self, runner, tmp_path, cli_baseline):
        """Test a run log directory below a regular file exits 3."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        config = tmp_path / "config.yaml"
        config.write_text(
            "logging:\n  level: ERROR\n"
            f"reporting:\n  output_dir: '{(blocker / 'runs').as_posix()}'\n"
        )

        for command in (['check', cli_baseline, '-p', 'windows'],
                        ['report', cli_baseline, '-p', 'windows', '-o', str(tmp_path / "r.json")]):
            result = runner.invoke(cli, ['-c', str(config)] + command)

            assert result.exit_code == 3
            assert "Failed to write run log" in result.output

    def test_unwritable_report_file(self, runner, quiet_config, cli_baseline, tmp_path):
        """Test a report path that cannot be written exits 3."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        result = runner.invoke(cli, ['-c', quiet_config, 'report', cli_baseline,
                                     '-o', str(blocker / "report.html"), '--format', 'html',
                                     '-p', 'windows'])

        assert result.exit_code == 3
        assert "Failed to write report" in result.output


class TestPoliciesCommands:
    """Test the policies command group."""

    def test_list_policies(self, runner, quiet_config):
        """Test listing the catalog for one platform."""
        result = runner.invoke(cli, ['-c', quiet_config, 'policies', 'list', '-p', 'macos'])

        assert result.exit_code == 0
        assert "FirewallState" in result.output
        assert "TelemetryLevel" not in result.output

    def test_get_policy(self, runner, quiet_config):
        """Test showing a single policy."""
        result = runner.invoke(cli, ['-c', quiet_config, 'policies', 'get', 'TelemetryLevel',
                                     '-p', 'windows'])

        assert result.exit_code == 0
        assert "AllowTelemetry" in result.output
        assert "3" in result.output

    def test_get_unset_policy(self, runner, quiet_config):
        """Test showing a policy that is not configured."""
        result = runner.invoke(cli, ['-c', quiet_config, 'policies', 'get', 'LegalNoticeText',
                                     '-p', 'windows'])

        assert result.exit_code == 0
        assert "not configured" in result.output

    def test_get_unknown_policy(self, runner, quiet_config):
        """Test unknown names exit 3."""
        result = runner.invoke(cli, ['-c', quiet_config, 'policies', 'get', 'Nope', '-p', 'windows'])

        assert result.exit_code == 3
        assert "Unknown policy" in result.output

    def test_set_policy(self, runner, quiet_config, host):
        """Test setting a policy from text."""
        result = runner.invoke(cli, ['-c', quiet_config, 'policies', 'set', 'DisableLockScreen',
                                     'true', '-p', 'windows'])

        assert result.exit_code == 0
        assert host.values[(PolicyScope.MACHINE, native_key("DisableLockScreen"))] == 1

    def test_set_policy_bad_value(self, runner, quiet_config, host):
        """Test text that does not parse as the declared type."""
        result = runner.invoke(cli, ['-c', quiet_config, 'policies', 'set', 'TelemetryLevel',
                                     'high', '-p', 'windows'])

        assert result.exit_code == 2
        assert host.writes == []

    def test_set_policy_not_persisted(self, runner, quiet_config, host):
        """Test a write that does not read back exits 2."""
        host.ignore_writes.add(native_key("TelemetryLevel"))

        result = runner.invoke(cli, ['-c', quiet_config, 'policies', 'set', 'TelemetryLevel',
                                     '0', '-p', 'windows'])

        assert result.exit_code == 2
