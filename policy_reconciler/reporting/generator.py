"""
Report generator for reconciliation results.

Writes the RemediationReport as JSON (the machine-readable contract)
or as a standalone HTML page for people.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Template

from ..core.models import RemediationReport


logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "html")

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Policy Compliance Report - {{ meta.baselineName }}</title>
    <style>
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
        .container { max-width: 1200px; margin: 0 auto; background: white; padding: 30px; border-radius: 8px; }
        .header { text-align: center; border-bottom: 3px solid #007bff; padding-bottom: 20px; }
        .score-card { background: {{ compliance_color }}; color: white; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0; }
        .metrics { display: grid; grid-template-columns: repeat(auto-fit, minmax(160px, 1fr)); gap: 16px; }
        .metric { background: #f8f9fa; padding: 15px; border-radius: 6px; text-align: center; border-left: 4px solid #007bff; }
        .metric-value { font-size: 2em; font-weight: bold; }
        table { width: 100%; border-collapse: collapse; margin: 20px 0; }
        th, td { border-bottom: 1px solid #dee2e6; padding: 8px; text-align: left; }
        .Compliant, .Remediated { color: #28a745; font-weight: bold; }
        .NonCompliant, .Error, .AttemptedFailed { color: #dc3545; font-weight: bold; }
        .Missing, .Skipped { color: #fd7e14; font-weight: bold; }
        .footer { margin-top: 40px; color: #6c757d; text-align: center; }
    </style>
</head>
<body>
<div class="container">
    <div class="header">
        <h1>Policy Compliance Report</h1>
        <p><strong>Baseline:</strong> {{ meta.baselineName }} {{ meta.baselineVersion }}</p>
        <p><strong>Host:</strong> {{ meta.hostname or "unknown" }} ({{ meta.platform }}, {{ meta.scope }} scope)</p>
        <p><strong>Generated:</strong> {{ report_generated_at }}</p>
    </div>

    <div class="score-card">
        <h2>{{ "%.1f"|format(compliance_score) }}% compliant</h2>
        <div>{{ "Enforcement" if meta.enforcementMode else "Assessment only" }} - exit code {{ meta.exitCode }}</div>
    </div>

    <div class="metrics">
        <div class="metric"><div class="metric-value">{{ summary.totalPolicies }}</div>Total</div>
        <div class="metric"><div class="metric-value">{{ summary.compliantPolicies }}</div>Compliant</div>
        <div class="metric"><div class="metric-value">{{ summary.nonCompliantPolicies }}</div>Non-compliant</div>
        <div class="metric"><div class="metric-value">{{ summary.missingPolicies }}</div>Missing</div>
        {% if meta.enforcementMode %}
        <div class="metric"><div class="metric-value">{{ summary.remediationSuccesses }}</div>Remediated</div>
        <div class="metric"><div class="metric-value">{{ summary.remediationFailures }}</div>Failed</div>
        {% endif %}
    </div>

    <h2>Compliance Results</h2>
    <table>
        <tr><th>Policy</th><th>Severity</th><th>Status</th><th>Current</th><th>Expected</th><th>Notes</th></tr>
        {% for result in report.complianceResults %}
        <tr>
            <td>{{ result.policyName }}<br><small>{{ result.description }}</small></td>
            <td>{{ result.severity|upper }}</td>
            <td class="{{ result.status }}">{{ result.status }}</td>
            <td>{{ result.currentValue }}</td>
            <td>{{ result.expectedValue }}</td>
            <td>{{ result.message or "" }}</td>
        </tr>
        {% endfor %}
    </table>

    {% if report.remediationOutcomes %}
    <h2>Remediation Outcomes</h2>
    <table>
        <tr><th>Policy</th><th>Action</th><th>Old value</th><th>New value</th><th>Message</th></tr>
        {% for outcome in report.remediationOutcomes %}
        <tr>
            <td>{{ outcome.policyName }}</td>
            <td class="{{ outcome.action }}">{{ outcome.action }}</td>
            <td>{{ outcome.oldValue }}</td>
            <td>{{ outcome.newValue }}</td>
            <td>{{ outcome.message }}</td>
        </tr>
        {% endfor %}
    </table>
    {% endif %}

    <div class="footer">Report generated by policy-reconciler</div>
</div>
</body>
</html>
"""


class ReportGenerator:
    """
    Generates reconciliation reports in JSON and HTML.
    """

    def generate_report(self, report: RemediationReport,
                        format: str = "json",
                        output_path: Optional[str] = None,
                        template_path: Optional[str] = None) -> str:
        """
        Generate a report file.

        Args:
            report: Reconciliation report to write
            format: Report format (json, html)
            output_path: Output file path (auto-generated if None)
            template_path: Custom jinja2 template for HTML reports

        Returns:
            str: Path to generated report file
        """
        format = format.lower()
        if format not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported report format: {format}")

        if not output_path:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            output_path = f"policy_report_{timestamp}.{format}"

        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        if format == "json":
            return self._generate_json_report(report, output_file)
        return self._generate_html_report(report, output_file, template_path)

    def write_run_log(self, report: RemediationReport, output_dir,
                      formats=("json",)) -> list:
        """
        Write the per-run report into a log directory.

        File names carry the baseline name and the run timestamp so
        consecutive runs never overwrite each other.
        """
        stamp = report.metadata.timestamp.strftime("%Y%m%dT%H%M%S%fZ")
        safe_name = "".join(
            c if c.isalnum() or c in "-_" else "_" for c in report.metadata.baseline_name
        )
        written = []
        for format in formats:
            path = Path(output_dir) / f"{safe_name}_{stamp}.{format}"
            written.append(self.generate_report(report, format=format, output_path=str(path)))
        logger.info("Run report written to %s", ", ".join(written))
        return written

    def _generate_json_report(self, report: RemediationReport, output_file: Path) -> str:
        """Generate JSON format report."""
        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2)

        return str(output_file)

    def _generate_html_report(self, report: RemediationReport, output_file: Path,
                              template_path: Optional[str] = None) -> str:
        """Generate HTML format report."""
        if template_path:
            with open(template_path, 'r', encoding='utf-8') as f:
                template_content = f.read()
        else:
            template_content = HTML_TEMPLATE

        template = Template(template_content, autoescape=True)
        html_content = template.render(**self._prepare_template_context(report))

        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(html_content)

        return str(output_file)

    def _prepare_template_context(self, report: RemediationReport) -> Dict:
        """Prepare context data for template rendering."""
        data = report.to_dict()
        summary = report.summary

        if summary.total_policies:
            compliance_score = summary.compliant_policies / summary.total_policies * 100.0
        else:
            compliance_score = 100.0

        if compliance_score >= 90:
            compliance_color = "#28a745"
        elif compliance_score >= 75:
            compliance_color = "#ffc107"
        elif compliance_score >= 50:
            compliance_color = "#fd7e14"
        else:
            compliance_color = "#dc3545"

        return {
            "report": data,
            "meta": data["metadata"],
            "summary": data["summary"],
            "compliance_score": compliance_score,
            "compliance_color": compliance_color,
            "report_generated_at": datetime.now().strftime("%B %d, %Y at %I:%M %p"),
        }
