"""
Baseline loader for declarative policy documents.

Loads a baseline from JSON or YAML and turns its `policies` section
into sorted BaselineEntry objects. Structural problems are fatal.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..core.models import Baseline, BaselineEntry, BaselineMetadata, Severity
from ..exceptions import BaselineInvalidError


logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class BaselineLoader:
    """
    Parses baseline documents.

    A document looks like:

        {
          "metadata": {"name": "Corporate Desktop", "version": "1.2"},
          "policies": {
            "ScreenSaverTimeout": {
              "value": 600,
              "description": "Lock after ten minutes",
              "severity": "High",
              "autoRemediate": true
            }
          }
        }
    """

    def load(self, path) -> Baseline:
        """
        Load a baseline file.

        Args:
            path: Path to a .json, .yaml or .yml document

        Returns:
            Baseline: Parsed baseline

        Raises:
            BaselineInvalidError: If the file is unreadable or malformed
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8-sig') as f:
                if path.suffix.lower() in YAML_SUFFIXES:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except OSError as e:
            raise BaselineInvalidError(f"Cannot read baseline {path}: {e}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise BaselineInvalidError(f"Baseline {path} is not valid: {e}")

        baseline = self.parse(data, source=str(path))
        return baseline.model_copy(update={"source_path": path})

    def parse(self, data: Any, source: Optional[str] = None) -> Baseline:
        """
        Parse an already decoded baseline document.

        Raises:
            BaselineInvalidError: If the policies section is absent or malformed
        """
        where = source or "baseline"
        if not isinstance(data, dict):
            raise BaselineInvalidError(f"{where}: document must be a mapping")

        policies = data.get('policies')
        if policies is None:
            raise BaselineInvalidError(f"{where}: missing required 'policies' section")
        if not isinstance(policies, dict):
            raise BaselineInvalidError(f"{where}: 'policies' must map policy names to settings")

        metadata = self._parse_metadata(data.get('metadata'), where)
        entries = [
            self._parse_entry(name, settings, where)
            for name, settings in policies.items()
        ]

        logger.debug("Parsed %d baseline entries from %s", len(entries), where)
        return Baseline(metadata=metadata, entries=entries)

    def _parse_metadata(self, metadata: Any, where: str) -> BaselineMetadata:
        if metadata is None:
            return BaselineMetadata()
        if not isinstance(metadata, dict):
            raise BaselineInvalidError(f"{where}: 'metadata' must be a mapping")

        try:
            return BaselineMetadata(
                name=metadata.get('name') or BaselineMetadata().name,
                version=metadata.get('version'),
                description=metadata.get('description'),
            )
        except ValidationError as e:
            raise BaselineInvalidError(f"{where}: invalid metadata: {e}")

    def _parse_entry(self, name: Any, settings: Any, where: str) -> BaselineEntry:
        """Parse one policy mapping into a BaselineEntry."""
        if not isinstance(name, str) or not name.strip():
            raise BaselineInvalidError(f"{where}: policy names must be non-empty strings")
        if not isinstance(settings, dict):
            raise BaselineInvalidError(f"{where}: policy '{name}' must be a mapping")
        if 'value' not in settings:
            raise BaselineInvalidError(f"{where}: policy '{name}' has no 'value'")

        auto_remediate = settings.get('autoRemediate', False)
        if not isinstance(auto_remediate, bool):
            raise BaselineInvalidError(f"{where}: policy '{name}' autoRemediate must be true or false")

        try:
            return BaselineEntry(
                policy_name=name,
                expected_value=settings['value'],
                description=settings.get('description') or '',
                severity=self._parse_severity(settings.get('severity'), name),
                auto_remediate=auto_remediate,
            )
        except ValidationError as e:
            raise BaselineInvalidError(f"{where}: policy '{name}' is invalid: {e}")

    def _parse_severity(self, severity: Any, name: str) -> Severity:
        """Convert severity text to the enum, defaulting to medium."""
        if severity is None:
            return Severity.MEDIUM
        try:
            return Severity(str(severity).lower())
        except ValueError:
            logger.warning("Policy %s has unknown severity %r, using medium", name, severity)
            return Severity.MEDIUM


def load_baseline(path) -> Baseline:
    """Load a baseline file with the default loader."""
    return BaselineLoader().load(path)


def baseline_from_dict(data: Dict[str, Any]) -> Baseline:
    """Parse an in-memory baseline document."""
    return BaselineLoader().parse(data)
