"""
Loader for additional policy definitions kept in YAML files.

Lets an organisation add settings to the compiled-in catalog without
touching code. A file holds a `policies` list:

    policies:
      - name: RemoteDesktopDisabled
        platform: windows
        native_key: SYSTEM\\CurrentControlSet\\Control\\Terminal Server\\fDenyTSConnections
        value_type: bool
        default: true
        description: Deny Remote Desktop connections
        category: remote
"""

import logging
from pathlib import Path
from typing import Iterable, List

import yaml
from pydantic import ValidationError

from ..core.models import PolicyDefinition
from ..exceptions import CatalogError
from .builtin import build_default_catalog
from .catalog import PolicyCatalog


logger = logging.getLogger(__name__)


def load_catalog_file(path) -> List[PolicyDefinition]:
    """
    Load policy definitions from a YAML file.

    Args:
        path: Path to the catalog definition file

    Returns:
        List[PolicyDefinition]: Parsed definitions

    Raises:
        CatalogError: If the file is unreadable or an entry is invalid
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(f"Failed to load catalog file {path}: {e}")

    if isinstance(data, dict):
        data = data.get('policies')
    if not isinstance(data, list):
        raise CatalogError(f"Catalog file {path} must contain a 'policies' list")

    definitions = []
    for index, entry in enumerate(data):
        definitions.append(_parse_definition(entry, path, index))

    logger.debug("Loaded %d policy definitions from %s", len(definitions), path)
    return definitions


def _parse_definition(entry, path: Path, index: int) -> PolicyDefinition:
    """Parse one catalog entry into a PolicyDefinition."""
    if not isinstance(entry, dict):
        raise CatalogError(f"{path}: policy #{index} is not a mapping")

    try:
        return PolicyDefinition(
            friendly_name=entry['name'],
            platform=str(entry['platform']).lower(),
            native_key=entry['native_key'],
            value_type=str(entry['value_type']).lower(),
            default_value=entry.get('default'),
            description=entry.get('description', ''),
            category=entry.get('category'),
        )
    except KeyError as e:
        raise CatalogError(f"{path}: policy #{index} missing required field {e}")
    except ValidationError as e:
        raise CatalogError(f"{path}: policy #{index} is invalid: {e}")


def build_catalog(extra_files: Iterable = ()) -> PolicyCatalog:
    """
    Build the runtime catalog: built-in definitions plus extra files.

    Raises:
        CatalogError: If a file is invalid or redefines an existing policy
    """
    catalog = build_default_catalog()
    for extra_file in extra_files or ():
        try:
            catalog = catalog.extend(load_catalog_file(extra_file))
        except ValueError as e:
            raise CatalogError(f"{extra_file}: {e}")
    return catalog
