"""Policy catalog: friendly policy names mapped to native settings."""

from .builtin import build_default_catalog
from .catalog import PolicyCatalog
from .loader import build_catalog, load_catalog_file

__all__ = ["PolicyCatalog", "build_default_catalog", "build_catalog", "load_catalog_file"]
