"""Repository URL parsing and package registry adapters."""

from safevibes.adapters.base import BaseAdapter, ScanError, is_valid_repo_url, parse_repo_url
from safevibes.adapters.npm import NpmRegistryAdapter

__all__ = ["BaseAdapter", "NpmRegistryAdapter", "ScanError", "is_valid_repo_url", "parse_repo_url"]
