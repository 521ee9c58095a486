"""Dependency license conflict checker."""

from __future__ import annotations

import logging
import re

from safevibes.adapters.base import BaseAdapter
from safevibes.models.schemas import LicenseConflictResult

logger = logging.getLogger(__name__)

# Prefix match so versioned ids like "GPL-3.0-only" are caught too
COPYLEFT_PATTERN = re.compile(r"^(?:AGPL|LGPL|GPL|SSPL)", re.IGNORECASE)


def is_copyleft(license_id: str | None) -> bool:
    """Check whether a license identifier belongs to a copyleft family."""
    if not license_id:
        return False
    return bool(COPYLEFT_PATTERN.match(license_id.strip()))


class LicenseConflictChecker:
    """Flags dependencies whose declared license is copyleft."""

    def __init__(self, registry: BaseAdapter) -> None:
        """Initialize the checker.

        Args:
            registry: Registry adapter used to resolve each package's license.
        """
        self.registry = registry

    async def check(self, names: list[str]) -> LicenseConflictResult:
        """Resolve licenses for dependencies and report copyleft conflicts.

        An empty name list returns no conflict without any network call.
        Unknown licenses never count as conflicts.
        """
        if not names:
            return LicenseConflictResult()

        licenses = await self.registry.get_licenses(names)
        conflicting = [name for name in names if is_copyleft(licenses.get(name))]
        if conflicting:
            logger.info(f"Copyleft dependencies found: {', '.join(conflicting)}")

        return LicenseConflictResult(
            has_conflict=bool(conflicting),
            conflicting_packages=conflicting,
            licenses=licenses,
        )
