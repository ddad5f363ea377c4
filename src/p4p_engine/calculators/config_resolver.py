"""Active P4P configuration lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from p4p_engine.calculators.types import P4PRules
from p4p_engine.exceptions import AmbiguousConfigurationError, ConfigurationNotFoundError

if TYPE_CHECKING:
    from p4p_engine.repository import P4PRepository


class ConfigurationResolver:
    """Resolves the single active configuration for a job type.

    Selection rules:
    1. Exactly one active configuration: use it
    2. None active: ConfigurationNotFoundError, never a built-in default
    3. More than one active: AmbiguousConfigurationError, never a guess

    Resolved rules are cached for the lifetime of the resolver, so create one
    per calculation run to pick up configuration edits.
    """

    def __init__(self, repository: P4PRepository):
        self.repository = repository
        self._cache: dict[str, P4PRules] = {}

    async def active_config_for(self, job_type: str) -> P4PRules:
        """Return the active rules for ``job_type``.

        Raises:
            ConfigurationNotFoundError: If no configuration is active
            AmbiguousConfigurationError: If several configurations are active
        """
        cached = self._cache.get(job_type)
        if cached is not None:
            return cached

        configs = await self.repository.get_active_configs(job_type)
        if not configs:
            raise ConfigurationNotFoundError(job_type)
        if len(configs) > 1:
            raise AmbiguousConfigurationError(
                job_type, [c.config_id for c in configs if c.config_id is not None]
            )

        self._cache[job_type] = configs[0]
        return configs[0]

    def clear(self) -> None:
        """Forget cached rules."""
        self._cache.clear()
