"""Named downstream API options."""

from collections.abc import Mapping

from downstream_api.config.settings import Settings
from downstream_api.core.logging import get_logger
from downstream_api.models.options import DownstreamApiOptions


logger = get_logger(__name__)


class DownstreamApiOptionsMonitor:
    """Holds named options and hands out per-call snapshots.

    ``get`` always returns a clone, so refreshing an entry with ``set`` never
    affects calls that already captured their options.
    """

    def __init__(
        self,
        named_options: Mapping[str, DownstreamApiOptions] | None = None,
        default: DownstreamApiOptions | None = None,
    ) -> None:
        self._named: dict[str, DownstreamApiOptions] = dict(named_options or {})
        self._default = default or DownstreamApiOptions()

    @classmethod
    def from_settings(cls, settings: Settings) -> "DownstreamApiOptionsMonitor":
        """Build a monitor from the ``downstream_apis`` settings section."""
        return cls(settings.downstream_apis)

    @property
    def current_value(self) -> DownstreamApiOptions:
        """Snapshot of the default (unnamed) options."""
        return self._default.clone()

    @property
    def names(self) -> list[str]:
        return sorted(self._named)

    def get(self, name: str | None) -> DownstreamApiOptions:
        """Snapshot of the named options, the default options for unknown names."""
        if not name:
            return self.current_value
        options = self._named.get(name)
        if options is None:
            logger.debug("downstream_options_not_found", service_name=name)
            return self.current_value
        return options.clone()

    def set(self, name: str | None, options: DownstreamApiOptions) -> None:
        """Replace the options stored under ``name``."""
        if not name:
            self._default = options.clone()
        else:
            self._named[name] = options.clone()
        logger.debug("downstream_options_updated", service_name=name or "default")
