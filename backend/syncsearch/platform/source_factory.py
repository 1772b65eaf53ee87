"""Factory for source adapters."""

from typing import Optional

from syncsearch.platform import sources  # noqa: F401
from syncsearch.platform.decorators import get_source_class
from syncsearch.platform.sources._base import BaseSource
from syncsearch.schemas.source_config import SourceConfig


class SourceFactory:
    """Creates the adapter registered for a source configuration."""

    @staticmethod
    async def create(config: SourceConfig, logger: Optional[object] = None) -> BaseSource:
        """Instantiate and configure the adapter for ``config``.

        Args:
            config: The client's source configuration
            logger: Optional contextual logger handed to the adapter

        Returns:
            A ready-to-use source adapter
        """
        source_cls = get_source_class(config.kind)
        instance = await source_cls.create(config)
        if logger is not None:
            instance.set_logger(logger.with_context(source=str(config.kind)))
        return instance
