"""Sync context: everything one pass needs, resolved up front."""

from typing import Optional

from syncsearch.core.logging import ContextualLogger
from syncsearch.core.shared_models import SourceKind
from syncsearch.platform.sources._base import BaseSource
from syncsearch.platform.summarizers._base import BaseSummarizer
from syncsearch.platform.sync.progress import SyncProgress
from syncsearch.schemas.client import Client
from syncsearch.schemas.source_config import SourceConfig
from syncsearch.schemas.system_settings import SystemSettings


class SyncContext:
    """Context for one sync pass.

    Contains:
    - The client as loaded at the start of the pass
    - The source configurations in scope and, once created, their adapters
    - The summarization gateway
    - The progress reporter and a contextual logger
    """

    client: Client
    system_settings: Optional[SystemSettings]
    source_configs: list[SourceConfig]
    sources: dict[SourceKind, BaseSource]
    summarizer: BaseSummarizer
    progress: SyncProgress
    logger: ContextualLogger
    force_full_resync: bool
    source_filter: Optional[SourceKind]

    def __init__(
        self,
        client: Client,
        system_settings: Optional[SystemSettings],
        source_configs: list[SourceConfig],
        summarizer: BaseSummarizer,
        progress: SyncProgress,
        logger: ContextualLogger,
        force_full_resync: bool = False,
        source_filter: Optional[SourceKind] = None,
    ):
        """Initialize the sync context."""
        self.client = client
        self.system_settings = system_settings
        self.source_configs = source_configs
        self.sources = {}
        self.summarizer = summarizer
        self.progress = progress
        self.logger = logger
        self.force_full_resync = force_full_resync
        self.source_filter = source_filter

    @property
    def client_id(self):
        """Id of the client being synced."""
        return self.client.id

    @property
    def kinds_in_scope(self) -> set[SourceKind]:
        """Source kinds this pass reconciles."""
        return {SourceKind(config.kind) for config in self.source_configs}
