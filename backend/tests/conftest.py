"""Common test fixtures and configuration for pytest."""

import pytest

from syncsearch import schemas
from syncsearch.core.shared_models import SourceKind
from syncsearch.platform.sync.orchestrator import ReconciliationEngine
from syncsearch.search.index import SearchIndex
from tests.fixtures.fakes import FakeSource, FakeStore, FakeSummarizer

FOLDER_URL = "https://drive.google.com/drive/folders/1AbCdEfGhIjKlMnOp"


@pytest.fixture
def store():
    """In-memory durable store with a summarization key configured."""
    return FakeStore()


@pytest.fixture
def index():
    """Empty search index."""
    return SearchIndex()


@pytest.fixture
def folder_source():
    """Folder source with a change feed."""
    return FakeSource(SourceKind.FOLDER, supports_changes=True)


@pytest.fixture
def table_source():
    """Table source without a change feed."""
    return FakeSource(SourceKind.TABLE)


@pytest.fixture
def summarizer():
    """Recording summarizer."""
    return FakeSummarizer()


@pytest.fixture
def events():
    """Progress events collected by ``on_progress``."""
    return []


@pytest.fixture
def source_factory(folder_source, table_source):
    """Adapter factory returning the fake source for a configuration's kind."""
    sources = {SourceKind.FOLDER: folder_source, SourceKind.TABLE: table_source}

    async def create(config, logger=None):
        return sources[SourceKind(config.kind)]

    return create


@pytest.fixture
def engine(store, index, source_factory, summarizer):
    """Engine wired to the fakes."""
    return ReconciliationEngine(
        store,
        index,
        source_factory=source_factory,
        summarizer_factory=lambda api_key, system_settings: summarizer,
        batch_size=5,
        tolerance_ms=1000,
    )


@pytest.fixture
def folder_config():
    """Folder source configuration with credentials."""
    return schemas.FolderSourceConfig(folder_url=FOLDER_URL, access_token="drive-token")


@pytest.fixture
def table_config():
    """Table source configuration with a personal access token."""
    return schemas.TableSourceConfig(
        base_id="appBase123", table_id="tblTable456", personal_access_token="pat-token"
    )


@pytest.fixture
async def client(store, folder_config):
    """Client with a folder source."""
    return await store.create_client(
        schemas.ClientCreate(name="Acme", sources=[folder_config]), api_key="sk-acme"
    )


@pytest.fixture
async def two_source_client(store, folder_config, table_config):
    """Client with a folder and a table source."""
    return await store.create_client(
        schemas.ClientCreate(name="Globex", sources=[folder_config, table_config]),
        api_key="sk-globex",
    )
