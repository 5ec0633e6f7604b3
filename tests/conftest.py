"""Pytest configuration and shared fixtures."""
import pytest

from fakes import LOCAL_MODEL, RecordingRepository, ScriptedAdapter, make_registry
from focu.config import ChatSettings
from focu.context import InMemoryDailyContextProvider, MemoryContextProvider
from focu.llm import ProviderName
from focu.session import ConversationSession


@pytest.fixture
def cloud_adapter():
    """Scripted adapter serving the cloud model."""
    return ScriptedAdapter(ProviderName.OPENROUTER)


@pytest.fixture
def local_adapter():
    """Scripted adapter standing in for the local daemon."""
    return ScriptedAdapter(ProviderName.OLLAMA, installed=[LOCAL_MODEL])


@pytest.fixture
def registry(cloud_adapter, local_adapter):
    """Registry with one cloud and one local model and fake adapters."""
    adapters = {
        ProviderName.OPENROUTER: cloud_adapter,
        ProviderName.OLLAMA: local_adapter,
    }
    return make_registry(adapters)


@pytest.fixture
def repository():
    """Recording in-memory chat repository."""
    return RecordingRepository()


@pytest.fixture
def daily():
    """Empty in-memory daily context."""
    return InMemoryDailyContextProvider()


@pytest.fixture
def settings():
    """Default chat settings."""
    return ChatSettings()


@pytest.fixture
async def session(registry, repository, daily, settings):
    """Conversation session wired to the fakes."""
    memory = MemoryContextProvider(repository, daily)
    session = ConversationSession(registry, repository, memory, settings)
    yield session
    await session.close()
