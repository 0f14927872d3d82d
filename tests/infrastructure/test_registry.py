"""Tests for ExecutorRegistry - entry points-based executor discovery."""

import pytest

from stagewright.domain.interfaces import AgentExecutorInterface
from stagewright.infrastructure import (
    ExecutorRegistry,
    MockAgentExecutor,
    OpenAIAgentExecutor,
)


@pytest.fixture(autouse=True)
def fresh_registry():
    ExecutorRegistry.clear()
    yield
    ExecutorRegistry.clear()


class TestEntryPointsLoading:
    """Tests for entry points discovery and loading."""

    def test_available_returns_registered_executors(self) -> None:
        """available() lists executors from entry points."""
        available = ExecutorRegistry.available()

        assert "MockAgentExecutor" in available
        assert "OpenAIAgentExecutor" in available
        assert "MockStreamingExecutor" in available

    def test_load_idempotent(self) -> None:
        """Multiple _load_entry_points() calls don't duplicate entries."""
        ExecutorRegistry._load_entry_points()
        count_after_first = len(ExecutorRegistry._executors)

        ExecutorRegistry._load_entry_points()

        assert len(ExecutorRegistry._executors) == count_after_first

    def test_lazy_loading(self) -> None:
        """Entry points are only loaded on first access."""
        assert ExecutorRegistry._loaded is False
        assert len(ExecutorRegistry._executors) == 0

        _ = ExecutorRegistry.available()

        assert ExecutorRegistry._loaded is True
        assert len(ExecutorRegistry._executors) > 0


class TestRegistryOperations:
    """Tests for registry get/create/register."""

    def test_get_returns_executor_class(self) -> None:
        assert ExecutorRegistry.get("OpenAIAgentExecutor") is OpenAIAgentExecutor

    def test_create_passes_config(self) -> None:
        executor = ExecutorRegistry.create("MockAgentExecutor", delay=0.5)

        assert isinstance(executor, MockAgentExecutor)
        assert executor._delay == 0.5

    def test_get_unknown_raises_key_error(self) -> None:
        with pytest.raises(KeyError, match="Available executors"):
            ExecutorRegistry.get("NoSuchExecutor")

    def test_create_bad_config_raises_type_error(self) -> None:
        with pytest.raises(TypeError):
            ExecutorRegistry.create("MockAgentExecutor", temperature=0.1)

    def test_register_custom_executor(self) -> None:
        class CustomExecutor(MockAgentExecutor):
            pass

        ExecutorRegistry.register("CustomExecutor", CustomExecutor)

        assert ExecutorRegistry.get("CustomExecutor") is CustomExecutor
        assert "CustomExecutor" in ExecutorRegistry.available()

    def test_manual_registration_wins_over_entry_point(self) -> None:
        class OverrideMock(MockAgentExecutor):
            pass

        ExecutorRegistry.register("MockAgentExecutor", OverrideMock)

        assert ExecutorRegistry.get("MockAgentExecutor") is OverrideMock

    def test_registered_classes_implement_interface(self) -> None:
        for name in ExecutorRegistry.available():
            assert issubclass(ExecutorRegistry.get(name), AgentExecutorInterface)
