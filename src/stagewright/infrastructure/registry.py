"""
Executor registry with entry points discovery.

Provides dynamic executor loading via Python entry points
(stagewright.executors group). External packages can register executors
in their pyproject.toml:

    [project.entry-points."stagewright.executors"]
    MyExecutor = "mypackage.executors:MyExecutor"
"""

import logging
from importlib.metadata import entry_points
from typing import Any

from stagewright.domain.interfaces import AgentExecutorInterface

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "stagewright.executors"


class ExecutorRegistry:
    """
    Registry for AgentExecutorInterface implementations.

    Entry points are loaded lazily on first lookup.

    Example usage:
        executor = ExecutorRegistry.create("OpenAIAgentExecutor", model="qwen2.5:7b")
    """

    _executors: dict[str, type[AgentExecutorInterface]] = {}
    _loaded: bool = False

    @classmethod
    def _load_entry_points(cls) -> None:
        """Load executors from entry points (lazy, called once)."""
        if cls._loaded:
            return

        for ep in entry_points(group=ENTRY_POINT_GROUP):
            if ep.name in cls._executors:
                continue
            try:
                cls._executors[ep.name] = ep.load()
            except (ImportError, AttributeError) as e:
                logger.warning("Failed to load executor '%s': %s", ep.name, e)

        cls._loaded = True

    @classmethod
    def register(
        cls, name: str, executor_class: type[AgentExecutorInterface]
    ) -> None:
        """Manually register an executor class (useful for tests)."""
        cls._executors[name] = executor_class

    @classmethod
    def get(cls, name: str) -> type[AgentExecutorInterface]:
        """
        Get an executor class by name.

        Raises:
            KeyError: If no executor is registered under name
        """
        cls._load_entry_points()
        if name not in cls._executors:
            available = ", ".join(sorted(cls._executors)) or "(none)"
            raise KeyError(f"Executor '{name}' not found. Available executors: {available}")
        return cls._executors[name]

    @classmethod
    def create(cls, name: str, **config: Any) -> AgentExecutorInterface:
        """
        Instantiate an executor by name.

        Raises:
            KeyError: If no executor is registered under name
            TypeError: If config doesn't match the constructor signature
        """
        return cls.get(name)(**config)

    @classmethod
    def available(cls) -> list[str]:
        cls._load_entry_points()
        return sorted(cls._executors)

    @classmethod
    def clear(cls) -> None:
        """Clear registrations and allow entry points to be reloaded."""
        cls._executors.clear()
        cls._loaded = False
