"""Configuration loading for the stagewright CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stagewright.domain.exceptions import StageNotFound
from stagewright.domain.interfaces import AgentExecutorInterface
from stagewright.domain.stages import DEFAULT_INTERRUPT_STAGES, StageGraph, parse_stage_id
from stagewright.infrastructure.registry import ExecutorRegistry

DEFAULT_EXECUTOR = "MockAgentExecutor"
DEFAULT_STORE_DIR = ".stagewright"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


@dataclass
class PipelineConfig:
    """Settings for one CLI pipeline run."""

    executor: str = DEFAULT_EXECUTOR
    executor_config: dict[str, Any] = field(default_factory=dict)
    interrupt_stages: list[str] = field(
        default_factory=lambda: sorted(s.value for s in DEFAULT_INTERRUPT_STAGES)
    )
    store_dir: str = DEFAULT_STORE_DIR
    prompts: dict[str, str] = field(default_factory=dict)
    max_context_chars: int | None = None


def _expect(data: dict[str, Any], key: str, kind: type, path: Path) -> Any:
    value = data[key]
    if not isinstance(value, kind):
        raise ConfigurationError(
            f"{path}: '{key}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _check_stage_ids(stage_ids: list[Any], key: str, path: Path) -> None:
    for stage_id in stage_ids:
        try:
            parse_stage_id(str(stage_id))
        except StageNotFound as e:
            raise ConfigurationError(f"{path}: '{key}' has {e}") from e


def load_pipeline_config(path: Path) -> PipelineConfig:
    """
    Load pipeline configuration from a JSON file.

    Keys not present in the file keep their defaults.

    Raises:
        ConfigurationError: If file is missing, invalid, or names unknown stages
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected dict in {path}, got {type(data).__name__}")

    unknown = set(data) - {
        "executor",
        "executor_config",
        "interrupt_stages",
        "store_dir",
        "prompts",
        "max_context_chars",
    }
    if unknown:
        raise ConfigurationError(f"{path}: unknown keys {sorted(unknown)}")

    config = PipelineConfig()
    if "executor" in data:
        config.executor = _expect(data, "executor", str, path)
    if "executor_config" in data:
        config.executor_config = _expect(data, "executor_config", dict, path)
    if "interrupt_stages" in data:
        stages = _expect(data, "interrupt_stages", list, path)
        _check_stage_ids(stages, "interrupt_stages", path)
        config.interrupt_stages = [str(s) for s in stages]
    if "store_dir" in data:
        config.store_dir = _expect(data, "store_dir", str, path)
    if "prompts" in data:
        prompts = _expect(data, "prompts", dict, path)
        _check_stage_ids(list(prompts), "prompts", path)
        config.prompts = {str(k): str(v) for k, v in prompts.items()}
    if data.get("max_context_chars") is not None:
        config.max_context_chars = _expect(data, "max_context_chars", int, path)
    return config


def build_stage_graph(config: PipelineConfig) -> StageGraph:
    """Default stage graph with the config's prompt and interrupt overrides."""
    graph = StageGraph.default().with_interrupts(config.interrupt_stages)
    if config.prompts:
        graph = graph.with_prompts(config.prompts)
    return graph


def build_executor(config: PipelineConfig) -> AgentExecutorInterface:
    """
    Instantiate the configured executor through the registry.

    The config's interrupt stages are passed along unless executor_config
    sets its own.

    Raises:
        ConfigurationError: If the executor is unknown or rejects its config
    """
    options = dict(config.executor_config)
    options.setdefault("interrupt_stages", list(config.interrupt_stages))
    if "base_url" in options:
        options["base_url"] = normalize_base_url(options["base_url"])
    try:
        return ExecutorRegistry.create(config.executor, **options)
    except KeyError as e:
        raise ConfigurationError(e.args[0]) from e
    except TypeError as e:
        raise ConfigurationError(
            f"Invalid executor_config for '{config.executor}': {e}"
        ) from e


def normalize_base_url(url: str) -> str:
    """
    Ensure an OpenAI-compatible base URL ends with /v1.

    Args:
        url: Base URL (e.g. http://localhost:11434)

    Returns:
        URL with a single trailing /v1
    """
    url = url.rstrip("/")
    if not url.endswith("/v1"):
        url = f"{url}/v1"
    return url
