"""
Agent executor adapters.
"""

from stagewright.infrastructure.llm.mock import MockAgentExecutor, MockStreamingExecutor
from stagewright.infrastructure.llm.openai_chat import (
    OpenAIAgentExecutor,
    OpenAIExecutorConfig,
    OpenAIStreamingExecutor,
)

__all__ = [
    "MockAgentExecutor",
    "MockStreamingExecutor",
    "OpenAIAgentExecutor",
    "OpenAIExecutorConfig",
    "OpenAIStreamingExecutor",
]
