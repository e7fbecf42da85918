"""Model adaptors for agent-thread.

Implementations of ModelAdaptor for specific LLM providers.
"""

from agent_thread.adaptors.openai import OpenAIAdaptor

__all__ = ["OpenAIAdaptor"]

# Conditional imports for optional SDK-based adaptors
try:
    from agent_thread.adaptors.anthropic import AnthropicAdaptor

    __all__.append("AnthropicAdaptor")
except ImportError:
    pass
