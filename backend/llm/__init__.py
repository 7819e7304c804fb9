"""LLM package — provider clients, reasoning extraction and the stream encoder.

For new code, import from submodules directly::

    from llm.providers import ProviderRegistry, create_provider_client
    from llm.generators import GenerationStreamEncoder
"""

from .generators import GenerationStreamEncoder
from .prompts import resolve_system_prompt
from .reasoning import ReasoningExtractor

__all__ = [
    "GenerationStreamEncoder",
    "ReasoningExtractor",
    "resolve_system_prompt",
]
