"""
Generative API client abstraction and implementations.

Components:
- BaseGenerativeClient: Abstract base class for generative API clients
- GeminiClient: Outbound call primitive for Gemini generateContent
- PromptCatalog: Static prompt list with uniform random choice
- SearchPromptBuilder: Priority-search prompts and instructions (Jinja2)
- exceptions: LLM-specific exceptions
"""

from grounded_probe.llm.base_client import BaseGenerativeClient
from grounded_probe.llm.exceptions import GenerativeClientError, MalformedResponseError
from grounded_probe.llm.gemini_client import GeminiClient
from grounded_probe.llm.prompt_builder import PromptCatalog, SearchPromptBuilder

__all__ = [
    "BaseGenerativeClient",
    "GeminiClient",
    "PromptCatalog",
    "SearchPromptBuilder",
    "GenerativeClientError",
    "MalformedResponseError",
]
