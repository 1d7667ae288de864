from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LLMConfig:
    """
    Groq settings, read once from the environment at import.

    - ``GROQ_API_KEY``: credentials; an empty key disables the LLM steps.
    - ``GROQ_MODEL``: chat model used for both extraction and relevance.
    - ``GROQ_TIMEOUT``: per-request timeout in seconds. A timeout counts as
      the service being unavailable.
    - ``LLM_ENABLED``: set to ``false`` to rank without context enrichment.

    ``max_retries`` stays at 0 so each call makes exactly one HTTP attempt.
    """

    api_key: str = os.getenv("GROQ_API_KEY", "")
    model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    timeout: float = float(os.getenv("GROQ_TIMEOUT", "8.0"))
    max_tokens: int = 1024
    max_retries: int = 0
    enabled: bool = os.getenv("LLM_ENABLED", "true").lower() != "false"


DEFAULT_LLM_CONFIG = LLMConfig()
