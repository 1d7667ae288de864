from __future__ import annotations

import logging
from collections.abc import Callable

from ..llm.groq_client import extract_signals
from .cache import ExpiringCache
from .errors import CollaboratorError
from .models import ContextSignals

logger = logging.getLogger(__name__)

SignalsFn = Callable[[str], ContextSignals]


class ContextSignalExtractor:
    """Memoised front for the NLU signal extraction call, keyed on the raw context text."""

    def __init__(self, cache: ExpiringCache, extract: SignalsFn = extract_signals) -> None:
        self._cache = cache
        self._extract = extract

    def extract(self, context_text: str) -> ContextSignals | None:
        """
        Structured signals for ``context_text``, or ``None`` when there are none.

        Empty text skips the call entirely. Failures are logged and reported
        as ``None`` so the request falls back to non-contextual ranking;
        nothing is cached for a failed call.
        """
        if not context_text:
            return None

        cached = self._cache.get(context_text)
        if cached is not None:
            return cached

        logger.info("Extracting context signals (cache miss)")
        try:
            signals = self._extract(context_text)
        except CollaboratorError:
            logger.warning("Context signal extraction failed, ranking without context", exc_info=True)
            return None

        self._cache.set(context_text, signals)
        return signals
