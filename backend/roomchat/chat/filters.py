"""Content filter for chat messages.

Wraps better-profanity so the rest of the service only sees a plain
``is_profane(text) -> bool`` callable.
"""
import logging
from typing import Callable, Iterable, Optional

from better_profanity import Profanity

logger = logging.getLogger(__name__)

ProfanityCheck = Callable[[str], bool]


class ProfanityFilter:
    """Word-list based profanity check.

    Args:
        extra_words: Additional words to reject on top of the default list.
        enabled: When False every text passes.
    """

    def __init__(self, extra_words: Optional[Iterable[str]] = None, enabled: bool = True) -> None:
        self.enabled = enabled
        # Profanity() loads the default word list itself.
        self._profanity = Profanity()
        extra = [w for w in (extra_words or []) if w and w.strip()]
        if extra:
            self._profanity.add_censor_words(extra)
            logger.info("Profanity filter extended with %d custom words", len(extra))

    def __call__(self, text: str) -> bool:
        return self.is_profane(text)

    def is_profane(self, text: str) -> bool:
        if not self.enabled or not text:
            return False
        return self._profanity.contains_profanity(text)
