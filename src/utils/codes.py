from __future__ import annotations

import logging
import random
import secrets
from collections.abc import Callable

from src.config.schema import DEFAULT_CODE_ALPHABET
from src.models.errors import CodeSpaceExhaustedError

logger = logging.getLogger(__name__)


def canonical_code(code: str) -> str:
    return code.strip().upper()


class CodeGenerator:
    """Draw short random codes that are not taken in the target store."""

    def __init__(
        self,
        alphabet: str = DEFAULT_CODE_ALPHABET,
        length: int = 6,
        max_attempts: int = 1000,
        rng: random.Random | None = None,
    ) -> None:
        # dict.fromkeys keeps order while dropping duplicates after upper-casing
        symbols = "".join(dict.fromkeys(alphabet.upper()))
        if len(symbols) < 2:
            raise ValueError("code alphabet needs at least two distinct symbols")
        if length < 1:
            raise ValueError("code length must be positive")
        self._alphabet = symbols
        self._length = length
        self._max_attempts = max_attempts
        self._rng = rng or secrets.SystemRandom()

    @property
    def alphabet(self) -> str:
        return self._alphabet

    @property
    def length(self) -> int:
        return self._length

    @property
    def space_size(self) -> int:
        return len(self._alphabet) ** self._length

    def draw(self) -> str:
        return "".join(self._rng.choice(self._alphabet) for _ in range(self._length))

    def next(self, is_taken: Callable[[str], bool]) -> str:
        """Return a code for which ``is_taken`` is false.

        Raises:
            CodeSpaceExhaustedError: No free code within ``max_attempts`` draws.
        """

        for attempt in range(1, self._max_attempts + 1):
            code = self.draw()
            if not is_taken(code):
                if attempt > 1:
                    logger.debug("Code %s allocated after %d draws", code, attempt)
                return code
        logger.error(
            "No free code after %d draws (space size %d)", self._max_attempts, self.space_size
        )
        raise CodeSpaceExhaustedError()
