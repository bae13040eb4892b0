"""Generation of unique memo tokens ("content") for pending payments."""

import inspect
import logging
import secrets
import string
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from ..errors import GenerationExhausted

logger = logging.getLogger(__name__)

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
DEFAULT_CONTENT_LENGTH = 11
DEFAULT_MAX_ATTEMPTS = 10


@dataclass(frozen=True)
class Allocation:
    """Outcome of a bounded allocation loop."""
    value: Optional[str]
    attempts: int

    @property
    def ok(self) -> bool:
        return self.value is not None


def random_token(length: int = DEFAULT_CONTENT_LENGTH, alphabet: str = ALPHABET) -> str:
    """Draw a token of ``length`` symbols from ``alphabet`` using a CSPRNG."""
    if length <= 0:
        raise ValueError("Token length must be positive")
    return "".join(secrets.choice(alphabet) for _ in range(length))


def allocate_unique(
    generate: Callable[[], str],
    exists: Callable[[str], bool],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> Allocation:
    """Draw candidates until one is not taken, at most ``max_attempts`` times.

    Args:
        generate: Returns a fresh candidate on each call.
        exists: Returns True if the candidate is already taken.
        max_attempts: Upper bound on the number of candidates tried.

    Returns:
        Allocation with the free value, or with ``value=None`` when exhausted.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        candidate = generate()
        if not exists(candidate):
            return Allocation(value=candidate, attempts=attempt)
        logger.debug(f"Candidate collision on attempt {attempt}")
    return Allocation(value=None, attempts=max_attempts)


async def allocate_unique_async(
    generate: Callable[[], str],
    exists: Callable[[str], Union[bool, Awaitable[bool]]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> Allocation:
    """Same as :func:`allocate_unique` for an existence check that may be async."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        candidate = generate()
        taken = exists(candidate)
        if inspect.isawaitable(taken):
            taken = await taken
        if not taken:
            return Allocation(value=candidate, attempts=attempt)
        logger.debug(f"Candidate collision on attempt {attempt}")
    return Allocation(value=None, attempts=max_attempts)


class TokenGenerator:
    """Produces memo tokens that no stored payment has ever used."""

    def __init__(
        self,
        exists: Callable[[str], Awaitable[bool]],
        length: int = DEFAULT_CONTENT_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        alphabet: str = ALPHABET,
    ):
        """Initialize the generator.

        Args:
            exists: Async lookup telling whether a content value is stored.
            length: Number of symbols per token.
            max_attempts: Collisions tolerated before giving up.
            alphabet: Symbols to draw from.
        """
        self.exists = exists
        self.length = length
        self.max_attempts = max_attempts
        self.alphabet = alphabet

    def candidate(self) -> str:
        return random_token(self.length, self.alphabet)

    async def generate_unique_content(self) -> str:
        """Return a fresh content value.

        Raises:
            GenerationExhausted: If every attempt collided.
        """
        allocation = await allocate_unique_async(
            self.candidate, self.exists, self.max_attempts
        )
        if not allocation.ok:
            logger.error(
                f"No unique content found after {allocation.attempts} attempts"
            )
            raise GenerationExhausted()
        return allocation.value
