"""Short code generation utility

This module generates random, collision-resistant short codes and validates
user-chosen custom slugs.

Classes:
    CodeExistenceChecker:
        Protocol for anything that can tell whether a short code is taken.
        Every ShortURLBaseDAO implementation satisfies it.

    ShortCodeGenerator:
        Random Base62 short code generator with collision retries.

Functions:
    generate_shortcode(length=6) -> str:
        Generate a random Base62 short code from a CSPRNG.

    is_valid_slug(slug) -> bool:
        Check a custom slug against [a-zA-Z0-9_-]{3,50}.

Example:
    >>> from linkshortener.utils import ShortCodeGenerator
    >>> generator = ShortCodeGenerator(length=6)
    >>> len(generator.generate())
    6
    >>> generator.validate_custom_alias('promo-2025')
    True
"""

import re
import string
import secrets
import logging
from typing import Optional, Protocol, runtime_checkable

from linkshortener.constants import Defaults, SHORTCODE_COLLISION, SHORTCODE_FALLBACK


logger = logging.getLogger(__name__)

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
BASE = len(ALPHABET)  # 26 lowercase + 26 uppercase + 10 digits

# fmt: off
SLUG_PATTERN = re.compile(
    rf'^[a-zA-Z0-9_-]{{{Defaults.CUSTOM_SLUG_MIN_LENGTH},{Defaults.CUSTOM_SLUG_MAX_LENGTH}}}$'
)
# fmt: on


@runtime_checkable
class CodeExistenceChecker(Protocol):
    def exists(self, shortcode: str) -> bool: ...


def generate_shortcode(length: int = Defaults.SHORTCODE_LENGTH) -> str:
    """Generate a random Base62 short code.

    Draws `length` bytes from the operating system CSPRNG and maps every byte
    onto the Base62 alphabet by modulo.

    Args:
        length (int, optional):
            Number of characters. Defaults to 6.

    Returns:
        str: A random alphanumeric code of exactly `length` characters.

    NOTE:
        - 256 % 62 != 0, so the first 8 characters of the alphabet are very
          slightly more likely. This is an accepted bias.
    """
    if not isinstance(length, int) or isinstance(length, bool):
        raise TypeError(f'Length must be of type integer (given type: {type(length)}).')
    if length <= 0:
        raise ValueError(f'Length must be a positive integer (given value: {length}).')

    return ''.join(ALPHABET[byte % BASE] for byte in secrets.token_bytes(length))


def is_valid_slug(slug: str) -> bool:
    return isinstance(slug, str) and SLUG_PATTERN.fullmatch(slug) is not None


class ShortCodeGenerator:
    """Generate unique short codes against an existence checker.

    Attributes:
        length (int):
            Default length of generated codes.
        max_retries (int):
            Number of collisions tolerated before falling back to a longer code.
        fallback_count (int):
            How many times generate_unique() had to fall back. Exposed for
            operational visibility and tests.
    """

    def __init__(self, length: int = Defaults.SHORTCODE_LENGTH, max_retries: int = Defaults.SHORTCODE_MAX_RETRIES):
        if length <= 0:
            raise ValueError(f'Length must be a positive integer (given value: {length}).')
        if max_retries < 0:
            raise ValueError(f'Max retries must be a non-negative integer (given value: {max_retries}).')

        self.length = length
        self.max_retries = max_retries
        self.fallback_count = 0

    def generate(self, length: Optional[int] = None) -> str:
        return generate_shortcode(self.length if length is None else length)

    def generate_unique(
        self,
        exists: CodeExistenceChecker,
        length: Optional[int] = None,
        max_retries: Optional[int] = None,
    ) -> str:
        """Generate a short code that `exists` reports as free.

        Args:
            exists (CodeExistenceChecker):
                Store-backed existence checker (usually the DAO itself).
            length (Optional[int]):
                Code length. Defaults to the generator's length.
            max_retries (Optional[int]):
                Number of collision retries. Defaults to the generator's max_retries.

        Returns:
            str: A short code.

        NOTE:
            - After `max_retries` collisions a code `length + 2` characters long
              is returned WITHOUT an existence check. The durable store's unique
              constraint still rejects a duplicate on insert; callers handle that.
            - Every fallback is logged and counted in `fallback_count`.
        """
        length = self.length if length is None else length
        max_retries = self.max_retries if max_retries is None else max_retries

        for attempt in range(1, max_retries + 1):
            shortcode = self.generate(length)
            if not exists.exists(shortcode):
                return shortcode
            logger.warning(
                'Short code collision detected, retry %s/%s.',
                attempt,
                max_retries,
                extra={'event': SHORTCODE_COLLISION, 'shortcode': shortcode},
            )

        self.fallback_count += 1
        shortcode = self.generate(length + Defaults.SHORTCODE_FALLBACK_EXTRA_LENGTH)
        logger.warning(
            'Short code retries exhausted. Falling back to an unchecked longer code.',
            extra={'event': SHORTCODE_FALLBACK, 'shortcode': shortcode, 'max_retries': max_retries},
        )
        return shortcode

    @staticmethod
    def validate_custom_alias(alias: str) -> bool:
        return is_valid_slug(alias)
