"""
Short code generation strategies.
Uses Strategy Pattern to allow different generation algorithms.

Strategies only produce candidates. Uniqueness is enforced by the unique
constraint on urls.short_code; the create flow retries on collision.
"""

import secrets
import string
from abc import ABC, abstractmethod

from nanoid import generate as nanoid_generate


class ShortCodeStrategy(ABC):
    """Abstract base class for short code generation strategies"""

    @abstractmethod
    def generate(self) -> str:
        """
        Generate a short code candidate.

        Returns:
            A fixed-length, URL-safe string
        """
        pass


class NanoidShortCodeStrategy(ShortCodeStrategy):
    """
    nanoid over the URL-safe alphabet (A-Za-z0-9_-).

    64 symbols and 8 characters give 2^48 codes, drawn from os.urandom.
    """

    def __init__(self, length: int = 8):
        self.length = length

    def generate(self) -> str:
        return nanoid_generate(size=self.length)


class RandomShortCodeStrategy(ShortCodeStrategy):
    """
    Base62 random string from the secrets module.

    Pros: no '-' or '_' in codes
    Cons: slightly smaller code space than nanoid for the same length
    """

    def __init__(self, length: int = 8):
        self.length = length
        self.characters = string.ascii_letters + string.digits

    def generate(self) -> str:
        return ''.join(secrets.choice(self.characters) for _ in range(self.length))
