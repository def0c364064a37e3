"""
Tests for short code generation strategies.
"""
import string

from shortlink.services.short_code_strategies import (
    NanoidShortCodeStrategy,
    RandomShortCodeStrategy
)
from shortlink.services.short_code_factory import (
    ShortCodeFactory,
    ShortCodeStrategyType
)

URL_SAFE = set(string.ascii_letters + string.digits + "_-")


class TestNanoidStrategy:
    """Test the default nanoid strategy"""

    def test_generates_fixed_length(self):
        strategy = NanoidShortCodeStrategy(length=8)

        for _ in range(50):
            assert len(strategy.generate()) == 8

    def test_uses_url_safe_alphabet(self):
        strategy = NanoidShortCodeStrategy(length=8)

        for _ in range(200):
            assert set(strategy.generate()) <= URL_SAFE

    def test_codes_do_not_repeat(self):
        """2^48 code space: a thousand draws should never collide"""
        strategy = NanoidShortCodeStrategy(length=8)

        codes = {strategy.generate() for _ in range(1000)}

        assert len(codes) == 1000


class TestRandomStrategy:

    def test_generates_base62_codes(self):
        strategy = RandomShortCodeStrategy(length=8)

        code = strategy.generate()

        assert len(code) == 8
        assert code.isalnum()


class TestShortCodeFactory:
    """Test strategy factory"""

    def test_creates_nanoid_strategy(self):
        strategy = ShortCodeFactory.create_strategy(ShortCodeStrategyType.NANOID)
        assert isinstance(strategy, NanoidShortCodeStrategy)

    def test_creates_random_strategy(self):
        strategy = ShortCodeFactory.create_strategy(ShortCodeStrategyType.RANDOM)
        assert isinstance(strategy, RandomShortCodeStrategy)

    def test_creates_default_from_settings(self):
        """Factory uses settings when no type specified (nanoid by default)"""
        strategy = ShortCodeFactory.create_strategy()
        assert isinstance(strategy, NanoidShortCodeStrategy)
        assert len(strategy.generate()) == 8

    def test_reuses_instances(self):
        first = ShortCodeFactory.create_strategy(ShortCodeStrategyType.NANOID)
        second = ShortCodeFactory.create_strategy(ShortCodeStrategyType.NANOID)
        assert first is second
