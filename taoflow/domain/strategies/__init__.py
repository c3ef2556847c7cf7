from typing import Any

from .strategy import BaseStrategy, Strategy
from .keyword_strategy import KeywordStrategy


def register_builtin_strategies(registrar: Any) -> None:
    """Register built-in strategies on anything exposing register_strategy()."""
    registrar.register_strategy(KeywordStrategy.name, KeywordStrategy)


__all__ = ["BaseStrategy", "Strategy", "KeywordStrategy", "register_builtin_strategies"]
