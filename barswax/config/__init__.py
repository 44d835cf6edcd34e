from .settings import WaxConfig, DEFAULT_EXTENSIONS, DEFAULT_BUST_CACHE

__all__ = ["WaxConfig", "DEFAULT_EXTENSIONS", "DEFAULT_BUST_CACHE"]
