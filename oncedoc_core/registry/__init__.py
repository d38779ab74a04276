# oncedoc_core/registry/__init__.py

from .provider import AccessCodeRegistry
from .providers.memory_provider import InMemoryRegistry
from .providers.sqlite_provider import SQLiteRegistry
from oncedoc_core.config import LifecycleConfig
import os


def load_registry(config: dict | None = None, lifecycle: LifecycleConfig | None = None, **kwargs) -> AccessCodeRegistry:
    """
    Factory resolver for selecting the registry backend.

        - memory (default)
        - sqlite

    Extra keyword arguments (clock, code_generator) are passed to the provider.
    """
    config = config or {}
    lifecycle = lifecycle or LifecycleConfig()
    provider = config.get("provider") or os.getenv("ONCEDOC_REGISTRY_PROVIDER", "memory")

    kwargs.setdefault("validity_window", lifecycle.validity_window)
    kwargs.setdefault("code_digits", lifecycle.code_digits)
    kwargs.setdefault("max_attempts", lifecycle.max_code_attempts)

    if provider == "memory":
        return InMemoryRegistry(**kwargs)

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("ONCEDOC_DB_PATH", "db/oncedoc_registry.db")
        return SQLiteRegistry(db_path, **kwargs)

    raise ValueError(f"Unknown registry provider: {provider}")


__all__ = [
    "AccessCodeRegistry",
    "InMemoryRegistry",
    "SQLiteRegistry",
    "load_registry",
]
