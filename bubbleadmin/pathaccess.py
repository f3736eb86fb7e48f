"""Public/authenticated operation path matching."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Iterable


@dataclass
class PathAccessConfig:
    """Operation paths reachable without auth, and those needing it."""

    public_paths: set[str] = field(default_factory=set)
    auth_paths: set[str] = field(default_factory=set)


def default_path_access_config() -> PathAccessConfig:
    """Only the empty operation is public; everything else needs auth."""
    return PathAccessConfig(public_paths={""}, auth_paths=set())


def path_access_config_with_public_list(public_paths: Iterable[str]) -> PathAccessConfig:
    return PathAccessConfig(public_paths=set(public_paths))


def is_public_path(operation: str, config: PathAccessConfig) -> bool:
    return match(operation, config.public_paths)


def match(operation: str, paths: AbstractSet[str]) -> bool:
    """Exact match, or prefix match for entries ending in '/'."""
    if operation in paths:
        return True
    return any(path.endswith("/") and operation.startswith(path) for path in paths)