"""
Discovery of the keys a provider produces, with conflict detection.
"""

from __future__ import annotations

from .errors import KeyConflictError
from .keys import Key
from .node import Provider
from .results import ResultGrouped, walk_results
from .store import ContainerStore


def find_and_validate_results(store: ContainerStore, provider: Provider) -> dict[Key, str]:
    """
    Collect every key produced by a provider, mapped to the result path producing it.

    Singleton keys may be produced only once: a key produced twice by the same
    provider, or already produced by a registered provider, raises
    KeyConflictError and stops the walk. Group keys never conflict; when a
    group is fed from several paths the last path is kept.
    """
    key_paths: dict[Key, str] = {}
    for path, result in walk_results(provider.result_list):
        if isinstance(result, ResultGrouped):
            key_paths[result.key] = path
            continue

        for key in result.keys():
            _check_key(store, key_paths, key, path)
            key_paths[key] = path
    return key_paths


def _check_key(store: ContainerStore, key_paths: dict[Key, str], key: Key, path: str) -> None:
    if key in key_paths:
        raise KeyConflictError(key, path, [key_paths[key]])

    existing = store.providers_for(key)
    if existing:
        raise KeyConflictError(key, path, [str(provider.location) for provider in existing])
