from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import Enum


class Scope(Enum):
    SINGLETON = "singleton"
    REQUEST = "request"
    TRANSIENT = "transient"
    # Assigned only to identities first seen through `Container.mock`.
    MOCK = "mock"


@dataclass(frozen=True)
class Metadata:
    scope: Scope
    id: str
    name: str


def service_name(service: object) -> str:
    name = getattr(service, "__name__", None)
    return name if isinstance(name, str) else "unknown"


class MetadataStore:
    """Side table from service identities to their metadata.

    Hashable identities (classes, functions, strings) are matched like dict
    keys, so an equal string built at runtime finds the same service.
    Unhashable identities (dicts, lists) are matched by reference; the store
    holds a reference to each of them, which keeps their ``id()`` from being
    recycled while the store is alive.

    One store (and its id counter) is shared by a root container and all of
    its descendants, so ids never collide within a container family.
    """

    def __init__(self) -> None:
        self._by_value: dict[object, Metadata] = {}
        self._by_ref: dict[int, tuple[object, Metadata]] = {}
        self._by_id: dict[str, Metadata] = {}
        self._counter = itertools.count(1)

    def lookup(self, service: object) -> Metadata | None:
        try:
            return self._by_value.get(service)
        except TypeError:
            entry = self._by_ref.get(id(service))
            return None if entry is None else entry[1]

    def by_id(self, metadata_id: str) -> Metadata | None:
        return self._by_id.get(metadata_id)

    def stamp(self, service: object, scope: Scope) -> Metadata:
        """Return the metadata of `service`, creating it with `scope` on first use."""
        found = self.lookup(service)
        if found is not None:
            return found

        metadata = Metadata(scope=scope, id=f"di{next(self._counter)}", name=service_name(service))
        try:
            self._by_value[service] = metadata
        except TypeError:
            self._by_ref[id(service)] = (service, metadata)
        self._by_id[metadata.id] = metadata
        return metadata

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, service: object) -> bool:
        return self.lookup(service) is not None
