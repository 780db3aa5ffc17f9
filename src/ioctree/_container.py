from __future__ import annotations

import contextlib
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._errors import (
    AlreadyRegisteredError,
    AlreadySnapshottedError,
    MissingBindingError,
    MissingMetadataError,
    NoActiveSessionError,
    SessionOnChildError,
    SingletonOnChildError,
)
from ._metadata import Metadata, MetadataStore, Scope, service_name


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    T = TypeVar("T")


def _no_debug(message: str) -> None:
    pass


@dataclass(frozen=True)
class ContainerOptions:
    debug: Callable[[str], None] = _no_debug


class SessionState(Enum):
    NORMAL = "normal"
    SNAPSHOTTED = "snapshotted"


@dataclass
class Factory:
    service: object
    handler: Callable[[Container], object]


@dataclass
class _Family:
    """State co-owned by a root container and every container forked from it."""

    options: ContainerOptions
    metadata: MetadataStore = field(default_factory=MetadataStore)
    singletons: dict[str, object] = field(default_factory=dict)
    mocks: dict[str, object] = field(default_factory=dict)
    state: SessionState = SessionState.NORMAL
    # Bumped by snapshot and restore; containers compare it to drop stale singletons.
    generation: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock)


@dataclass
class _SessionBackup:
    factories: dict[str, Factory]
    singletons: dict[str, object]
    instances: dict[str, object]


class Container:
    """Root DI container.

    - bind pre-built instances or factories against service identities
    - resolve with `get`; factories receive the resolving container
    - scopes: singleton / request / transient
    - child containers for per-request lifetimes
    - snapshot / mock / restore for tests.
    """

    def __init__(self, options: ContainerOptions | None = None) -> None:
        self._family = _Family(options=options or ContainerOptions())
        self._factories: dict[str, Factory] = {}
        self._instances: dict[str, object] = {}
        self._backup: _SessionBackup | None = None
        self._generation = self._family.generation

    @property
    def is_child(self) -> bool:
        return False

    @property
    def options(self) -> ContainerOptions:
        return self._family.options

    @property
    def session_state(self) -> SessionState:
        return self._family.state

    def bind_as_constant(self, service: type[T] | object, instance: T) -> Container:
        """Register a pre-built instance (always singleton).

        The instance is visible at once to every container of the family.
        """
        with self._family.lock:
            self._ensure_unregistered(service)
            metadata = self._family.metadata.stamp(service, Scope.SINGLETON)
            self._family.singletons[metadata.id] = instance
            self._instances[metadata.id] = instance
            self._trace(f"Container registers service {metadata.name} with id {metadata.id} as a singleton")
        return self

    def bind_as_dynamic(
        self,
        service: type[T] | object,
        handler: Callable[[Container], T],
        *,
        scope: Scope | str = Scope.SINGLETON,
    ) -> Container:
        """Register a factory for a service.

        The handler is called with the container that resolves the service, so
        it can resolve its own dependencies in the right scope.

        Example:
          container.bind_as_dynamic(Foo, lambda c: Foo())
          container.bind_as_dynamic(Bar, lambda c: Bar(c.get(Foo)), scope=Scope.TRANSIENT)

        """
        scope = _coerce_scope(scope)
        if not callable(handler):
            msg = f"Handler for service {service_name(service)} must be callable"
            raise TypeError(msg)

        with self._family.lock:
            self._bind_dynamic(Factory(service=service, handler=handler), scope)
        return self

    def mock(self, service: type[T] | object, replacement: object) -> Container:
        """Replace a service with a test double until the next `restore`.

        The service does not have to be registered yet.
        """
        with self._family.lock:
            if self._family.state is not SessionState.SNAPSHOTTED:
                msg = "Must execute method 'snapshot()' before using mock"
                raise NoActiveSessionError(msg)

            metadata = self._family.metadata.stamp(service, Scope.MOCK)
            self._family.mocks[metadata.id] = replacement
            logger.debug("Mocked service %s with id %s", metadata.name, metadata.id)
        return self

    @overload
    def get(self, service: type[T]) -> T: ...

    @overload
    def get(self, service: object) -> Any: ...

    def get(self, service: type[T] | object) -> object:
        """Resolve the service to an instance.

        Resolution precedence:
        1. mock
        2. instance cached by this container
        3. family-wide singleton
        4. factory bound on (or inherited by) this container
        5. error.
        """
        with self._family.lock:
            self._evict_stale_singletons()
            metadata = self._family.metadata.lookup(service)
            if metadata is None:
                msg = f"Missing injected value for service {service_name(service)}"
                raise MissingMetadataError(msg)

            if metadata.id in self._family.mocks:
                return self._family.mocks[metadata.id]

            if metadata.id in self._instances:
                return self._instances[metadata.id]

            if metadata.id in self._family.singletons:
                instance = self._family.singletons[metadata.id]
                self._instances[metadata.id] = instance
                return instance

            factory = self._factories.get(metadata.id)
            if factory is None:
                msg = f"Missing module with service name {metadata.name}"
                raise MissingBindingError(msg)

            return self._resolve_factory(factory, metadata)

    def metadata_for(self, service: object) -> Metadata | None:
        return self._family.metadata.lookup(service)

    def __contains__(self, service: object) -> bool:
        with self._family.lock:
            self._evict_stale_singletons()
            metadata = self._family.metadata.lookup(service)
            if metadata is None:
                return False
            return (
                metadata.id in self._family.mocks
                or metadata.id in self._instances
                or metadata.id in self._family.singletons
                or metadata.id in self._factories
            )

    def create_child(self) -> ChildContainer:
        """Create a container for one request or unit of work.

        The child copies the current bindings (later registrations on either
        side stay invisible to the other), shares singletons and mocks with the
        family, and caches request-scoped services for its own lifetime.
        """
        with self._family.lock:
            return ChildContainer(self, _from_parent=True)

    def snapshot(self) -> None:
        """Back up bindings and instances before mocking.

        Pair with `restore`, e.g. in `setUp` / `tearDown`.
        """
        with self._family.lock:
            if self._family.state is SessionState.SNAPSHOTTED:
                msg = "Consecutive 'snapshot()' calls are forbidden, call 'restore()' first"
                raise AlreadySnapshottedError(msg)

            self._backup = _SessionBackup(
                factories=self._factories,
                singletons=self._family.singletons,
                instances=self._instances,
            )
            self._factories = dict(self._factories)
            self._family.singletons = dict(self._family.singletons)
            self._instances = {}
            self._family.state = SessionState.SNAPSHOTTED
            self._family.generation += 1
            self._generation = self._family.generation
            logger.debug("Container snapshot taken")

    def restore(self) -> None:
        """Drop all mocks and return to the state saved by `snapshot`."""
        with self._family.lock:
            if self._family.state is not SessionState.SNAPSHOTTED or self._backup is None:
                msg = "Consecutive 'restore()' calls are forbidden, call 'snapshot()' first"
                raise NoActiveSessionError(msg)

            backup = self._backup
            # Cleared in place: children hold the same dict.
            self._family.mocks.clear()
            self._factories = backup.factories
            self._family.singletons = backup.singletons
            self._instances = backup.instances
            self._backup = None
            self._family.state = SessionState.NORMAL
            self._family.generation += 1
            self._generation = self._family.generation
            logger.debug("Container restored from snapshot")

    def clear_mocks(self) -> None:
        """Drop all mocks but keep the current session open."""
        with self._family.lock:
            if self._family.state is not SessionState.SNAPSHOTTED:
                msg = "Must execute method 'snapshot()' before clearing mocks"
                raise NoActiveSessionError(msg)
            self._family.mocks.clear()

    @contextlib.contextmanager
    def session(self) -> Iterator[Container]:
        """Snapshot on enter, restore on exit.

        Example:
          with container.session():
              container.mock(Foo, FakeFoo())
              ...

        """
        self.snapshot()
        try:
            yield self
        finally:
            self.restore()

    def _bind_dynamic(self, factory: Factory, scope: Scope) -> None:
        self._ensure_unregistered(factory.service)
        metadata = self._family.metadata.stamp(factory.service, scope)
        self._factories[metadata.id] = factory
        self._trace(
            f"Parent container registers service {metadata.name} with id {metadata.id} "
            f"as a {metadata.scope.value} scoped"
        )

    def _resolve_factory(self, factory: Factory, metadata: Metadata) -> object:
        instance = factory.handler(self)

        if metadata.scope is Scope.SINGLETON:
            self._family.singletons[metadata.id] = instance
            self._instances[metadata.id] = instance
            self._trace(f"Container resolved service {metadata.name} with id {metadata.id} as a singleton")
            return instance

        # The root lives as long as the process, so request scope is not cached there.
        if metadata.scope is Scope.REQUEST and self.is_child:
            self._instances[metadata.id] = instance
            self._trace(f"Container resolved service {metadata.name} with id {metadata.id} as a request scoped")
            return instance

        self._trace(f"Container resolved service {metadata.name} with id {metadata.id} as transient scoped")
        return instance

    def _evict_stale_singletons(self) -> None:
        """Drop singletons cached before the last snapshot or restore.

        The family singleton store is swapped on those transitions, so cached
        copies would no longer match what other containers resolve.
        """
        if self._generation == self._family.generation:
            return

        metadata = self._family.metadata
        self._instances = {
            key: value
            for key, value in self._instances.items()
            if (found := metadata.by_id(key)) is None or found.scope is not Scope.SINGLETON
        }
        self._generation = self._family.generation

    def _ensure_unregistered(self, service: object) -> None:
        if service in self._family.metadata:
            msg = f"Service {service_name(service)} is already registered"
            raise AlreadyRegisteredError(msg)

    def _trace(self, message: str, *, level: int = logging.DEBUG) -> None:
        logger.log(level, message)
        self._family.options.debug(message)


class ChildContainer(Container):
    """A container forked from a parent, usually living for one request.

    Resolves services bound on itself or on any ancestor it was forked from.
    Only request and transient services can be bound here.
    """

    def __init__(self, parent: Container, *, _from_parent: bool = False) -> None:
        if not _from_parent:
            msg = "Child containers must be created via Container.create_child()"
            raise RuntimeError(msg)
        super().__init__(parent.options)
        # Shares the parent's family instead of the one created above.
        self._family = parent._family  # noqa: SLF001
        self._factories = dict(parent._factories)  # noqa: SLF001
        self._generation = self._family.generation

    @property
    def is_child(self) -> bool:
        return True

    def bind_as_constant(self, service: type[T] | object, instance: T) -> Container:  # noqa: ARG002
        msg = "Singletons must be bound in the parent container"
        raise SingletonOnChildError(msg)

    def snapshot(self) -> None:
        msg = "Not available to take a snapshot by calling the method 'snapshot' from the child container"
        raise SessionOnChildError(msg)

    def restore(self) -> None:
        msg = "Not available to restore to defaults by calling the method 'restore' from the child container"
        raise SessionOnChildError(msg)

    def clear_mocks(self) -> None:
        msg = "Not available to clear mocks by calling the method 'clear_mocks' from the child container"
        raise SessionOnChildError(msg)

    def _bind_dynamic(self, factory: Factory, scope: Scope) -> None:
        if scope is Scope.SINGLETON:
            msg = "Singletons must be bound in the parent container"
            raise SingletonOnChildError(msg)

        metadata = self._family.metadata.stamp(factory.service, scope)
        if metadata.scope is not scope and metadata.scope is not Scope.MOCK:
            # Accepted, but the scope stamped first stays in effect.
            self._trace(
                f"Changing scope in child container from {metadata.scope.value} to {scope.value} "
                "will be ignored. Please, update parent container with proper injection scope",
                level=logging.WARNING,
            )

        self._factories[metadata.id] = factory
        self._trace(
            f"Child container registers service {metadata.name} with id {metadata.id} "
            f"as a {metadata.scope.value} scoped"
        )


def _coerce_scope(scope: Scope | str) -> Scope:
    scope = Scope(scope)
    if scope is Scope.MOCK:
        msg = "Scope 'mock' is reserved for mocked services"
        raise ValueError(msg)
    return scope
