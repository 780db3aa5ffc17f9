"""In-process dependency injection container.

This package lets callers register service identities (usually classes) with
either a pre-built instance or a factory, and later resolve fully wired
instances with configurable scopes and per-request child containers.

Exports:
- `Container`: Root container supporting registration, resolution, and the
  snapshot / mock / restore test session.
- `ChildContainer`: Container forked from a parent via `Container.create_child()`.
  Useful for per-request lifetimes.
- `Scope`: Enum for service lifetimes (singleton, request, transient).
- `ContainerOptions`: Construction options (the `debug` trace callback).
"""

from ._container import ChildContainer, Container, ContainerOptions, Factory, SessionState
from ._errors import (
    AlreadyRegisteredError,
    AlreadySnapshottedError,
    ContainerError,
    MissingBindingError,
    MissingMetadataError,
    NoActiveSessionError,
    RegistrationError,
    ResolutionError,
    RootOnlyError,
    SessionError,
    SessionOnChildError,
    SingletonOnChildError,
)
from ._metadata import Metadata, Scope


__all__ = [
    "AlreadyRegisteredError",
    "AlreadySnapshottedError",
    "ChildContainer",
    "Container",
    "ContainerError",
    "ContainerOptions",
    "Factory",
    "Metadata",
    "MissingBindingError",
    "MissingMetadataError",
    "NoActiveSessionError",
    "RegistrationError",
    "ResolutionError",
    "RootOnlyError",
    "Scope",
    "SessionError",
    "SessionOnChildError",
    "SessionState",
    "SingletonOnChildError",
]
