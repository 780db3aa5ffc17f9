from __future__ import annotations


class ContainerError(RuntimeError):
    pass


class RootOnlyError(ContainerError):
    """The operation is only available on the root container, not on a child."""


class RegistrationError(ContainerError):
    pass


class AlreadyRegisteredError(RegistrationError):
    pass


class SingletonOnChildError(RegistrationError, RootOnlyError):
    """Singletons (constants or singleton-scoped factories) can only be bound on the root."""


class ResolutionError(ContainerError):
    pass


class MissingMetadataError(ResolutionError):
    """The identity was never bound or mocked anywhere in the container family."""


class MissingBindingError(ResolutionError):
    """The identity is known to the family, but no value or factory is reachable from this container."""


class SessionError(ContainerError):
    pass


class NoActiveSessionError(SessionError):
    pass


class AlreadySnapshottedError(SessionError):
    pass


class SessionOnChildError(SessionError, RootOnlyError):
    """`snapshot`, `restore` and `clear_mocks` can only be called on the root."""
