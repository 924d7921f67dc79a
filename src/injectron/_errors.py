from __future__ import annotations


class ResolutionError(RuntimeError):
    """Base class for every failure raised while registering or resolving."""


class NotFoundError(ResolutionError):
    """No binding and no automatic construction path for the requested key."""


class UnsatisfiedAbstractionError(NotFoundError):
    """An abstract class or protocol was requested but nothing is bound to it."""


class QualifierMismatchError(NotFoundError):
    """A qualified request found bindings for the type, but none with that qualifier."""


class NotInjectableError(ResolutionError):
    """A concrete class lacks the marker required for automatic construction."""


class NoConstructorError(ResolutionError):
    """A class exposes no constructor signature that can be inspected."""


class InjectionFailedError(ResolutionError):
    """A field could not be injected. The underlying cause is chained."""


class CircularDependencyError(ResolutionError):
    """A key was requested again while it was still being resolved."""
