"""Registration-time and resolution-time type checks."""

from __future__ import annotations

import inspect
import typing
from abc import ABC
from typing import Any, Protocol, cast, get_type_hints

from ._key import type_name


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: object) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: object) -> bool:
        """Detect whether 'tp' is a typing.Protocol subclass (safe)."""
        return inspect.isclass(tp) and issubclass(tp, cast("type", Protocol)) and bool(getattr(tp, "_is_protocol", False))


def is_runtime_checkable_protocol(tp: type) -> bool:
    if not is_protocol(tp):
        return False

    try:
        isinstance(None, tp)
    except TypeError:
        return False
    else:
        return True


def is_abstract(tp: object) -> bool:
    """Abstract classes, protocols and direct ``ABC`` subclasses cannot be built automatically."""
    if not inspect.isclass(tp):
        return False
    return inspect.isabstract(tp) or is_protocol(tp) or ABC in tp.__bases__


def validate_impl(cls: type, impl: type) -> None:
    """Validate that 'impl' implements 'cls'.

    - For normal classes/ABCs: require issubclass(impl, cls).
    - For Protocols: check nominal conformance via MRO, otherwise structural conformance.
    """
    if not inspect.isclass(impl):
        msg = f"Implementation {impl!r} is not a class"
        raise TypeError(msg)

    if not is_protocol(cls):
        if not issubclass(impl, cls):
            msg = f"Implementation {impl.__name__} must be a subclass of {cls.__name__}"
            raise TypeError(msg)
        return

    validate_protocol_impl(cls, impl)


def check_instance(token: object, instance: object) -> None:
    """Check an instance produced by a factory against the type it is bound to."""
    if not inspect.isclass(token):
        return

    if is_protocol(token):
        try:
            validate_protocol_impl(token, type(instance))
        except TypeError as e:
            msg = f"Resolved instance {type(instance).__name__} does not conform to protocol {token.__name__}"
            raise TypeError(msg) from e

        if is_runtime_checkable_protocol(token) and not isinstance(instance, token):
            msg = f"Resolved instance {type(instance).__name__} does not implement runtime protocol {token.__name__}"
            raise TypeError(msg)
        return

    if not isinstance(instance, token):
        msg = f"Resolved instance {type(instance).__name__} is not an instance of {type_name(token)}"
        raise TypeError(msg)


def validate_protocol_impl(proto_cls: type, impl: type) -> None:
    if proto_cls in getattr(impl, "__mro__", ()):
        return

    _validate_protocol_structural_conformance(proto_cls, impl)


def _validate_protocol_structural_conformance(proto_cls: type, impl: type) -> None:  # noqa: C901
    """Best-effort structural conformance: presence + basic callable arity + return type checks."""
    missing: list[str] = []
    signature_mismatches: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls, include_extras=True)
    except (TypeError, NameError):
        proto_hints = {}

    for name in proto_hints:
        if name.startswith("_"):
            continue
        if not hasattr(impl, name):
            missing.append(name)

    for name, proto_attr in proto_cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(proto_attr):
            continue

        if not hasattr(impl, name):
            missing.append(name)
            continue

        impl_attr = getattr(impl, name)
        if not callable(impl_attr):
            signature_mismatches.append(f"{name}: not callable on {impl.__name__}")
            continue

        try:
            proto_sig = inspect.signature(proto_attr)
            impl_sig = inspect.signature(impl_attr)
        except (TypeError, ValueError) as e:
            signature_mismatches.append(f"{name}: unable to compare signatures ({e})")
            continue

        proto_params = [p for p in proto_sig.parameters.values() if p.name != "self"]
        impl_params = [p for p in impl_sig.parameters.values() if p.name != "self"]

        if _positional_arity(impl_params) < _positional_arity(proto_params):
            signature_mismatches.append(
                f"{name}: impl has fewer required positional params "
                f"({_positional_arity(impl_params)}) than protocol "
                f"({_positional_arity(proto_params)})"
            )

        proto_ret = proto_sig.return_annotation
        impl_ret = impl_sig.return_annotation
        if (
            proto_ret is not inspect.Signature.empty
            and impl_ret is not inspect.Signature.empty
            and proto_ret is not Any
            and impl_ret is not Any
            and not _is_return_type_compatible(impl_ret, proto_ret)
        ):
            signature_mismatches.append(
                f"{name}: return type {impl_ret!r} is not compatible with protocol return type {proto_ret!r}"
            )

    if missing or signature_mismatches:
        msgs = []
        if missing:
            msgs.append(f"missing members: {', '.join(missing)}")
        if signature_mismatches:
            msgs.append(f"signature mismatches: {', '.join(signature_mismatches)}")

        msg = (
            f"Implementation {impl.__name__} does not structurally conform to protocol "
            f"{proto_cls.__name__}: {'; '.join(msgs)}"
        )
        raise TypeError(msg)


def _positional_arity(params: list[inspect.Parameter]) -> int:
    return sum(
        1
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    )


def _is_return_type_compatible(impl_ret: object, proto_ret: object) -> bool:
    if impl_ret == proto_ret:
        return True

    if isinstance(impl_ret, type) and isinstance(proto_ret, type):
        return issubclass(impl_ret, proto_ret)

    # Union, Protocol, TypeVar, string annotations: conservative failure
    return False
