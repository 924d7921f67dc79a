from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BindingKey:
    """Identifies a dependency slot: a type plus an optional qualifier.

    ``qualifier=None`` is a key of its own and never matches a named qualifier.
    """

    interface: Any
    qualifier: str | None = None

    def __str__(self) -> str:
        name = type_name(self.interface)
        if self.qualifier is None:
            return name
        return f"{name}[{self.qualifier!r}]"


def type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)
