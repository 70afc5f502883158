"""An in-memory environment overlay.

:class:`Environment` holds variables without touching the real process
environment. Lookups fall back to a second source (``os.environ`` by default)
for keys it does not hold. It is not thread-safe; guard shared instances with
a lock when writing while others decode from it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any

from .tags import Lookup, UnmarshalOption
from .unmarshal import decode, lookup_env
from .value import Value

logger = logging.getLogger(__name__)


class Environment(MutableMapping[str, Value]):
    def __init__(
        self,
        values: Mapping[str, str] | None = None,
        *,
        fallback: Lookup | None = lookup_env,
    ) -> None:
        self._data: dict[str, Value] = {}
        self._fallback = fallback
        if values:
            for key, value in values.items():
                self[key] = value

    @classmethod
    def load(cls, *, fallback: Lookup | None = lookup_env) -> Environment:
        """Snapshot every variable of the current process."""
        return cls(dict(os.environ), fallback=fallback)

    # ----- mapping protocol (local entries only) -----

    def __getitem__(self, key: str) -> Value:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key] = Value(value)

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._data)} vars)"

    # ----- overlay access -----

    def lookup(self, key: str) -> tuple[Value, bool]:
        """Return ``(value, found)``, consulting the fallback for absent keys."""
        if key in self._data:
            return self._data[key], True
        if self._fallback is not None:
            value, found = self._fallback(key)
            if found:
                return Value(value), True
        return Value(""), False

    def get(self, key: str, default: Any = None) -> Value:  # type: ignore[override]
        """Return the value for ``key``; unset keys give ``default`` or ``""``."""
        value, found = self.lookup(key)
        if not found and default is not None:
            return default
        return value

    def contains(self, key: str) -> bool:
        return self.lookup(key)[1]

    def set(self, key: str, value: str) -> None:
        self[key] = value

    def unset(self, key: str) -> None:
        """Remove ``key`` from the overlay; missing keys are ignored."""
        self._data.pop(key, None)

    # ----- export helpers -----

    def export(self) -> None:
        """Write every entry into the current process environment."""
        for key, value in self._data.items():
            os.environ[key] = str(value)
        logger.debug("exported %d variables", len(self._data))

    def export_cmd(self, env: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return an ``env`` mapping for :func:`subprocess.run`.

        The result is ``env`` (empty by default) updated with every entry.
        """
        out = dict(env or {})
        out.update((key, str(value)) for key, value in self._data.items())
        return out

    def unmarshal(self, out: Any, *opts: UnmarshalOption) -> None:
        """Populate ``out`` from this environment.

        See :func:`pyenvtag.unmarshal` for the decoding rules.
        """
        if out is None:
            return

        def lookup(key: str) -> tuple[str, bool]:
            value, found = self.lookup(key)
            return str(value), found

        decode(lookup, out, *opts)
