"""
Backend Registry - the immutable set of backends requests are relayed to.
"""

from typing import TYPE_CHECKING, Iterator, Sequence, Tuple

from relay_errors import ConfigError

if TYPE_CHECKING:
    from schemas import BackendConfig

NO_PRIMARY_MESSAGE = "no primary backend set - exactly one backend must be marked with is_primary = true"
MULTIPLE_PRIMARY_MESSAGE = "multiple primary backends found - exactly one backend must be marked with is_primary = true"


def ensure_single_primary(backends: Sequence["BackendConfig"]) -> "BackendConfig":
    """Return the only primary backend, or raise ConfigError."""
    primaries = [backend for backend in backends if backend.is_primary]
    if not primaries:
        raise ConfigError(NO_PRIMARY_MESSAGE)
    if len(primaries) > 1:
        raise ConfigError(MULTIPLE_PRIMARY_MESSAGE)
    return primaries[0]


class BackendRegistry:
    """
    Ordered, read-only list of backends with exactly one primary.

    Built once at startup and shared by every request without locking.
    URLs and credentials are not checked here: a bad URL shows up as a
    transport failure when the backend is called.
    """

    def __init__(self, backends: Sequence["BackendConfig"]):
        self._backends: Tuple["BackendConfig", ...] = tuple(backends)
        self._primary = ensure_single_primary(self._backends)

    @property
    def backends(self) -> Tuple["BackendConfig", ...]:
        return self._backends

    @property
    def primary(self) -> "BackendConfig":
        return self._primary

    @property
    def secondaries(self) -> Tuple["BackendConfig", ...]:
        return tuple(b for b in self._backends if b is not self._primary)

    def __iter__(self) -> Iterator["BackendConfig"]:
        return iter(self._backends)

    def __len__(self) -> int:
        return len(self._backends)

    def __repr__(self) -> str:
        names = ", ".join(
            f"{b.name}{' (primary)' if b is self._primary else ''}" for b in self._backends
        )
        return f"BackendRegistry([{names}])"
