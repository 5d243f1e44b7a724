import pytest

from backend_registry import BackendRegistry, ensure_single_primary
from relay_errors import ConfigError
from schemas import BackendConfig


def _backend(name, primary=False):
    return BackendConfig(name=name, url=f"https://{name}.example.com", api_key=f"{name}-key", is_primary=primary)


def test_registry_exposes_primary_and_secondaries_in_order():
    registry = BackendRegistry([_backend("a"), _backend("b", primary=True), _backend("c")])

    assert len(registry) == 3
    assert registry.primary.name == "b"
    assert [b.name for b in registry] == ["a", "b", "c"]
    assert [b.name for b in registry.secondaries] == ["a", "c"]


def test_registry_with_single_backend():
    registry = BackendRegistry([_backend("only", primary=True)])
    assert registry.primary.name == "only"
    assert registry.secondaries == ()


@pytest.mark.parametrize("backends, message", [
    ([], "no primary backend set"),
    ([_backend("a"), _backend("b")], "no primary backend set"),
    ([_backend("a", primary=True), _backend("b", primary=True)], "multiple primary backends found"),
])
def test_registry_requires_exactly_one_primary(backends, message):
    with pytest.raises(ConfigError, match=message):
        BackendRegistry(backends)


def test_registry_is_read_only():
    registry = BackendRegistry([_backend("a", primary=True)])
    assert isinstance(registry.backends, tuple)
    with pytest.raises(AttributeError):
        registry.primary = _backend("b")


def test_registry_does_not_validate_urls():
    """Bad URLs only show up later, as transport failures."""
    broken = BackendConfig(name="broken", url="not a url", api_key="k", is_primary=True)
    assert BackendRegistry([broken]).primary is broken


def test_ensure_single_primary_returns_the_primary():
    primary = _backend("p", primary=True)
    assert ensure_single_primary([_backend("a"), primary]) is primary
