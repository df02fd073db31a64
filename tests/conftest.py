import pytest
from dataadapter.connection import dispose_all_engines
from dataadapter.hydration import clear_field_cache
from dataadapter.registry import get_registry


@pytest.fixture(autouse=True)
def clear_registry():
    """Start and finish every test with an empty registry and no cached state."""
    get_registry().clear()
    clear_field_cache()
    yield
    get_registry().clear()
    clear_field_cache()
    dispose_all_engines()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
]
