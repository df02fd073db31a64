import importlib

import pytest

# Listed so each module is imported after the ones it depends on
MODULES = [
    'dataadapter.exceptions',
    'dataadapter.options',
    'dataadapter.types',
    'dataadapter.cursor',
    'dataadapter.strategy.base',
    'dataadapter.strategy.sqlserver',
    'dataadapter.strategy.postgres',
    'dataadapter.strategy',
    'dataadapter.connection',
    'dataadapter.hydration',
    'dataadapter.registry',
    'dataadapter.query',
    'dataadapter',
]


@pytest.mark.parametrize('module', MODULES)
def test_module_imports(module):
    """Each module imports on its own without circular dependencies"""
    assert importlib.import_module(module) is not None


def test_public_names_resolve():
    package = importlib.import_module('dataadapter')
    missing = [name for name in package.__all__ if not hasattr(package, name)]
    assert missing == []


if __name__ == '__main__':
    __import__('pytest').main([__file__])
