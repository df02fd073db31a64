"""
Tests for the connection registry and its configuration loading.
"""
import json
import threading

import dataadapter as da
import pytest
from dataadapter.exceptions import ConfigurationError, ConnectionNotFoundError
from dataadapter.options import AdapterOptions
from dataadapter.registry import ConnectionRegistry, get_registry


def write_config(path, connections, section='ConnectionStrings'):
    path.write_text(json.dumps({section: connections}))
    return path


@pytest.fixture
def registry():
    return ConnectionRegistry()


class TestLoad:
    """Test loading connection strings from JSON documents"""

    def test_load_entries(self, registry, tmp_path):
        path = write_config(tmp_path / 'appsettings.json', {
            'main': 'sqlite:///main.db',
            'reports': 'sqlite:///reports.db',
        })
        registry.load(path)
        assert registry.is_configured
        assert registry.names() == ['main', 'reports']
        assert registry.resolve('reports') == 'sqlite:///reports.db'

    def test_existing_names_are_kept(self, registry, tmp_path):
        first = write_config(tmp_path / 'first.json', {'main': 'sqlite:///first.db'})
        second = write_config(tmp_path / 'second.json', {
            'main': 'sqlite:///second.db',
            'other': 'sqlite:///other.db',
        })
        registry.load(first)
        registry.load(second)
        assert registry.resolve('main') == 'sqlite:///first.db'
        assert registry.resolve('other') == 'sqlite:///other.db'

    def test_empty_and_null_values_skipped(self, registry, tmp_path):
        path = write_config(tmp_path / 'appsettings.json', {
            'empty': '',
            'null': None,
            'main': 'sqlite:///main.db',
        })
        registry.load(path)
        assert registry.names() == ['main']

    def test_only_empty_values_is_unconfigured(self, registry, tmp_path):
        path = write_config(tmp_path / 'appsettings.json', {'empty': '', 'null': None})
        with pytest.raises(ConfigurationError, match='No connections configured'):
            registry.load(path)
        assert not registry.is_configured

    def test_empty_section(self, registry, tmp_path):
        path = write_config(tmp_path / 'appsettings.json', {})
        with pytest.raises(ConfigurationError):
            registry.load(path)

    def test_missing_file(self, registry, tmp_path):
        with pytest.raises(ConfigurationError, match='Unable to load'):
            registry.load(tmp_path / 'missing.json')

    def test_invalid_json(self, registry, tmp_path):
        path = tmp_path / 'appsettings.json'
        path.write_text('{"ConnectionStrings": ')
        with pytest.raises(ConfigurationError, match='Unable to load'):
            registry.load(path)

    def test_missing_section(self, registry, tmp_path):
        path = write_config(tmp_path / 'appsettings.json', {'main': 'x'}, section='Other')
        with pytest.raises(ConfigurationError, match='ConnectionStrings'):
            registry.load(path)

    def test_non_text_value_rejects_whole_document(self, registry, tmp_path):
        path = write_config(tmp_path / 'appsettings.json', {'main': 'sqlite:///main.db', 'bad': 5})
        with pytest.raises(ConfigurationError, match='bad'):
            registry.load(path)
        assert not registry.is_configured

    def test_custom_section_and_default_path(self, tmp_path):
        path = write_config(tmp_path / 'settings.json', {'main': 'sqlite:///main.db'}, section='Databases')
        registry = ConnectionRegistry(AdapterOptions(config_path=str(path), section='Databases'))
        registry.load()
        assert registry.resolve() == 'sqlite:///main.db'


class TestRegisterAndResolve:

    def test_register_overwrites(self, registry):
        registry.register('main', 'sqlite:///one.db')
        registry.register('main', 'sqlite:///two.db')
        assert registry.resolve('main') == 'sqlite:///two.db'
        assert len(registry) == 1

    def test_load_does_not_overwrite_registered(self, registry, tmp_path):
        registry.register('main', 'sqlite:///registered.db')
        registry.load(write_config(tmp_path / 'appsettings.json', {'main': 'sqlite:///loaded.db'}))
        assert registry.resolve('main') == 'sqlite:///registered.db'

    def test_resolve_without_name_returns_first(self, registry):
        registry.register('first', 'sqlite:///first.db')
        registry.register('second', 'sqlite:///second.db')
        assert registry.resolve() == 'sqlite:///first.db'

    def test_resolve_unknown_name(self, registry):
        registry.register('main', 'sqlite:///main.db')
        with pytest.raises(ConnectionNotFoundError, match='missing'):
            registry.resolve('missing')

    def test_resolve_empty_registry(self, registry):
        with pytest.raises(ConnectionNotFoundError):
            registry.resolve()

    def test_contains_and_clear(self, registry):
        registry.register('main', 'sqlite:///main.db')
        assert 'main' in registry
        registry.clear()
        assert 'main' not in registry
        assert not registry.is_configured


class TestEnsureConfigured:

    def test_loads_default_path_when_empty(self, tmp_path, monkeypatch):
        write_config(tmp_path / 'appsettings.json', {'main': 'sqlite:///main.db'})
        monkeypatch.chdir(tmp_path)
        registry = ConnectionRegistry()
        registry.ensure_configured()
        assert registry.resolve() == 'sqlite:///main.db'

    def test_skips_load_when_configured(self, registry, tmp_path):
        registry.register('main', 'sqlite:///main.db')
        registry.ensure_configured(tmp_path / 'missing.json')
        assert registry.names() == ['main']

    def test_missing_default_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigurationError):
            ConnectionRegistry().ensure_configured()


class TestConcurrentLoad:
    """Test that racing loads keep exactly one value per name"""

    def test_first_writer_wins(self, tmp_path):
        paths = [
            write_config(tmp_path / f'settings{i}.json', {'main': f'sqlite:///db{i}.db', f'only{i}': 'x'})
            for i in range(2)
        ]
        for _ in range(20):
            registry = ConnectionRegistry()
            barrier = threading.Barrier(2)
            errors = []

            def load(path, registry=registry, barrier=barrier, errors=errors):
                barrier.wait()
                try:
                    registry.load(path)
                except Exception as err:
                    errors.append(err)

            threads = [threading.Thread(target=load, args=(path,)) for path in paths]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            assert errors == []
            assert registry.is_configured
            assert registry.resolve('main') in {'sqlite:///db0.db', 'sqlite:///db1.db'}
            assert sorted(registry.names()) == ['main', 'only0', 'only1']


class TestPackageFunctions:

    def test_configure(self, tmp_path):
        da.configure(str(write_config(tmp_path / 'appsettings.json', {'main': 'sqlite:///main.db'})))
        assert get_registry().resolve('main') == 'sqlite:///main.db'

    def test_register_connection(self):
        da.register_connection('main', 'sqlite:///main.db')
        da.register_connection('main', 'sqlite:///other.db')
        assert get_registry().resolve('main') == 'sqlite:///other.db'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
