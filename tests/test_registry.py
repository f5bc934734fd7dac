"""
Tests for the newly installed registry and its state store.
"""

import pytest
import json
import os
import sys
import threading
import time
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.classifier import ProvenanceClassifier
from core.registry import NewAppsRegistry, NEW_APPS_KEY
from core.state_manager import StateManager, InMemoryStateManager, StateError
from handlers.base_handler import PackageSourceError
from models.package_record import PackageRecord, TrustVerdict


def build_registry(source, store=None):
    store = store if store is not None else InMemoryStateManager()
    return NewAppsRegistry(store, ProvenanceClassifier(source))


class TestStateManager:
    """Tests for the JSON file store."""

    def test_missing_file_reads_empty(self, temp_state_file):
        manager = StateManager(temp_state_file)
        assert manager.get_set(NEW_APPS_KEY) == set()

    def test_put_and_get_set(self, temp_state_file):
        manager = StateManager(temp_state_file)

        assert manager.put_set(NEW_APPS_KEY, {'com.b', 'com.a'}) is True
        assert manager.get_set(NEW_APPS_KEY) == {'com.a', 'com.b'}

        with open(temp_state_file, encoding='utf-8') as f:
            assert json.load(f) == {NEW_APPS_KEY: ['com.a', 'com.b']}

    def test_state_survives_new_instance(self, temp_state_file):
        StateManager(temp_state_file).put_set(NEW_APPS_KEY, ['com.a'])
        assert StateManager(temp_state_file).get_set(NEW_APPS_KEY) == {'com.a'}

    def test_remove_set(self, temp_state_file):
        manager = StateManager(temp_state_file)
        manager.put_set(NEW_APPS_KEY, ['com.a'])
        manager.put_set('other', ['x'])

        assert manager.remove_set(NEW_APPS_KEY) is True
        assert manager.get_set(NEW_APPS_KEY) == set()
        assert manager.get_set('other') == {'x'}

    def test_corrupt_file_raises(self, temp_state_file):
        os.makedirs(os.path.dirname(temp_state_file))
        with open(temp_state_file, 'w', encoding='utf-8') as f:
            f.write('{not json')

        manager = StateManager(temp_state_file)
        with pytest.raises(StateError):
            manager.get_set(NEW_APPS_KEY)

    def test_put_refuses_corrupt_file(self, temp_state_file):
        os.makedirs(os.path.dirname(temp_state_file))
        with open(temp_state_file, 'w', encoding='utf-8') as f:
            f.write('{not json')

        assert StateManager(temp_state_file).put_set(NEW_APPS_KEY, ['com.a']) is False
        with open(temp_state_file, encoding='utf-8') as f:
            assert f.read() == '{not json'

    def test_failed_commit_returns_false(self, temp_state_file):
        manager = StateManager(temp_state_file)
        with patch('core.state_manager.os.replace', side_effect=OSError('disk full')):
            assert manager.put_set(NEW_APPS_KEY, ['com.a']) is False

        assert manager.get_set(NEW_APPS_KEY) == set()
        leftovers = [name for name in os.listdir(os.path.dirname(temp_state_file)) if name.endswith('.tmp')]
        assert leftovers == []


class TestNewAppsRegistry:
    """Tests for NewAppsRegistry."""

    def test_add_is_idempotent(self, make_source):
        store = InMemoryStateManager()
        registry = build_registry(make_source({}), store)

        assert registry.add('com.x.y') is True
        assert registry.add('com.x.y') is True

        assert store.get_set(NEW_APPS_KEY) == {'com.x.y'}

    def test_add_rejects_empty_identifier(self, make_source):
        store = InMemoryStateManager()
        registry = build_registry(make_source({}), store)

        assert registry.add('') is False
        assert store.get_set(NEW_APPS_KEY) == set()

    def test_add_fails_when_state_unreadable(self, make_source, temp_state_file):
        os.makedirs(os.path.dirname(temp_state_file))
        with open(temp_state_file, 'w', encoding='utf-8') as f:
            f.write('[')

        registry = build_registry(make_source({}), StateManager(temp_state_file))
        assert registry.add('com.x.y') is False

    def test_add_reports_failed_write(self, make_source):
        store = InMemoryStateManager()
        registry = build_registry(make_source({}), store)

        with patch.object(store, 'put_set', return_value=False):
            assert registry.add('com.x.y') is False

    def test_read_filters_trusted(self, make_source, sample_packages):
        store = InMemoryStateManager(initial={NEW_APPS_KEY: ['com.acme.app', 'com.store.app']})
        registry = build_registry(make_source(sample_packages), store)

        records = registry.read_and_filter()

        assert [r.package_id for r in records] == ['com.acme.app']
        assert records[0].display_name == 'Acme'
        assert records[0].verdict is TrustVerdict.SIDELOADED

    def test_read_is_not_destructive(self, make_source, sample_packages):
        store = InMemoryStateManager(initial={NEW_APPS_KEY: ['com.acme.app']})
        registry = build_registry(make_source(sample_packages), store)

        registry.read_and_filter()

        assert len(registry.read_and_filter()) == 1

    def test_read_keeps_entry_when_lookup_fails(self, make_source):
        store = InMemoryStateManager(initial={NEW_APPS_KEY: ['com.gone.app']})
        registry = build_registry(make_source({}), store)

        records = registry.read_and_filter()

        assert len(records) == 1
        assert records[0].package_id == 'com.gone.app'
        assert records[0].display_name == 'com.gone.app'
        assert records[0].verdict is TrustVerdict.SIDELOADED

    def test_read_falls_back_when_label_fails(self, make_source):
        source = make_source({
            'com.acme.app': {'installer': None, 'label_error': PackageSourceError('no label')},
            'com.blank.app': {'installer': None, 'label': '  '},
        })
        store = InMemoryStateManager(initial={NEW_APPS_KEY: ['com.acme.app', 'com.blank.app']})
        registry = build_registry(source, store)

        records = {r.package_id: r for r in registry.read_and_filter()}

        assert records['com.acme.app'].display_name == 'com.acme.app'
        assert records['com.blank.app'].display_name == 'com.blank.app'

    def test_read_never_drops_sideloaded(self, make_source, sample_packages):
        pending = ['com.acme.app', 'com.adb.push', 'com.gone.app', 'com.store.app']
        store = InMemoryStateManager(initial={NEW_APPS_KEY: pending})
        source = make_source(sample_packages)
        registry = build_registry(source, store)

        sideloaded = [p for p in pending if registry.classifier.classify(p) is TrustVerdict.SIDELOADED]
        records = registry.read_and_filter()

        assert len(records) >= len(sideloaded)
        assert {r.package_id for r in records} == {'com.acme.app', 'com.adb.push', 'com.gone.app'}

    def test_read_skips_empty_stored_identifier(self, make_source, sample_packages, temp_state_file):
        """A hand-edited state file with an empty id still yields the valid entries."""
        os.makedirs(os.path.dirname(temp_state_file))
        with open(temp_state_file, 'w', encoding='utf-8') as f:
            json.dump({NEW_APPS_KEY: ['com.acme.app', '']}, f)

        registry = build_registry(make_source(sample_packages), StateManager(temp_state_file))
        records = registry.read_and_filter()

        assert [r.package_id for r in records] == ['com.acme.app']

    def test_read_skips_empty_identifier_in_memory(self, make_source):
        store = InMemoryStateManager(initial={NEW_APPS_KEY: ['com.gone.app', '']})
        registry = build_registry(make_source({}), store)

        records = registry.read_and_filter()

        assert [(r.package_id, r.display_name) for r in records] == [('com.gone.app', 'com.gone.app')]

    def test_concurrent_adds_keep_every_identifier(self, make_source):
        store = InMemoryStateManager()
        registry = build_registry(make_source({}), store)
        original_get_set = store.get_set

        def slow_get_set(key):
            packages = original_get_set(key)
            time.sleep(0.01)
            return packages

        ids = [f'com.app{i}' for i in range(8)]
        with patch.object(store, 'get_set', side_effect=slow_get_set):
            threads = [threading.Thread(target=registry.add, args=(package_id,)) for package_id in ids]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert store.get_set(NEW_APPS_KEY) == set(ids)

    def test_read_raises_when_state_unreadable(self, make_source, temp_state_file):
        os.makedirs(os.path.dirname(temp_state_file))
        with open(temp_state_file, 'w', encoding='utf-8') as f:
            f.write('not json')

        registry = build_registry(make_source({}), StateManager(temp_state_file))
        with pytest.raises(StateError):
            registry.read_and_filter()

    def test_clear_then_read_is_empty(self, make_source, sample_packages, temp_state_file):
        registry = build_registry(make_source(sample_packages), StateManager(temp_state_file))
        registry.add('com.acme.app')
        registry.add('com.adb.push')

        assert registry.clear() is True
        assert registry.read_and_filter() == []

        registry.add('com.acme.app')
        assert [r.package_id for r in registry.read_and_filter()] == ['com.acme.app']

    def test_clear_on_empty_registry(self, make_source):
        registry = build_registry(make_source({}))
        assert registry.clear() is True
        assert registry.read_and_filter() == []

    def test_add_then_read_round_trip(self, make_source, sample_packages):
        registry = build_registry(make_source(sample_packages))

        registry.add('com.store.app')
        assert registry.read_and_filter() == []

        registry.add('com.adb.push')
        assert [r.package_id for r in registry.read_and_filter()] == ['com.adb.push']


class TestListAllSideloaded:
    """Tests for the full device scan."""

    def test_scan_excludes_system_and_trusted(self, make_source, sample_packages):
        registry = build_registry(make_source(sample_packages))

        records = {r.package_id: r for r in registry.list_all_sideloaded()}

        assert set(records) == {'com.acme.app', 'com.adb.push'}
        assert records['com.adb.push'].display_name == 'Pushed'

    def test_scan_ignores_pending_registry(self, make_source, sample_packages):
        store = InMemoryStateManager(initial={NEW_APPS_KEY: ['com.not.installed']})
        registry = build_registry(make_source(sample_packages), store)

        ids = {r.package_id for r in registry.list_all_sideloaded()}
        assert 'com.not.installed' not in ids

    def test_scan_skips_failed_lookups(self, make_source):
        source = make_source({
            'com.acme.app': {'installer': None, 'label': 'Acme'},
            'com.flaky.app': {'installer_error': PackageSourceError('timeout')},
            'com.nolabel.app': {'installer': None, 'label_error': PackageSourceError('gone')},
        })
        registry = build_registry(source)

        ids = [r.package_id for r in registry.list_all_sideloaded()]

        assert ids == ['com.acme.app']

    def test_scan_falls_back_for_missing_label(self, make_source):
        registry = build_registry(make_source({'com.acme.app': {'installer': None}}))

        records = registry.list_all_sideloaded()

        assert records[0].display_name == 'com.acme.app'

    def test_scan_raises_when_enumeration_fails(self, make_source):
        registry = build_registry(make_source({}, list_error=PackageSourceError('adb offline')))
        with pytest.raises(PackageSourceError):
            registry.list_all_sideloaded()


class TestPackageRecord:
    """Tests for PackageRecord model."""

    def test_display_name_defaults_to_identifier(self):
        record = PackageRecord(package_id='com.acme.app')
        assert record.display_name == 'com.acme.app'
        assert record.verdict is TrustVerdict.UNKNOWN

    def test_empty_identifier_rejected(self):
        with pytest.raises(ValueError):
            PackageRecord(package_id='')

    def test_to_dict(self):
        record = PackageRecord('com.acme.app', 'Acme', TrustVerdict.SIDELOADED)
        assert record.to_dict() == {
            'package_id': 'com.acme.app',
            'display_name': 'Acme',
            'verdict': 'sideloaded',
        }

    def test_from_dict_without_verdict(self):
        record = PackageRecord.from_dict({'package_id': 'com.acme.app', 'display_name': 'Acme'})
        assert record.verdict is TrustVerdict.UNKNOWN
        assert record.display_name == 'Acme'


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
