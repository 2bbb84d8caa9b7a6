from unittest.mock import Mock

import pytest

from rendercache.application.services.owner_fallback import load_with_fallback


class Loaded:
    def __init__(self):
        self.ids = set()

    def record(self, item):
        self.ids.add(item)

    def is_loaded(self, pixels_id):
        return pixels_id in self.ids


def test_empty_ids_fetch_nothing():
    fetch_acting, fetch_owner = Mock(), Mock()
    loaded = Loaded()
    missing = load_with_fallback([], fetch_acting, fetch_owner, loaded.record, loaded.is_loaded, True)
    assert missing == set()
    fetch_acting.assert_not_called()
    fetch_owner.assert_not_called()


def test_unrestricted_never_reads_owner_records():
    fetch_acting = Mock(return_value=[1])
    fetch_owner = Mock(return_value=[2])
    loaded = Loaded()
    missing = load_with_fallback({1, 2}, fetch_acting, fetch_owner, loaded.record, loaded.is_loaded, False)
    assert missing == {2}
    fetch_owner.assert_not_called()


def test_restricted_reads_owner_records_for_missing_only():
    fetch_acting = Mock(return_value=[1])
    fetch_owner = Mock(return_value=[2])
    loaded = Loaded()
    missing = load_with_fallback({1, 2, 3}, fetch_acting, fetch_owner, loaded.record, loaded.is_loaded, True)
    assert missing == {3}
    fetch_acting.assert_called_once_with({1, 2, 3})
    fetch_owner.assert_called_once_with({2, 3})
    assert loaded.ids == {1, 2}


def test_restricted_skips_owner_read_when_complete():
    fetch_acting = Mock(return_value=[1, 2])
    fetch_owner = Mock()
    loaded = Loaded()
    missing = load_with_fallback({1, 2}, fetch_acting, fetch_owner, loaded.record, loaded.is_loaded, True)
    assert missing == set()
    fetch_owner.assert_not_called()


def test_fetch_errors_propagate():
    fetch_acting = Mock(side_effect=RuntimeError("db down"))
    loaded = Loaded()
    with pytest.raises(RuntimeError, match="db down"):
        load_with_fallback({1}, fetch_acting, Mock(), loaded.record, loaded.is_loaded, False)
