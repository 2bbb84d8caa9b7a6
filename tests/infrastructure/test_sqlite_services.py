"""SQLite query/update services and the settings service against a real database."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from rendercache.application.interfaces import IThumbnailStore
from rendercache.application.services.thumbnail_context import ThumbnailContext
from rendercache.domain.models import (
    Dimensions,
    EntityKind,
    PixelSet,
    PixelSetRef,
    QueryCriteria,
    RenderingSettings,
    ThumbnailRecord,
)
from rendercache.infrastructure.db.pool import ConnectionPool
from rendercache.infrastructure.db.schema import from_db_time, init_schema, to_db_time
from rendercache.infrastructure.repositories import SQLiteQueryService, SQLiteUpdateService
from rendercache.infrastructure.services import RenderingSettingsService, StaticSecurityContext

USER = 5
OWNER = 7
T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class StepClock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def pool(tmp_path):
    pool = ConnectionPool(tmp_path / "rendercache.db", pool_size=2)
    init_schema(pool)
    yield pool
    pool.close_all()


@pytest.fixture
def step_clock():
    return StepClock()


@pytest.fixture
def query(pool):
    return SQLiteQueryService(pool)


@pytest.fixture
def update(pool, step_clock):
    update = SQLiteUpdateService(pool, clock=step_clock)
    update.save_all([
        PixelSet(id=1, size_x=800, size_y=600, owner_id=OWNER),
        PixelSet(id=2, size_x=600, size_y=800, owner_id=OWNER),
        PixelSet(id=3, size_x=100, size_y=100, owner_id=USER),
    ])
    return update


def _thumb(pixels_id, x, y, owner_id=USER, **kwargs):
    return ThumbnailRecord(pixels=PixelSetRef(pixels_id), size_x=x, size_y=y, owner_id=owner_id, **kwargs)


class TestTimestamps:
    def test_round_trip_keeps_microseconds(self):
        value = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
        assert from_db_time(to_db_time(value)) == value

    def test_naive_values_are_utc(self):
        assert to_db_time(datetime(2024, 1, 1)) == "2024-01-01T00:00:00.000000+00:00"

    def test_empty_is_none(self):
        assert from_db_time(None) is None
        assert from_db_time("") is None


class TestQueryService:
    def test_pixels_by_ids(self, query, update):
        found = query.find_all_by_ids(EntityKind.PIXELS, QueryCriteria(), [3, 1, 404])
        assert [p.id for p in found] == [1, 3]
        assert found[0] == PixelSet(id=1, size_x=800, size_y=600, owner_id=OWNER, updated_at=found[0].updated_at)
        assert found[0].updated_at.tzinfo is not None

    def test_settings_scoped_to_acting_user(self, query, update):
        update.save_all([
            RenderingSettings(pixels=PixelSetRef(1), owner_id=USER),
            RenderingSettings(pixels=PixelSetRef(2), owner_id=OWNER),
        ])
        found = query.find_all_by_ids(EntityKind.RENDERING_SETTINGS, QueryCriteria().owned_by(USER), [1, 2])
        assert [(s.pixels_id, s.owner_id) for s in found] == [(1, USER)]
        assert isinstance(found[0].pixels, PixelSet)
        assert found[0].pixels.size_x == 800

    def test_settings_scoped_to_pixels_owner(self, query, update):
        update.save_all([
            RenderingSettings(pixels=PixelSetRef(1), owner_id=USER),
            RenderingSettings(pixels=PixelSetRef(2), owner_id=OWNER),
        ])
        found = query.find_all_by_ids(
            EntityKind.RENDERING_SETTINGS, QueryCriteria().owned_by_pixels_owner(), [1, 2]
        )
        assert [(s.pixels_id, s.owner_id) for s in found] == [(2, OWNER)]

    def test_thumbnails_filtered_by_size(self, query, update):
        update.save_all([_thumb(1, 96, 72), _thumb(1, 48, 36), _thumb(2, 72, 96)])
        criteria = QueryCriteria().owned_by(USER).with_dimensions(Dimensions(96, 72))
        found = query.find_all_by_ids(EntityKind.THUMBNAIL, criteria, [1, 2])
        assert [(t.pixels_id, t.dimensions) for t in found] == [(1, Dimensions(96, 72))]
        assert found[0].mime_type == "image/jpeg"

    def test_large_id_lists_are_chunked(self, pool, update):
        query = SQLiteQueryService(pool, chunk_size=2)
        found = query.find_all_by_ids(EntityKind.PIXELS, QueryCriteria(), range(1, 6))
        assert sorted(p.id for p in found) == [1, 2, 3]

    def test_empty_ids(self, query):
        assert query.find_all_by_ids(EntityKind.THUMBNAIL, QueryCriteria(), []) == []

    def test_get(self, query, update):
        [thumb_id] = update.save_all([_thumb(2, 72, 96)])
        record = query.get(EntityKind.THUMBNAIL, thumb_id)
        assert record.id == thumb_id
        assert record.pixels.size_y == 800
        assert query.get(EntityKind.PIXELS, 3).size_x == 100
        assert query.get(EntityKind.RENDERING_SETTINGS, 999) is None


class TestUpdateService:
    def test_batch_shares_one_timestamp(self, query, update):
        update.save_all([_thumb(1, 96, 72), _thumb(2, 72, 96)])
        found = query.find_all_by_ids(EntityKind.THUMBNAIL, QueryCriteria(), [1, 2])
        assert len({t.updated_at for t in found}) == 1

    def test_settings_upsert_keeps_one_row_per_owner(self, query, update):
        [first] = update.save_all([RenderingSettings(pixels=PixelSetRef(1), owner_id=USER)])
        [second] = update.save_all([RenderingSettings(pixels=PixelSetRef(1), owner_id=USER, model="greyscale")])
        assert first == second
        [settings] = query.find_all_by_ids(EntityKind.RENDERING_SETTINGS, QueryCriteria(), [1])
        assert settings.model == "greyscale"

    def test_update_existing_thumbnail(self, query, update):
        [thumb_id] = update.save_all([_thumb(1, 96, 72)])
        before = query.get(EntityKind.THUMBNAIL, thumb_id).updated_at
        update.save_all([_thumb(1, 96, 72, id=thumb_id, mime_type="image/png")])
        after = query.get(EntityKind.THUMBNAIL, thumb_id)
        assert after.mime_type == "image/png"
        assert after.updated_at > before

    def test_records_need_an_owner(self, update):
        with pytest.raises(ValueError):
            update.save_all([_thumb(1, 96, 72, owner_id=None)])

    def test_unknown_records_are_rejected(self, update):
        with pytest.raises(TypeError):
            update.save_all([object()])

    def test_empty_batch(self, update):
        assert update.save_all([]) == []


class TestRenderingSettingsService:
    def test_creates_defaults_only_where_missing(self, query, update):
        update.save_all([RenderingSettings(pixels=PixelSetRef(1), owner_id=USER)])
        service = RenderingSettingsService(query, update, USER)

        assert service.reset_defaults_for_missing(EntityKind.PIXELS, {1, 2, 404}) == {2}
        found = query.find_all_by_ids(EntityKind.RENDERING_SETTINGS, QueryCriteria().owned_by(USER), [1, 2])
        assert sorted(s.pixels_id for s in found) == [1, 2]

    def test_only_pixels_kind(self, query, update):
        service = RenderingSettingsService(query, update, USER)
        with pytest.raises(ValueError):
            service.reset_defaults_for_missing(EntityKind.THUMBNAIL, {1})

    def test_validate_compatibility(self, query, update):
        service = RenderingSettingsService(query, update, USER)
        pixels = query.get(EntityKind.PIXELS, 1)
        assert service.validate_compatibility(pixels, pixels)
        assert service.validate_compatibility(pixels, PixelSetRef(1))
        assert not service.validate_compatibility(pixels, query.get(EntityKind.PIXELS, 2))
        assert not service.validate_compatibility(pixels, PixelSetRef(404))


def test_full_session_against_sqlite(query, update):
    """Settings at T1, thumbnail created at T2, settings changed at T3."""

    store = Mock(spec=IThumbnailStore)
    store.image_exists.return_value = True
    settings_service = RenderingSettingsService(query, update, USER)

    def new_context():
        return ThumbnailContext(query, update, settings_service, store, StaticSecurityContext(False), USER)

    ctx = new_context()
    ctx.prepare_settings({1, 2})
    assert ctx.prepare_missing_settings({1, 2}) == {1, 2}
    pools = ctx.prepare_metadata({1, 2}, 96)

    assert pools == {Dimensions(96, 72): {1}, Dimensions(72, 96): {2}}
    assert ctx.get_metadata(1).id is not None
    assert ctx.is_stale(1) is False
    assert ctx.is_thumbnail_image_cached(1) is True

    update.save_all([RenderingSettings(pixels=PixelSetRef(1), owner_id=USER, model="greyscale")])
    later = new_context()
    later.prepare_settings({1, 2})
    later.prepare_metadata({1, 2}, 96)
    assert later.get_metadata(1).id == ctx.get_metadata(1).id
    assert later.is_stale(1) is True
    assert later.is_stale(2) is False
    assert later.is_thumbnail_image_cached(1) is False
