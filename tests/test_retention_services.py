from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.models.library import FileItem
from app.schemas.library import FileItemCreate
from app.services.retention import RetentionSweeper

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def make_item(docs, db_session, actor, section, category):
    def _make(trashed_days_ago=None):
        item = docs.create(
            db_session,
            FileItemCreate(
                section_id=section.id,
                category_id=category.id,
                translations=[{"lang": "ru", "title": "Документ"}],
            ),
            actor,
        )
        if trashed_days_ago is not None:
            item.trash(NOW - timedelta(days=trashed_days_ago))
            db_session.commit()
        return item.id

    return _make


class TestExpiredIds:
    def test_ttl_boundary(self, docs, db_session, make_item):
        sweeper = RetentionSweeper(docs, ttl_days=30)
        active = make_item()
        fresh = make_item(trashed_days_ago=29)
        exactly = make_item(trashed_days_ago=30)
        old = make_item(trashed_days_ago=45)

        expired = sweeper.expired_ids(db_session, NOW)

        assert expired == [old, exactly]
        assert active not in expired
        assert fresh not in expired


class TestSweep:
    def test_purges_expired_items_and_blobs(
        self, docs, db_session, actor, make_item, make_file, storage
    ):
        item_id = make_item()
        item = db_session.get(FileItem, item_id)
        asset = docs.upload_asset(
            db_session, item_id, item.current_version_id, "ru", make_file(), actor
        )
        location = asset.storage_location
        item.trash(NOW - timedelta(days=31))
        db_session.commit()
        kept = make_item(trashed_days_ago=1)

        result = RetentionSweeper(docs, ttl_days=30).sweep(db_session, NOW)

        assert result.purged == [item_id]
        assert result.failed == []
        assert db_session.get(FileItem, item_id) is None
        assert db_session.get(FileItem, kept) is not None
        assert not storage.exists(location)

    def test_second_run_is_a_no_op(self, docs, db_session, make_item):
        make_item(trashed_days_ago=40)
        sweeper = RetentionSweeper(docs, ttl_days=30)

        first = sweeper.sweep(db_session, NOW)
        second = sweeper.sweep(db_session, NOW)

        assert len(first.purged) == 1
        assert second.purged == []
        assert second.failed == []

    def test_failure_does_not_block_other_items(self, docs, db_session, make_item):
        failing = make_item(trashed_days_ago=50)
        healthy = make_item(trashed_days_ago=40)
        original = docs.purge_item

        def flaky(db, file_item_id, actor=None):
            if file_item_id == failing:
                raise RuntimeError("disk unavailable")
            return original(db, file_item_id, actor)

        with patch.object(docs, "purge_item", side_effect=flaky):
            result = RetentionSweeper(docs, ttl_days=30).sweep(db_session, NOW)

        assert result.failed == [failing]
        assert result.purged == [healthy]
        assert db_session.get(FileItem, failing) is not None
        assert db_session.get(FileItem, healthy) is None
