from datetime import timedelta

from loyalty_rewards.db import utcnow
from loyalty_rewards.models.reward_history import RewardHistory
from loyalty_rewards.services.history_service import list_history
from loyalty_rewards.services.pagination import Page


def test_first_page_of_45_records():
    meta = Page(page=1, limit=20, total=45)

    assert meta.total_pages == 3
    assert meta.offset == 0
    assert meta.as_dict()["hasNextPage"] is True
    assert meta.as_dict()["hasPreviousPage"] is False


def test_last_page_of_45_records():
    meta = Page(page=3, limit=20, total=45).as_dict()

    assert meta["hasNextPage"] is False
    assert meta["hasPreviousPage"] is True
    assert meta["totalRecords"] == 45


def test_empty_result_has_no_pages():
    meta = Page(page=1, limit=20, total=0).as_dict()

    assert meta["totalPages"] == 0
    assert meta["hasNextPage"] is False


def test_history_pages_are_newest_first(session):
    base = utcnow()
    for i in range(45):
        session.add(
            RewardHistory(
                user_id="user-1",
                action_type="POINTS_EARNED",
                points_change=i,
                cashback_change=0,
                description=f"entry {i}",
                meta={},
                created_at=base - timedelta(minutes=45 - i),
            )
        )
    session.commit()

    first, first_meta = list_history(session, "user-1", page=1, limit=20)
    last, last_meta = list_history(session, "user-1", page=3, limit=20)

    assert [e.points_change for e in first[:3]] == [44, 43, 42]
    assert first_meta.as_dict()["hasNextPage"] is True
    assert len(last) == 5
    assert [e.points_change for e in last] == [4, 3, 2, 1, 0]
    assert last_meta.as_dict()["hasNextPage"] is False
