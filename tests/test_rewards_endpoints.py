from datetime import timedelta

import pytest

from loyalty_rewards.db import utcnow
from loyalty_rewards.models.reward_history import RewardHistory
from loyalty_rewards.models.reward_points import RewardPoints

from conftest import days_ago, make_lot, make_program, make_status


def test_rewards_summary(client, db):
    program = make_program(db)
    make_status(db, program, tier="silver", spending=1200)
    make_lot(db, available=100, created_at=days_ago(340), expiry_date=utcnow() + timedelta(days=10))
    make_lot(db, available=200, created_at=days_ago(1))

    response = client.get("/api/v1/rewards/user-1")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["statusCode"] == 200
    points = body["data"]["points"]
    assert points == {
        "totalEarned": 300,
        "available": 300,
        "totalRedeemed": 0,
        "expired": 0,
        "expiringSoon": 1,
    }
    assert body["data"]["loyaltyStatus"]["currentTier"] == "silver"
    assert body["data"]["loyaltyStatus"]["programName"] == "Everyday Rewards"


def test_rewards_summary_for_unknown_user_is_empty(client):
    body = client.get("/api/v1/rewards/nobody").json()

    assert body["data"]["points"]["available"] == 0
    assert body["data"]["loyaltyStatus"] is None


def test_redeem_points(client, db):
    make_lot(db, available=100, created_at=days_ago(10))
    make_lot(db, available=200, created_at=days_ago(5))

    response = client.post(
        "/api/v1/rewards/redeem",
        json={
            "userId": "user-1",
            "pointsToRedeem": 250,
            "redemptionType": "GIFT_CARD",
            "redemptionDetails": {"brand": "acme"},
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "success"
    assert data["pointsRedeemed"] == 250
    assert data["cashValue"] == 2.5
    assert data["redemptionType"] == "GIFT_CARD"

    db.expire_all()
    lots = db.query(RewardPoints).order_by(RewardPoints.created_at.asc()).all()
    assert [l.points_available for l in lots] == [0, 50]
    assert [l.points_redeemed for l in lots] == [100, 150]


def test_redeem_uses_authenticated_user_when_body_has_none(client, db):
    make_lot(db, user_id="header-user", available=100)

    response = client.post(
        "/api/v1/rewards/redeem",
        json={"pointsToRedeem": 100, "redemptionType": "CASH"},
        headers={"X-User-Id": "header-user"},
    )

    assert response.status_code == 201
    assert response.json()["data"]["cashValue"] == 1.0


def test_redeem_without_any_user_is_rejected(client):
    response = client.post("/api/v1/rewards/redeem", json={"pointsToRedeem": 100, "redemptionType": "CASH"})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["errorCode"] == "AUTHENTICATION_REQUIRED"


def test_redeem_missing_fields(client):
    response = client.post("/api/v1/rewards/redeem", json={"userId": "user-1", "pointsToRedeem": 100})

    assert response.status_code == 400
    body = response.json()
    assert body["errorCode"] == "VALIDATION_ERROR"
    assert body["statusCode"] == 400


def test_redeem_insufficient_points_rolls_back(client, db):
    make_lot(db, available=100)

    response = client.post(
        "/api/v1/rewards/redeem",
        json={"userId": "user-1", "pointsToRedeem": 101, "redemptionType": "CASH"},
    )

    assert response.status_code == 400
    assert response.json()["errorCode"] == "INSUFFICIENT_POINTS"

    db.expire_all()
    lot = db.query(RewardPoints).one()
    assert lot.points_available == 100
    assert lot.points_redeemed == 0
    assert db.query(RewardHistory).count() == 0


def test_earn_points(client, db):
    response = client.post(
        "/api/v1/rewards/earn",
        json={"userId": "user-1", "points": 500, "description": "Signup bonus"},
    )

    assert response.status_code == 201
    assert response.json()["data"]["pointsEarned"] == 500

    db.expire_all()
    assert db.query(RewardPoints).one().points_available == 500


@pytest.mark.parametrize("expiry_days", [0, -5])
def test_earn_rejects_non_positive_expiry(client, db, expiry_days):
    response = client.post(
        "/api/v1/rewards/earn",
        json={"userId": "user-1", "points": 500, "expiryDays": expiry_days},
    )

    assert response.status_code == 400
    assert response.json()["errorCode"] == "VALIDATION_ERROR"
    db.expire_all()
    assert db.query(RewardPoints).count() == 0


def test_earn_honours_explicit_expiry(client, db):
    response = client.post(
        "/api/v1/rewards/earn",
        json={"userId": "user-1", "points": 500, "expiryDays": 10},
    )

    assert response.status_code == 201
    db.expire_all()
    lot = db.query(RewardPoints).one()
    assert (lot.expiry_date - lot.created_at).days == 10


def test_history_is_paginated_and_filtered(client, db):
    base = utcnow()
    for i in range(25):
        db.add(
            RewardHistory(
                user_id="user-1",
                action_type="POINTS_EARNED" if i % 5 else "TIER_UPGRADE",
                points_change=i,
                cashback_change=0,
                description=f"entry {i}",
                meta={},
                created_at=base - timedelta(minutes=25 - i),
            )
        )
    db.commit()

    page_two = client.get("/api/v1/rewards/user-1/history", params={"page": 2, "limit": 10}).json()["data"]
    assert len(page_two["transactions"]) == 10
    assert page_two["transactions"][0]["pointsChange"] == 14
    assert page_two["pagination"] == {
        "currentPage": 2,
        "totalPages": 3,
        "totalRecords": 25,
        "hasNextPage": True,
        "hasPreviousPage": True,
        "limit": 10,
    }

    upgrades = client.get(
        "/api/v1/rewards/user-1/history",
        params={"action_type": "TIER_UPGRADE"},
    ).json()["data"]
    assert upgrades["pagination"]["totalRecords"] == 5
    assert all(t["actionType"] == "TIER_UPGRADE" for t in upgrades["transactions"])


def test_history_rejects_bad_paging(client):
    response = client.get("/api/v1/rewards/user-1/history", params={"page": 0})

    assert response.status_code == 400
    assert response.json()["errorCode"] == "VALIDATION_ERROR"
