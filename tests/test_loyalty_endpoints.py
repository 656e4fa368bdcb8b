import uuid

from loyalty_rewards.models.reward_history import RewardHistory
from loyalty_rewards.models.user_loyalty_status import UserLoyaltyStatus

from conftest import make_program, make_status


def test_list_active_programs(client, db):
    make_program(db, name="Everyday Rewards")
    make_program(db, name="Retired", is_active=False)

    body = client.get("/api/v1/loyalty/programs").json()

    assert body["success"] is True
    assert [p["name"] for p in body["data"]] == ["Everyday Rewards"]
    program = body["data"][0]
    assert program["tierType"] == "SPENDING"
    assert program["requirements"] == {"bronze": 0, "silver": 1000, "gold": 5000}
    assert program["spendingRange"] == {"min": 0, "max": None}


def test_get_program(client, db):
    program = make_program(db)

    assert client.get(f"/api/v1/loyalty/programs/{program.id}").json()["data"]["name"] == "Everyday Rewards"
    assert client.get(f"/api/v1/loyalty/programs/{uuid.uuid4()}").status_code == 404


def test_status_shows_progress_to_next_tier(client, db):
    make_status(db, make_program(db), tier="silver", spending=1200)

    response = client.get("/api/v1/loyalty/user-1/status")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["currentTier"]["name"] == "silver"
    assert data["currentTier"]["benefits"] == ["Free shipping", "3% cashback"]
    assert data["progress"]["nextTier"] == "gold"
    assert data["progress"]["nextTierRequirement"] == 5000
    assert data["progress"]["progressPercentage"] == 24.0


def test_status_at_top_tier(client, db):
    make_status(db, make_program(db), tier="gold", spending=8000)

    progress = client.get("/api/v1/loyalty/user-1/status").json()["data"]["progress"]

    assert progress["nextTier"] is None
    assert progress["progressPercentage"] == 100.0


def test_status_for_unenrolled_user(client):
    response = client.get("/api/v1/loyalty/ghost/status")

    assert response.status_code == 404
    assert response.json() == {
        "statusCode": 404,
        "message": "User not enrolled in any active loyalty program",
        "errorCode": "NOT_FOUND",
        "success": False,
    }


def test_upgrade_moves_to_qualifying_tier(client, db):
    make_status(db, make_program(db), tier="bronze", spending=200)

    response = client.put("/api/v1/loyalty/user-1/upgrade", json={"totalSpending": 6200})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["upgraded"] is True
    assert data["previousTier"] == "bronze"
    assert data["newTier"] == "gold"
    assert data["totalSpending"] == 6200

    db.expire_all()
    status = db.query(UserLoyaltyStatus).one()
    assert status.current_tier == "gold"
    assert status.tier_progress == 6200
    assert (status.tier_expiry_date - status.tier_achieved_date).days == 365

    history = db.query(RewardHistory).one()
    assert history.action_type == "TIER_UPGRADE"
    assert history.meta == {"previous_tier": "bronze", "new_tier": "gold", "spending_amount": 6200.0}


def test_upgrade_without_change(client, db):
    make_status(db, make_program(db), tier="silver", spending=1200)

    data = client.put("/api/v1/loyalty/user-1/upgrade", json={"totalSpending": 1500}).json()["data"]

    assert data["upgraded"] is False
    assert data["currentTier"] == "silver"
    assert data["message"] == "No tier upgrade available"
    db.expire_all()
    assert db.query(RewardHistory).count() == 0


def test_upgrade_requires_spending(client, db):
    make_status(db, make_program(db))

    response = client.put("/api/v1/loyalty/user-1/upgrade", json={})

    assert response.status_code == 400
    assert response.json()["errorCode"] == "VALIDATION_ERROR"


def test_upgrade_unenrolled_user(client):
    response = client.put("/api/v1/loyalty/ghost/upgrade", json={"totalSpending": 100})

    assert response.status_code == 404


def test_enroll_places_user_by_spending(client, db):
    program = make_program(db)

    response = client.post(
        "/api/v1/loyalty/enroll",
        json={"userId": "new-user", "loyaltyProgramId": str(program.id), "totalSpending": 1500},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["currentTier"]["name"] == "silver"
    assert data["progress"]["nextTier"] == "gold"

    duplicate = client.post(
        "/api/v1/loyalty/enroll",
        json={"userId": "new-user", "loyaltyProgramId": str(program.id)},
    )
    assert duplicate.status_code == 409


def test_enroll_defaults_to_entry_tier(client, db):
    program = make_program(db)

    response = client.post(
        "/api/v1/loyalty/enroll",
        json={"loyaltyProgramId": str(program.id)},
        headers={"X-User-Id": "header-user"},
    )

    assert response.status_code == 201
    assert response.json()["data"]["currentTier"]["name"] == "bronze"
    assert response.json()["data"]["userId"] == "header-user"


def test_enroll_unknown_program(client):
    response = client.post(
        "/api/v1/loyalty/enroll",
        json={"userId": "u", "loyaltyProgramId": str(uuid.uuid4())},
    )

    assert response.status_code == 404


def test_health(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Loyalty rewards service is running"}
