from sqlalchemy.exc import OperationalError

from aidogs.auth.token import create_access_token
from aidogs.database import SessionLocal
from aidogs.models.boost import BoostEntry
from aidogs.services import boost
from aidogs.services.leaderboard import SnapshotKind, materialize
from tests.conftest import tg_user


def _login(client, user_id, referral_code=None):
    body = {"user": tg_user(user_id)}
    if referral_code:
        body["referralCode"] = referral_code
    response = client.post("/api/get-user-data", json=body)
    assert response.status_code == 200
    return response.json()


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "AiDogs backend running"


def test_get_user_data_creates_then_returns(client):
    first = _login(client, 100)
    assert first["success"] is False
    data = first["userData"]
    assert data["user"]["id"] == 100
    assert data["pointsNo"] == 0
    assert len(data["referralCode"]) == 8
    assert [slot["claimTreshold"] for slot in data["referralRewardDeets"]] == ["5", "10", "15", "20", "25", "30", "35"]
    assert data["lastLogin"] is not None

    second = _login(client, 100)
    assert second["success"] is True
    assert second["userData"]["referralCode"] == data["referralCode"]


def test_referral_flow(client):
    code = _login(client, 1)["userData"]["referralCode"]

    invitee = _login(client, 2, code)["userData"]
    assert invitee["referredBy"] is True
    assert invitee["referrerCode"] == code

    _login(client, 2, code)  # revisit with the same link
    referrer = _login(client, 1)["userData"]
    assert referrer["referralPoints"] == 1
    assert referrer["referralContest"] == 1

    response = client.post("/api/get-user-referrals", json={"referralCode": code})
    assert response.status_code == 200
    assert [row["user"]["id"] for row in response.json()["userData"]] == [2]


def test_task_points_pass_through(client):
    code = _login(client, 1)["userData"]["referralCode"]
    _login(client, 2, code)

    response = client.post("/api/update-task-points", json={"user": tg_user(2), "pointsNo": 100})

    assert response.status_code == 200
    assert response.json()["userData"]["pointsNo"] == 100
    assert _login(client, 1)["userData"]["pointsNo"] == 5


def test_early_adopter(client):
    response = client.post("/api/update-early-adopter", json={"user": tg_user(3), "pointsNo": 1000})

    assert response.status_code == 200
    data = response.json()["userData"]
    assert data["earlyAdopterBonusClaimed"] is True
    assert data["pointsNo"] == 1000


def test_invalid_body_is_a_400(client):
    response = client.post("/api/update-task-points", json={"pointsNo": 10})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "user" in body["message"]

    negative = client.post("/api/update-task-points", json={"user": tg_user(1), "pointsNo": -1})
    assert negative.status_code == 400


def test_claim_for_unknown_user_is_a_404(client):
    response = client.post("/api/update-social-reward", json={"user": tg_user(404), "claimTreshold": "join"})

    assert response.status_code == 404
    assert response.json() == {"message": "User not found", "success": False}


def test_daily_reward_slots(client):
    _login(client, 5)

    first = client.post("/api/update-daily-reward", json={"user": tg_user(5), "claimTreshold": 5})
    assert first.status_code == 200
    slots = {slot["claimTreshold"]: slot["rewardClaimed"] for slot in first.json()["userData"]["referralRewardDeets"]}
    assert slots["5"] is True
    assert first.json()["userData"]["pointsToday"] == 1

    again = client.post("/api/update-daily-reward", json={"user": tg_user(5), "claimTreshold": "5"})
    assert again.status_code == 400
    assert again.json()["success"] is False

    rearmed = client.post("/api/update-next-login", json={"user": tg_user(5)})
    assert rearmed.status_code == 200
    assert not any(slot["rewardClaimed"] for slot in rearmed.json()["userData"]["referralRewardDeets"])


def test_task_catalog_requires_admin(client, admin_headers):
    task = {"claimTreshold": "join-channel", "btnText": "Join", "taskPoints": 500}

    assert client.post("/api/tasks/", json=task).status_code == 401
    player = {"Authorization": f"Bearer {create_access_token({'sub': 'p', 'role': 'player'})}"}
    assert client.post("/api/tasks/", json=task, headers=player).status_code == 403
    assert client.post("/api/tasks/", json=task, headers={"Authorization": "Bearer junk"}).status_code == 403

    created = client.post("/api/tasks/", json=task, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["claimTreshold"] == "join-channel"

    duplicate = client.post("/api/tasks/", json=task, headers=admin_headers)
    assert duplicate.status_code == 400

    listed = client.get("/api/tasks/")
    assert [row["claimTreshold"] for row in listed.json()] == ["join-channel"]


def test_task_catalog_reaches_users(client, admin_headers):
    created = client.post(
        "/api/tasks/",
        json={"claimTreshold": "follow-x", "btnText": "Follow", "taskPoints": 300},
        headers=admin_headers,
    ).json()

    social = _login(client, 9)["userData"]["socialRewardDeets"]
    assert social == [
        {
            "claimTreshold": "follow-x",
            "rewardClaimed": False,
            "btnText": "Follow",
            "taskText": None,
            "taskPoints": 300.0,
            "taskCategory": None,
            "taskStatus": None,
            "taskUrl": None,
        }
    ]

    claimed = client.post("/api/update-social-reward", json={"user": tg_user(9), "claimTreshold": "follow-x"})
    assert claimed.json()["userData"]["socialRewardDeets"][0]["rewardClaimed"] is True
    assert client.post("/api/update-social-reward", json={"user": tg_user(9), "claimTreshold": "follow-x"}).status_code == 400

    updated = client.put(f"/api/tasks/{created['id']}", json={"taskUrl": "https://x.com/aidogs"}, headers=admin_headers)
    assert updated.status_code == 200
    assert _login(client, 9)["userData"]["socialRewardDeets"][0]["taskUrl"] == "https://x.com/aidogs"

    assert client.delete(f"/api/tasks/{created['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/tasks/{created['id']}", headers=admin_headers).status_code == 404
    # Entries for deleted tasks stay with the user
    assert len(_login(client, 9)["userData"]["socialRewardDeets"]) == 1


def test_streak_endpoints(client):
    missing = client.post("/api/daily-reward-status", json={"user": tg_user(7)})
    assert missing.status_code == 404

    claimed = client.post("/api/daily-reward-claim", json={"user": tg_user(7)})
    assert claimed.status_code == 200
    assert claimed.json()["awarded"] == 250
    assert claimed.json()["totalPoints"] == 250

    again = client.post("/api/daily-reward-claim", json={"user": tg_user(7)})
    assert again.status_code == 400
    assert again.json()["message"] == "Points already claimed for today"

    status = client.post("/api/daily-reward-status", json={"user": tg_user(7)}).json()
    assert status["reward"]["userId"] == 7
    assert len(status["reward"]["dailyClaims"]) == 1


def test_leaderboards_read_snapshots(client):
    empty = client.post("/api/leaderboard-data", json={"user": tg_user(1)}).json()
    assert empty["leaderboardData"] == []
    assert empty["userRank"] == 0

    code = _login(client, 1)["userData"]["referralCode"]
    _login(client, 2, code)
    client.post("/api/update-task-points", json={"user": tg_user(1), "pointsNo": 50})

    with SessionLocal() as db:
        materialize(db, SnapshotKind.SCORE)
        materialize(db, SnapshotKind.REFERRAL)

    rows = client.post("/api/leaderboard-data", json={"user": tg_user(1)}).json()["leaderboardData"]
    assert rows[0]["rank"] == 1
    assert rows[0]["userId"] == 1
    assert rows[0]["totalScore"] == 50

    referral_rows = client.post("/api/referral-leaderboard-data", json={}).json()["leaderboardData"]
    assert referral_rows[0]["userId"] == 1
    assert referral_rows[0]["referralPoints"] == 1


def test_boost_endpoints(client):
    with SessionLocal() as db:
        db.add(BoostEntry(user_id=1, points_no=7000, boost_code="ALPHA01", boost_activated=True))
        db.commit()
    _login(client, 2)

    none_yet = client.post("/api/get-user-data/boost-data", json={"user": tg_user(2)}).json()
    assert none_yet["success"] is False
    assert none_yet["userData"]["boostActivated"] is False

    invalid = client.post("/api/activate-boost", json={"user": tg_user(2), "refBoostCode": "NOPE"}).json()
    assert invalid["message"] == "Boost key not valid"

    body = {"user": tg_user(2), "boostCode": "BRAVO02", "refBoostCode": "ALPHA01"}
    activated = client.post("/api/activate-boost", json=body).json()
    assert activated["message"] == "Points updated successfully"
    assert activated["userData"]["pointsNo"] == 7000
    assert activated["userRank"] == 2

    repeat = client.post("/api/activate-boost", json=body).json()
    assert repeat["message"] == "Boost already activated"

    data = client.post("/api/get-user-data/boost-data", json={"user": tg_user(2)}).json()
    assert data["userData"]["boostCode"] == "BRAVO02"
    assert data["userRank"] == 2

    participants = client.post("/api/get-boost-participants").json()
    assert participants["boostData"]["count"] == 2
    assert _login(client, 2)["userData"]["pointsNo"] == 7000


def test_huge_credit_is_rejected_and_balance_stays_finite(client):
    _login(client, 8)

    for _ in range(2):
        response = client.post("/api/update-task-points", json={"user": tg_user(8), "pointsNo": 1e308})
        assert response.status_code == 400
        assert response.json()["success"] is False

    assert _login(client, 8)["userData"]["pointsNo"] == 0


def _is_utc(value):
    return value.endswith(("Z", "+00:00"))


def test_timestamps_carry_a_utc_offset(client):
    _login(client, 11)

    data = client.post("/api/update-next-login", json={"user": tg_user(11)}).json()["userData"]
    assert _is_utc(data["lastLogin"])
    assert _is_utc(data["nextLogin"])

    reward = client.post("/api/daily-reward-claim", json={"user": tg_user(11)}).json()["reward"]
    assert _is_utc(reward["cycleStartDate"])
    assert _is_utc(reward["dailyClaims"][0]["date"])

    with SessionLocal() as db:
        db.add(BoostEntry(user_id=1, points_no=7000, boost_code="ALPHA01", boost_activated=True))
        db.commit()
    body = {"user": tg_user(11), "refBoostCode": "ALPHA01"}
    entry = client.post("/api/activate-boost", json=body).json()["userData"]
    assert _is_utc(entry["registrationTime"])


def test_storage_failure_is_a_generic_500(client, monkeypatch):
    def broken(db):
        raise OperationalError("SELECT count(id) FROM boost_leaderboard", {}, Exception("disk I/O error"))

    monkeypatch.setattr(boost, "count_participants", broken)

    response = client.post("/api/get-boost-participants")

    assert response.status_code == 500
    assert response.json() == {"message": "Internal Server Error", "success": False}
