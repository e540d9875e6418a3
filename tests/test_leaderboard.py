import json
import random

from aidogs.models.leaderboard import LeaderboardEntry, ReferralLeaderboardEntry
from aidogs.models.user import User
from aidogs.services import leaderboard
from aidogs.services.leaderboard import (
    ReferenceAccountRotation,
    SnapshotCache,
    SnapshotKind,
    load_roster,
    materialize,
    read_snapshot,
    reset_points_today,
    top_up_reference_accounts,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _seed(db, count, **overrides):
    for i in range(1, count + 1):
        values = dict(
            external_id=i,
            username=f"dog{i}",
            referral_code=f"code{i:04d}",
            points_no=float(i * 10),
            referral_points=i % 7 + 1,
            referral_contest=i % 13,
        )
        values.update(overrides)
        db.add(User(**values))
    db.commit()


def test_score_snapshot_top_100_descending(db):
    _seed(db, 105)

    rows = materialize(db, SnapshotKind.SCORE, cache=SnapshotCache(300))

    stored = read_snapshot(db, SnapshotKind.SCORE)
    assert len(rows) == len(stored) == 100
    scores = [row.total_score for row in stored]
    assert scores == sorted(scores, reverse=True)
    assert [row.position for row in stored] == list(range(1, 101))
    top = db.query(User).filter(User.external_id == stored[0].external_id).one()
    assert stored[0].total_score == top.points_no * top.referral_points


def test_referral_snapshot_ranks_by_contest(db):
    _seed(db, 30)

    materialize(db, SnapshotKind.REFERRAL, cache=SnapshotCache(300))

    stored = read_snapshot(db, SnapshotKind.REFERRAL)
    contest = [row.referral_points for row in stored]
    assert contest == sorted(contest, reverse=True)
    assert stored[0].referral_points == 12


def test_snapshot_is_fully_replaced(db):
    _seed(db, 5)
    materialize(db, SnapshotKind.SCORE, cache=SnapshotCache(300))

    db.query(User).filter(User.external_id <= 3).delete()
    db.commit()
    materialize(db, SnapshotKind.SCORE, cache=SnapshotCache(300))

    assert sorted(row.external_id for row in read_snapshot(db, SnapshotKind.SCORE)) == [4, 5]
    assert db.query(LeaderboardEntry).count() == 2


def test_cache_serves_previous_rows_within_ttl(db):
    clock = FakeClock()
    cache = SnapshotCache(300, clock=clock)
    _seed(db, 3)

    first = materialize(db, SnapshotKind.SCORE, cache=cache)
    db.query(User).filter(User.external_id == 1).update({User.points_no: 10_000})
    db.commit()

    clock.now += 299
    assert materialize(db, SnapshotKind.SCORE, cache=cache) is first

    clock.now += 1
    fresh = materialize(db, SnapshotKind.SCORE, cache=cache)
    assert fresh is not first
    assert fresh[0]["external_id"] == 1


def test_cache_is_kept_per_kind():
    cache = SnapshotCache(300, clock=FakeClock())
    cache.put(SnapshotKind.SCORE, [{"position": 1}])

    assert cache.get(SnapshotKind.REFERRAL) is None
    assert cache.get(SnapshotKind.SCORE) == [{"position": 1}]


def test_reset_points_today(db):
    _seed(db, 4, points_today=1)

    assert reset_points_today(db) == 4
    assert {value for (value,) in db.query(User.points_today)} == {0}


def test_rotation_walks_roster_round_robin():
    rotation = ReferenceAccountRotation(list(range(1, 46)), batch_size=20)

    assert rotation.next_batch() == list(range(1, 21))
    assert rotation.next_batch() == list(range(21, 41))
    assert rotation.next_batch() == list(range(41, 46))
    assert rotation.next_batch() == list(range(1, 21))


def test_empty_rotation():
    assert ReferenceAccountRotation([], batch_size=20).next_batch() == []


def test_load_roster_accepts_ids_and_objects(tmp_path):
    path = tmp_path / "ref_accounts.json"
    path.write_text(json.dumps([11, {"userId": 12}, {"id": "13"}]), encoding="utf-8")

    assert load_roster(str(path)) == [11, 12, 13]


def test_top_up_skips_visible_accounts(db):
    _seed(db, 3, points_no=0.0, referral_points=0, referral_contest=0)
    db.add(ReferralLeaderboardEntry(position=1, user_id=1, external_id=1, points_no=0, referral_points=0))
    db.commit()

    bumped = top_up_reference_accounts(db, [1, 2, 3, 404], rng=random.Random(7), visible_top=80)

    assert bumped == [2, 3]
    users = {user.external_id: user for user in db.query(User)}
    assert users[1].points_no == 0
    for user_id in (2, 3):
        user = users[user_id]
        assert 0 <= user.points_no <= 1000
        assert 496 <= user.referral_points <= 935
        assert 496 <= user.referral_contest <= 935


def test_module_cache_is_shared_by_default(db):
    _seed(db, 2)

    first = materialize(db, SnapshotKind.REFERRAL)

    assert leaderboard.snapshot_cache.get(SnapshotKind.REFERRAL) is first
