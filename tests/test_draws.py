from __future__ import annotations

import random
import threading

import pytest

from giftexchange.errors import (
    AlreadyMatchedError,
    InsufficientParticipantsError,
    NoCandidatesError,
    NotRegisteredError,
)
from giftexchange.extensions import db
from giftexchange.models import DrawState, GiftStatus, Participant
from giftexchange.services.draws import draw_all, draw_for
from giftexchange.services.participants import confirm_gifted, get_participant, register_participant

from helpers import assert_valid_assignments, assignments, force_match


@pytest.fixture
def register(make_user):
    def _register(*names: str) -> list[int]:
        ids = []
        for name in names:
            uid = make_user(name)
            register_participant(uid, f"{name}'s wishlist")
            ids.append(uid)
        return ids

    return _register


def statuses() -> dict[int, GiftStatus]:
    db.session.expire_all()
    return {p.participant_id: p.gift_status for p in Participant.query.all()}


def test_draw_for_assigns_another_participant(register):
    a, b, c = register("alice", "bob", "carol")

    p = draw_for(a)

    assert p.recipient_id in {b, c}
    assert p.gift_status is GiftStatus.MATCHED
    assert p.matched_at is not None


def test_draw_for_with_two_participants_then_no_candidates(register):
    a, b = register("alice", "bob")

    assert draw_for(a).recipient_id == b

    with pytest.raises(NoCandidatesError):
        draw_for(b)

    assert statuses() == {a: GiftStatus.MATCHED, b: GiftStatus.WAITING}
    assert get_participant(b).recipient_id is None


def test_draw_for_twice_raises_already_matched(register):
    a, b, c = register("alice", "bob", "carol")
    first = draw_for(a).recipient_id

    with pytest.raises(AlreadyMatchedError):
        draw_for(a)

    db.session.expire_all()
    assert get_participant(a).recipient_id == first


def test_draw_for_unregistered(register, make_user):
    register("alice", "bob")
    with pytest.raises(NotRegisteredError):
        draw_for(make_user("mallory"))


def test_draw_for_alone(register):
    (a,) = register("alice")
    with pytest.raises(NoCandidatesError):
        draw_for(a)


def test_draw_for_picks_uniformly_from_pool(register):
    a, b, c, d = register("alice", "bob", "carol", "dave")
    rng = random.Random(1)

    picked = draw_for(a, rng=rng).recipient_id

    assert picked == random.Random(1).choice(sorted([b, c, d]))


def test_incremental_draws_keep_invariants(register):
    ids = register(*[f"user{i}" for i in range(10)])
    rng = random.Random(42)
    for uid in ids:
        try:
            draw_for(uid, rng=rng)
        except NoCandidatesError:
            pass

    assert_valid_assignments(assignments())


def test_draw_all_matches_three_participants_in_one_cycle(register):
    a, b, c = register("alice", "bob", "carol")

    matched = draw_all(random.Random(9))

    assert sorted(p.participant_id for p in matched) == sorted([a, b, c])
    mapping = assignments()
    assert set(mapping) == {a, b, c}
    assert_valid_assignments(mapping)
    for start in (a, b, c):
        assert mapping[mapping[mapping[start]]] == start
    assert set(statuses().values()) == {GiftStatus.MATCHED}


def test_draw_all_records_bulk_draw_time(register):
    register("alice", "bob")
    draw_all()
    assert db.session.get(DrawState, DrawState.SINGLETON_ID).last_bulk_draw_at is not None


@pytest.mark.parametrize("count", [2, 5, 12])
def test_draw_all_is_a_derangement(register, count):
    ids = register(*[f"user{i}" for i in range(count)])

    draw_all(random.Random(count))

    mapping = assignments()
    assert set(mapping) == set(ids)
    assert set(mapping.values()) == set(ids)
    assert_valid_assignments(mapping)


def test_draw_all_with_one_waiting_participant(register):
    (a,) = register("alice")

    with pytest.raises(InsufficientParticipantsError):
        draw_all()

    assert statuses() == {a: GiftStatus.WAITING}


def test_draw_all_with_nobody_waiting(register):
    a, b = register("alice", "bob")
    draw_all()
    with pytest.raises(InsufficientParticipantsError):
        draw_all()


def test_draw_all_leaves_matched_and_gifted_untouched(register):
    a, b, c, d, e = register("alice", "bob", "carol", "dave", "erin")
    force_match(a, b)
    force_match(b, a)
    confirm_gifted(a)

    draw_all(random.Random(3))

    mapping = assignments()
    assert mapping[a] == b
    assert mapping[b] == a
    assert {mapping[c], mapping[d], mapping[e]} == {c, d, e}
    assert_valid_assignments(mapping)
    assert statuses()[a] is GiftStatus.GIFTED


def test_draw_all_completes_after_incremental_draws(register):
    ids = register(*[f"user{i}" for i in range(6)])
    rng = random.Random(8)
    draw_for(ids[0], rng=rng)
    draw_for(ids[1], rng=rng)

    draw_all(rng)

    mapping = assignments()
    assert set(mapping) == set(ids)
    assert set(mapping.values()) == set(ids)
    assert_valid_assignments(mapping)


def test_no_self_match_after_draw_for_then_draw_all_with_two(register):
    a, b, c = register("alice", "bob", "carol")
    draw_for(a, rng=random.Random(0))

    draw_all()

    mapping = assignments()
    assert set(mapping) == {a, b, c}
    assert_valid_assignments(mapping)


def _draw_concurrently(app, participant_ids):
    barrier = threading.Barrier(len(participant_ids))
    outcomes = {}

    def worker(pid):
        with app.app_context():
            barrier.wait()
            try:
                outcomes[pid] = draw_for(pid).recipient_id
            except NoCandidatesError as e:
                outcomes[pid] = e
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(pid,)) for pid in participant_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


def test_concurrent_draws_for_the_last_shared_candidate(app, register):
    p, q, a, b, c = register("pat", "quinn", "alice", "bob", "carol")
    force_match(p, a)
    force_match(q, b)
    # alice and bob can each only draw carol now

    outcomes = _draw_concurrently(app, [a, b])

    winners = [pid for pid, result in outcomes.items() if result == c]
    losers = [pid for pid, result in outcomes.items() if isinstance(result, NoCandidatesError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert_valid_assignments(assignments())


def test_many_concurrent_draws_never_share_a_recipient(app, register):
    ids = register(*[f"user{i}" for i in range(8)])

    outcomes = _draw_concurrently(app, ids)

    assert len(outcomes) == len(ids)
    mapping = assignments()
    assert_valid_assignments(mapping)
    for pid, result in outcomes.items():
        if isinstance(result, NoCandidatesError):
            assert pid not in mapping
        else:
            assert mapping[pid] == result


def test_draw_all_racing_incremental_draws(app, register):
    expected = (NoCandidatesError, AlreadyMatchedError, InsufficientParticipantsError)
    unexpected = []

    for round_no in range(5):
        ids = register(*[f"r{round_no}-user{i}" for i in range(10)])
        barrier = threading.Barrier(len(ids) + 1)

        def run(work):
            with app.app_context():
                barrier.wait()
                try:
                    work()
                except expected:
                    pass
                except Exception as e:
                    unexpected.append(e)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=run, args=(lambda pid=pid: draw_for(pid),)) for pid in ids]
        threads.append(threading.Thread(target=run, args=(draw_all,)))
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert unexpected == []
        assert_valid_assignments(assignments())
