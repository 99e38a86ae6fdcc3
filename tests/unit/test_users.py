from __future__ import annotations

from zendesk_canny.users import USER_BATCH_SIZE, UserCache, load_users


def test_claim_returns_true_only_once_per_id():
    cache = UserCache()

    assert cache.claim(10) is True
    assert cache.claim(10) is False
    assert 10 in cache
    assert cache.get(10) is None  # pending


def test_load_users_splits_into_batches_of_100(source):
    ids = list(range(1, 251))
    for uid in ids:
        source.add_user(uid)
    cache = UserCache()
    for uid in ids:
        cache.claim(uid)

    resolved = load_users(source, ids, cache)

    assert USER_BATCH_SIZE == 100
    assert [len(batch) for batch in source.user_batches] == [100, 100, 50]
    assert resolved == 250
    assert cache.get(250).email == "user250@example.com"
    assert cache.unresolved() == []


def test_ids_missing_from_response_stay_unresolved(source):
    source.add_user(1)
    cache = UserCache()
    cache.claim(1)
    cache.claim(2)

    resolved = load_users(source, [1, 2], cache)

    assert resolved == 1
    assert cache.get(1) is not None
    assert cache.get(2) is None
    assert cache.unresolved() == [2]


def test_load_users_with_no_ids_makes_no_request(source):
    assert load_users(source, [], UserCache()) == 0
    assert source.user_batches == []


def test_forget_releases_pending_claims_only(source):
    source.add_user(1)
    cache = UserCache()
    cache.claim(1)
    cache.claim(2)
    load_users(source, [1], cache)

    cache.forget([1, 2])

    assert cache.get(1) is not None  # resolved users are kept
    assert 2 not in cache
    assert cache.claim(2) is True
