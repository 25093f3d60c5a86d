import pytest

from apps.rankings.errors import (
    DuplicateRankingError,
    InvalidPreferenceError,
    NoActiveSessionError,
    PersistenceError,
    StaleSessionError,
)
from apps.rankings.schemas.comparison import SubjectMovie
from apps.rankings.services.comparison_flow import STATUS_ADDED, STATUS_COMPARE, max_comparisons, narrow
from apps.rankings.services.insertion import InsertionController
from apps.rankings.services.ranked_list import RankedListStore

from factories import FakeCatalog, ranking_of, seed_ranking, seed_user, seed_watchlist, watchlist_of


def _movie(movie_id, **extra):
    return SubjectMovie(movie_id=movie_id, title=f"Movie {movie_id}", **extra)


def _place_at(controller, user_id, movie_id, target):
    """Answer every comparison so ``movie_id`` lands at ``target``; returns (step, answers)"""
    step = controller.add_movie(user_id, _movie(movie_id))
    answers = 0
    while step.status == STATUS_COMPARE:
        comparator = step.compare_with
        preferred = movie_id if comparator.rank >= target else comparator.movie_id
        step = controller.compare(user_id, preferred, step.session_token)
        answers += 1
    return step, answers


def test_narrow_halves_the_window():
    assert narrow(0, 4, subject_preferred=True) == (0, 1)
    assert narrow(0, 4, subject_preferred=False) == (3, 4)
    assert narrow(0, 0, subject_preferred=True) == (0, -1)
    assert narrow(0, 0, subject_preferred=False) == (1, 0)


def test_max_comparisons():
    assert [max_comparisons(n) for n in (0, 1, 2, 3, 4, 7, 8)] == [0, 1, 2, 2, 3, 3, 4]


def test_empty_list_places_directly(db_session, insertion, sessions):
    seed_user(db_session, 1)

    step = insertion.add_movie(1, _movie(10))

    assert step.status == STATUS_ADDED
    assert step.rank == 1
    assert sessions.get_session(1) is None
    assert ranking_of(1) == [(10, 1)]


def test_single_comparison_places_new_movie_first(db_session, insertion, sessions):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1])

    step = insertion.add_movie(1, _movie(2))
    assert step.status == STATUS_COMPARE
    assert step.compare_with.movie_id == 1

    step = insertion.compare(1, 2)

    assert step.status == STATUS_ADDED
    assert step.rank == 1
    assert ranking_of(1) == [(2, 1), (1, 2)]
    assert sessions.get_session(1) is None


def test_binary_insertion_into_five(db_session, insertion):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1, 2, 3, 4, 5])

    step = insertion.add_movie(1, _movie(6))
    assert step.compare_with.movie_id == 3
    step = insertion.compare(1, 6)
    assert step.compare_with.movie_id == 1
    step = insertion.compare(1, 1)
    assert step.compare_with.movie_id == 2
    step = insertion.compare(1, 6)

    assert step.status == STATUS_ADDED
    assert step.rank == 2
    assert ranking_of(1) == [(1, 1), (6, 2), (2, 3), (3, 4), (4, 5), (5, 6)]


@pytest.mark.parametrize("size", range(1, 9))
def test_every_position_reachable_within_log_bound(db_session, insertion, size):
    existing = [100 + i for i in range(size)]
    for target in range(1, size + 2):
        user_id = target
        seed_user(db_session, user_id)
        seed_ranking(db_session, user_id, existing)

        step, answers = _place_at(insertion, user_id, 999, target)

        assert step.rank == target
        assert answers <= max_comparisons(size)
        ranks = [rank for _, rank in ranking_of(user_id)]
        assert ranks == list(range(1, size + 2))


def test_duplicate_is_rejected_and_clears_watchlist(db_session, insertion, sessions):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [10, 20])
    seed_watchlist(db_session, 1, 20)

    with pytest.raises(DuplicateRankingError) as exc:
        insertion.add_movie(1, _movie(20))

    assert exc.value.status_code == 400
    assert exc.value.message == "Movie already ranked"
    assert sessions.get_session(1) is None
    assert watchlist_of(1) == set()
    assert ranking_of(1) == [(10, 1), (20, 2)]


def test_ranking_removes_movie_from_watchlist(db_session, insertion):
    seed_user(db_session, 1)
    seed_watchlist(db_session, 1, 10)
    seed_watchlist(db_session, 1, 11)

    insertion.add_movie(1, _movie(10))

    assert watchlist_of(1) == {11}


def test_compare_without_session(db_session, insertion):
    seed_user(db_session, 1)

    with pytest.raises(NoActiveSessionError) as exc:
        insertion.compare(1, 10)
    assert exc.value.message == "No active comparison session"


def test_compare_rejects_unrelated_movie(db_session, insertion, sessions):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1, 2, 3])
    insertion.add_movie(1, _movie(4))

    with pytest.raises(InvalidPreferenceError):
        insertion.compare(1, 77)

    session = sessions.get_session(1)
    assert (session.low, session.high) == (0, 2)


def test_stale_token_is_rejected(db_session, insertion, sessions):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1, 2, 3])
    first = insertion.add_movie(1, _movie(4))

    second = insertion.compare(1, 4, first.session_token)
    assert second.status == STATUS_COMPARE
    assert second.session_token != first.session_token

    with pytest.raises(StaleSessionError) as exc:
        insertion.compare(1, 4, first.session_token)
    assert exc.value.status_code == 409
    assert sessions.get_session(1) is not None


def test_list_change_during_session_ends_it(db_session, insertion, sessions):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1, 2])
    insertion.add_movie(1, _movie(3))

    RankedListStore(db_session).remove_movie(1, 1)

    with pytest.raises(StaleSessionError):
        insertion.compare(1, 3)
    assert sessions.get_session(1) is None


def test_new_add_replaces_pending_session(db_session, insertion, sessions):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1, 2, 3])
    insertion.add_movie(1, _movie(4))

    insertion.add_movie(1, _movie(5))

    assert sessions.get_session(1).subject.movie_id == 5
    with pytest.raises(InvalidPreferenceError):
        insertion.compare(1, 4)


def test_failed_finalize_keeps_session_for_retry(db_session, insertion, sessions, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError

    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1])
    insertion.add_movie(1, _movie(2))

    def boom(*args, **kwargs):
        raise SQLAlchemyError("connection reset")

    with monkeypatch.context() as patched:
        patched.setattr("apps.rankings.services.ranked_list.shift_for_insert", boom)
        with pytest.raises(PersistenceError):
            insertion.compare(1, 2)

    assert sessions.get_session(1) is not None
    assert ranking_of(1) == [(1, 1)]

    step = insertion.compare(1, 2)
    assert step.rank == 1
    assert ranking_of(1) == [(2, 1), (1, 2)]


def test_missing_metadata_is_backfilled(db_session, sessions, fanout):
    seed_user(db_session, 1)
    catalog = FakeCatalog({10: {"poster_path": "/p10.jpg", "overview": "A heist."}})
    controller = InsertionController(db_session, catalog=catalog, sessions=sessions, fanout=fanout)

    step = controller.add_movie(1, _movie(10))

    assert step.entry.poster_path == "/p10.jpg"
    assert step.entry.overview == "A heist."
    assert catalog.calls == [10]


def test_complete_metadata_skips_catalog(db_session, sessions, fanout):
    seed_user(db_session, 1)
    catalog = FakeCatalog()
    controller = InsertionController(db_session, catalog=catalog, sessions=sessions, fanout=fanout)

    controller.add_movie(1, _movie(10, poster_path="/own.jpg", overview="Own overview"))

    assert catalog.calls == []


def test_catalog_failure_does_not_block_ranking(db_session, sessions, fanout):
    seed_user(db_session, 1)
    controller = InsertionController(db_session, catalog=FakeCatalog(fail=True), sessions=sessions, fanout=fanout)

    step = controller.add_movie(1, _movie(10, poster_path="/own.jpg"))

    assert step.rank == 1
    assert step.entry.poster_path == "/own.jpg"
    assert step.entry.overview is None
