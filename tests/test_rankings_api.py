from factories import ranking_of, seed_friends, seed_ranking, seed_user

USER = {"X-User-Id": "1"}


def _add(client, movie_id, title=None, headers=USER):
    return client.post(
        "/api/movies/add",
        json={"movieId": movie_id, "title": title or f"Movie {movie_id}"},
        headers=headers,
    )


def test_requests_without_identity_are_rejected(client, db_session):
    assert client.get("/api/movies/ranked").status_code == 401
    assert client.get("/api/movies/ranked", headers={"X-User-Id": "abc"}).status_code == 401
    assert client.get("/api/movies/ranked", headers={"X-User-Id": "0"}).status_code == 401


def test_add_to_empty_list(client, db_session, sessions):
    seed_user(db_session, 1)

    r = _add(client, 10, "Heat")

    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "added"
    assert data["rank"] == 1
    assert data["entry"]["movieId"] == 10
    assert data["entry"]["title"] == "Heat"
    assert data["compareWith"] is None
    assert sessions.get_session(1) is None


def test_add_then_compare(client, db_session):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1])

    r = _add(client, 2)
    data = r.json()
    assert data["status"] == "compare"
    assert data["compareWith"]["movieId"] == 1
    assert data["sessionToken"]

    r = client.post(
        "/api/movies/compare",
        json={"preferredMovieId": 2, "sessionToken": data["sessionToken"]},
        headers=USER,
    )
    assert r.status_code == 200
    assert r.json()["status"] == "added"
    assert r.json()["rank"] == 1

    r = client.get("/api/movies/ranked", headers=USER)
    body = r.json()
    assert body["count"] == 2
    assert [(item["movieId"], item["rank"]) for item in body["items"]] == [(2, 1), (1, 2)]


def test_compare_without_session(client, db_session):
    seed_user(db_session, 1)

    r = client.post("/api/movies/compare", json={"preferredMovieId": 5}, headers=USER)

    assert r.status_code == 400
    assert r.json()["detail"] == "No active comparison session"


def test_duplicate_add(client, db_session):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [10])

    r = _add(client, 10)

    assert r.status_code == 400
    assert r.json()["detail"] == "Movie already ranked"


def test_add_validates_body(client, db_session):
    r = client.post("/api/movies/add", json={"movieId": 10, "title": ""}, headers=USER)
    assert r.status_code == 422


def test_stale_session_token(client, db_session):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1, 2, 3])
    first = _add(client, 4).json()

    client.post(
        "/api/movies/compare",
        json={"preferredMovieId": 4, "sessionToken": first["sessionToken"]},
        headers=USER,
    )
    r = client.post(
        "/api/movies/compare",
        json={"preferredMovieId": 4, "sessionToken": first["sessionToken"]},
        headers=USER,
    )

    assert r.status_code == 409


def test_cancel_comparison(client, db_session, sessions):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1])
    _add(client, 2)

    r = client.delete("/api/movies/compare", headers=USER)

    assert r.status_code == 200
    assert sessions.get_session(1) is None
    assert ranking_of(1) == [(1, 1)]


def test_rerank_flow(client, db_session):
    seed_user(db_session, 1)
    seed_ranking(db_session, 1, [1, 2, 3, 4])

    r = client.post("/api/movies/rerank/start", json={"movieId": 4}, headers=USER)
    assert r.json()["compareWith"]["movieId"] == 2

    r = client.post("/api/movies/rerank/compare", json={"preferredMovieId": 4}, headers=USER)
    assert r.json()["compareWith"]["movieId"] == 1

    # /compare serves rerank sessions too
    r = client.post("/api/movies/compare", json={"preferredMovieId": 4}, headers=USER)
    assert r.status_code == 200
    assert r.json()["status"] == "added"
    assert r.json()["rank"] == 1
    assert ranking_of(1) == [(4, 1), (1, 2), (2, 3), (3, 4)]


def test_rerank_unknown_movie(client, db_session):
    seed_user(db_session, 1)

    r = client.post("/api/movies/rerank/start", json={"movieId": 99}, headers=USER)

    assert r.status_code == 404
    assert r.json()["detail"] == "Ranked movie not found"


def test_delete_ranked_movie(client, db_session, hub):
    seed_user(db_session, 1)
    seed_user(db_session, 2)
    seed_friends(db_session, 1, 2)
    seed_ranking(db_session, 1, [1, 2, 3])

    r = client.delete("/api/movies/ranked/2", headers=USER)

    assert r.status_code == 200
    assert r.json()["rank"] == 2
    assert ranking_of(1) == [(1, 1), (3, 2)]
    assert (2, "ranking_changed", {"userId": 1}) in hub.events

    r = client.delete("/api/movies/ranked/2", headers=USER)
    assert r.status_code == 404


def test_friend_receives_event_after_add(client, db_session, hub):
    seed_user(db_session, 1, name="Ada")
    seed_user(db_session, 2)
    seed_friends(db_session, 1, 2)

    _add(client, 10, "Heat")

    assert [(user_id, event) for user_id, event, _ in hub.events] == [(2, "feed_activity")]


def test_lists_are_per_caller(client, db_session):
    seed_user(db_session, 1)
    seed_user(db_session, 2)
    seed_ranking(db_session, 2, [5, 6])

    assert client.get("/api/movies/ranked", headers=USER).json()["count"] == 0
    assert client.get("/api/movies/ranked", headers={"X-User-Id": "2"}).json()["count"] == 2


def test_health(client, db_session):
    assert client.get("/api/health").json()["status"] == "ok"
    assert client.get("/api/health/db").json()["scope"] == "db"
    r = client.get("/api/health/sessions")
    assert r.json()["sessions"]["total_sessions"] == 0
