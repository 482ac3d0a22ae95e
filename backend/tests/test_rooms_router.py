"""Tests for room roster endpoints and the health check."""


class TestRoomEndpoints:
    """Tests for /rooms and /rooms/{room}/users."""

    def test_unknown_room_is_empty(self, api_client):
        response = api_client.get("/rooms/nowhere/users")
        assert response.status_code == 200
        assert response.json() == {"room": "nowhere", "users": []}

    def test_roster_reflects_registry(self, api_client, app):
        registry = app.state.registry
        registry.add_user("c1", "alice", "Lobby")
        registry.add_user("c2", "bob", "lobby")
        registry.add_user("c3", "carol", "games")

        response = api_client.get("/rooms/LOBBY/users")
        assert response.status_code == 200
        assert response.json()["users"] == [
            {"username": "alice", "room": "Lobby"},
            {"username": "bob", "room": "lobby"},
        ]

    def test_list_rooms(self, api_client, app):
        registry = app.state.registry
        registry.add_user("c1", "alice", "Lobby")
        registry.add_user("c2", "carol", "games")

        response = api_client.get("/rooms")
        assert response.json() == {"rooms": ["Lobby", "games"]}

    def test_apps_do_not_share_registries(self, api_client, app, tmp_path, clock):
        from roomchat.config import AppConfig, StaticSettings
        from roomchat.main import create_app

        app.state.registry.add_user("c1", "alice", "r1")
        other = create_app(
            AppConfig(static=StaticSettings(directory=str(tmp_path / "none"))),
            clock=clock,
        )
        assert len(other.state.registry) == 0


def test_health(api_client):
    response = api_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_static_client_served(tmp_path, clock):
    from fastapi.testclient import TestClient

    from roomchat.config import AppConfig, StaticSettings
    from roomchat.main import create_app

    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<h1>chat</h1>", encoding="utf-8")

    app = create_app(AppConfig(static=StaticSettings(directory=str(public))), clock=clock)
    client = TestClient(app)

    assert client.get("/").text == "<h1>chat</h1>"
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_static_directory_mounts_nothing(api_client):
    # The app fixture points static.directory at a path that does not exist
    assert api_client.get("/").status_code == 404
    assert api_client.get("/rooms").json() == {"rooms": []}
