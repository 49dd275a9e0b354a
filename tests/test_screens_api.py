"""Tests for screen pairing, assignment and dashboard endpoints."""

from datetime import datetime, timedelta

from luminasign.models.schedule import Schedule
from luminasign.models.screen import Screen


class TestScreenPairing:
    def test_pair_new_screen(self, client):
        response = client.post("/screens", json={"name": "Lobby Entrance TV", "pairing_code": "123456"})
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Lobby Entrance TV"
        assert data["pairing_code"] == "123456"
        assert data["status"] == "online"
        assert data["current_playlist_id"] is None
        assert data["user_id"] == "user1"
        assert data["last_heartbeat"] is not None

    def test_pair_existing_code_updates_screen(self, client, db_session):
        db_session.add(Screen(name="Old", pairing_code="111222", status="offline"))
        db_session.commit()

        response = client.post("/screens", json={"name": "Renamed", "pairing_code": "111222"})
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert db_session.query(Screen).count() == 1

    def test_pair_code_owned_by_other_account(self, client, test_screen):
        response = client.post(
            "/screens",
            json={"name": "Hijack", "pairing_code": test_screen.pairing_code},
            headers={"X-Account-ID": "someone-else"},
        )
        assert response.status_code == 403

    def test_pairing_code_must_be_six_digits(self, client):
        response = client.post("/screens", json={"name": "TV", "pairing_code": "12ab"})
        assert response.status_code == 400

    def test_blank_name_rejected(self, client):
        response = client.post("/screens", json={"name": "   ", "pairing_code": "123456"})
        assert response.status_code == 400


class TestScreenManagement:
    def test_list_refreshes_stale_status(self, client, db_session, test_screen):
        test_screen.last_heartbeat = datetime.utcnow() - timedelta(hours=1)
        db_session.commit()

        response = client.get("/screens")
        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["status"] == "offline"

    def test_assign_and_clear_playlist(self, client, test_screen, test_playlists):
        response = client.put(
            f"/screens/{test_screen.id}/playlist",
            json={"playlist_id": test_playlists[1].id},
        )
        assert response.status_code == 200
        assert response.json()["current_playlist_id"] == test_playlists[1].id

        response = client.put(f"/screens/{test_screen.id}/playlist", json={"playlist_id": None})
        assert response.status_code == 200
        assert response.json()["current_playlist_id"] is None

    def test_assign_unknown_playlist(self, client, test_screen):
        response = client.put(f"/screens/{test_screen.id}/playlist", json={"playlist_id": "nope"})
        assert response.status_code == 404

    def test_rename(self, client, test_screen):
        response = client.put(f"/screens/{test_screen.id}", params={"name": "Bar TV"})
        assert response.status_code == 200
        assert response.json()["name"] == "Bar TV"

    def test_get_unknown_screen(self, client):
        assert client.get("/screens/does-not-exist").status_code == 404

    def test_delete_removes_schedules(self, client, db_session, test_screen, lunch_schedule):
        response = client.delete(f"/screens/{test_screen.id}")
        assert response.status_code == 200
        assert db_session.query(Screen).count() == 0
        assert db_session.query(Schedule).count() == 0


class TestNowPlaying:
    def test_schedule_override_inside_window(self, client, frozen_now, test_screen, test_playlists, lunch_schedule):
        frozen_now()
        response = client.get(f"/screens/{test_screen.id}/now-playing")
        assert response.status_code == 200
        data = response.json()
        assert data["playlist_id"] == test_playlists[1].id
        assert data["schedule_id"] == lunch_schedule.id
        assert data["override_active"] is True

    def test_assignment_outside_window(self, client, frozen_now, test_screen, test_playlists, lunch_schedule):
        frozen_now(datetime(2024, 6, 2, 12, 0))  # Sunday
        data = client.get(f"/screens/{test_screen.id}/now-playing").json()
        assert data["playlist_id"] == test_playlists[0].id
        assert data["playlist_name"] == "Default Loop"
        assert data["schedule_id"] is None
        assert data["override_active"] is False


def test_dashboard_totals(client, db_session, test_screen, test_media, test_playlists):
    db_session.add(
        Screen(
            name="Back Office",
            pairing_code="999000",
            last_heartbeat=datetime.utcnow() - timedelta(hours=2),
            user_id="user1",
        )
    )
    db_session.commit()

    response = client.get("/dashboard")
    assert response.status_code == 200
    data = response.json()
    assert data["total_screens"] == 2
    assert data["online_screens"] == 1
    assert data["media_count"] == 2
    assert data["playlist_count"] == 2
    by_name = {row["name"]: row for row in data["recent_screens"]}
    assert by_name["Lobby TV"]["playlist_name"] == "Default Loop"
    assert by_name["Back Office"]["status"] == "offline"
