"""Tests for the media library endpoints and upload backends."""

from unittest.mock import MagicMock, patch

import requests

from luminasign.api import media as media_api
from luminasign.models.media import Media
from luminasign.models.playlist import PlaylistItem
from luminasign.services import image_host

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestLocalUpload:
    def test_upload_image_to_local_storage(self, client, db_session):
        response = client.post(
            "/media/upload",
            files={"file": ("Logo Final.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Logo Final.png"
        assert data["type"] == "image"
        assert data["duration_sec"] == 10
        assert data["size"] == len(PNG_BYTES)
        assert data["url"].startswith("/storage/media/")

        served = client.get(data["url"])
        assert served.status_code == 200
        assert served.content == PNG_BYTES
        assert db_session.query(Media).count() == 1

    def test_upload_video_with_custom_name(self, client):
        response = client.post(
            "/media/upload",
            params={"name": "Intro", "duration_sec": 30},
            files={"file": ("intro.mp4", b"video-bytes", "video/mp4")},
        )
        assert response.status_code == 200
        assert response.json()["type"] == "video"
        assert response.json()["name"] == "Intro"

    def test_rejects_wrong_extension(self, client):
        response = client.post(
            "/media/upload",
            files={"file": ("notes.txt", b"hello", "image/png")},
        )
        assert response.status_code == 400

    def test_rejects_empty_file(self, client):
        response = client.post(
            "/media/upload",
            files={"file": ("empty.png", b"", "image/png")},
        )
        assert response.status_code == 400

    def test_rejects_unknown_type(self, client):
        response = client.post(
            "/media/upload",
            files={"file": ("doc.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 400


class TestImageHostUpload:
    def test_upload_goes_to_image_host(self, client, monkeypatch):
        monkeypatch.setattr(media_api, "MEDIA_BACKEND", "imgbb")
        monkeypatch.setattr(image_host, "IMGBB_API_KEY", "test-key")
        fake_response = MagicMock(ok=True)
        fake_response.json.return_value = {
            "data": {"url": "https://i.ibb.co/x/logo.png", "delete_url": "https://ibb.co/x/del"}
        }
        with patch.object(image_host.requests, "post", return_value=fake_response) as post:
            response = client.post(
                "/media/upload",
                files={"file": ("logo.png", PNG_BYTES, "image/png")},
            )
        assert response.status_code == 200
        data = response.json()
        assert data["url"] == "https://i.ibb.co/x/logo.png"
        assert data["external_delete_url"] == "https://ibb.co/x/del"
        assert post.call_args.kwargs["params"] == {"key": "test-key"}

    def test_image_host_rejects_video(self, client, monkeypatch):
        monkeypatch.setattr(media_api, "MEDIA_BACKEND", "imgbb")
        monkeypatch.setattr(image_host, "IMGBB_API_KEY", "test-key")
        response = client.post(
            "/media/upload",
            files={"file": ("clip.mp4", b"video", "video/mp4")},
        )
        assert response.status_code == 400

    def test_image_host_error_message_is_surfaced(self, client, monkeypatch):
        monkeypatch.setattr(media_api, "MEDIA_BACKEND", "imgbb")
        monkeypatch.setattr(image_host, "IMGBB_API_KEY", "test-key")
        fake_response = MagicMock(ok=False)
        fake_response.json.return_value = {"error": {"message": "Invalid API v1 key."}}
        with patch.object(image_host.requests, "post", return_value=fake_response):
            response = client.post(
                "/media/upload",
                files={"file": ("logo.png", PNG_BYTES, "image/png")},
            )
        assert response.status_code == 502
        assert response.json()["detail"] == "Invalid API v1 key."

    def test_image_host_network_failure(self, client, monkeypatch):
        monkeypatch.setattr(media_api, "MEDIA_BACKEND", "imgbb")
        monkeypatch.setattr(image_host, "IMGBB_API_KEY", "test-key")
        with patch.object(image_host.requests, "post", side_effect=requests.exceptions.Timeout("slow")):
            response = client.post(
                "/media/upload",
                files={"file": ("logo.png", PNG_BYTES, "image/png")},
            )
        assert response.status_code == 502


class TestMediaLibrary:
    def test_register_external_link(self, client):
        response = client.post(
            "/media",
            json={"name": "Menu", "url": "https://cdn.example.com/menu.jpg", "type": "image", "duration_sec": 12},
        )
        assert response.status_code == 200
        assert response.json()["duration_sec"] == 12

    def test_register_link_rejects_bad_url(self, client):
        response = client.post("/media", json={"name": "Menu", "url": "ftp://x", "type": "image"})
        assert response.status_code == 400

    def test_search_by_name(self, client, test_media):
        response = client.get("/media", params={"q": "promo"})
        assert response.status_code == 200
        names = [row["name"] for row in response.json()]
        assert names == ["Promo Video"]

    def test_page_filters_by_type(self, client, test_media):
        response = client.get("/media/page", params={"type": "video", "limit": 1})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["limit"] == 1
        assert data["items"][0]["type"] == "video"

    def test_delete_removes_playlist_items(self, client, db_session, test_media, test_playlists):
        video_id = test_media[1].id
        response = client.delete(f"/media/{video_id}")
        assert response.status_code == 200
        assert response.json()["removed_playlist_items"] == 2
        assert db_session.query(PlaylistItem).filter(PlaylistItem.media_id == video_id).count() == 0
        assert client.get(f"/media/{video_id}").status_code == 404
