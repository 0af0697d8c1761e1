"""Tests for recent-file views and video watch progress."""
import pytest
from server import views
from tests.server.conftest import make_directory, make_file


@pytest.fixture
def video():
    d = make_directory("/media")
    return make_file(d, "movie.mp4", file_type="video", extension=".mp4")


class TestRecentFiles:
    def test_empty(self, client):
        assert client.get("/api/recent-files").json() == []

    def test_record_and_list(self, client, video):
        resp = client.post("/api/recent-files", json={"file_id": video.id})
        assert resp.status_code == 200
        assert resp.json()["view_type"] == "view"
        assert resp.json()["user_id"] == views.DEFAULT_USER

        recent = client.get("/api/recent-files").json()
        assert len(recent) == 1
        assert recent[0]["file"]["id"] == video.id

    def test_latest_view_per_file(self, client, video):
        client.post("/api/recent-files", json={"file_id": video.id, "view_type": "view"})
        client.post("/api/recent-files", json={"file_id": video.id, "view_type": "stream"})
        recent = client.get("/api/recent-files").json()
        assert len(recent) == 1
        assert recent[0]["view_type"] == "stream"

    def test_newest_first_and_limit(self, client):
        d = make_directory("/media")
        names = ["a.txt", "b.txt", "c.txt"]
        for name in names:
            f = make_file(d, name)
            client.post("/api/recent-files", json={"file_id": f.id, "view_type": "download"})
        recent = client.get("/api/recent-files", params={"limit": 2}).json()
        assert [r["file"]["name"] for r in recent] == ["c.txt", "b.txt"]

    def test_unknown_file_404(self, client):
        resp = client.post("/api/recent-files", json={"file_id": "ghost"})
        assert resp.status_code == 404

    def test_invalid_view_type(self, client, video):
        resp = client.post("/api/recent-files", json={"file_id": video.id, "view_type": "print"})
        assert resp.status_code == 422


class TestVideoProgress:
    def test_default_when_unwatched(self, client, video):
        assert client.get(f"/api/video-progress/{video.id}").json() == {
            "current_time": 0, "duration": 0, "is_watched": False,
        }

    def test_save_and_read(self, client, video):
        resp = client.post(f"/api/video-progress/{video.id}",
                           json={"current_time": 30, "duration": 100})
        assert resp.status_code == 200
        body = resp.json()
        assert (body["current_time"], body["duration"], body["is_watched"]) == (30, 100, False)
        assert client.get(f"/api/video-progress/{video.id}").json()["current_time"] == 30

    def test_watched_past_threshold(self, client, video):
        body = client.post(f"/api/video-progress/{video.id}",
                           json={"current_time": 95, "duration": 100}).json()
        assert body["is_watched"] is True

    def test_upsert_keeps_one_row(self, client, video):
        first = client.post(f"/api/video-progress/{video.id}",
                            json={"current_time": 10, "duration": 100}).json()
        second = client.post(f"/api/video-progress/{video.id}",
                             json={"current_time": 20, "duration": 100}).json()
        assert second["id"] == first["id"]
        everything = client.get("/api/video-progress").json()
        assert len(everything) == 1
        assert everything[0]["current_time"] == 20

    def test_negative_time_rejected(self, client, video):
        resp = client.post(f"/api/video-progress/{video.id}",
                           json={"current_time": -1, "duration": 100})
        assert resp.status_code == 422

    def test_unknown_file_404(self, client):
        resp = client.post("/api/video-progress/ghost", json={"current_time": 1, "duration": 2})
        assert resp.status_code == 404


class TestIsWatched:
    @pytest.mark.parametrize("current,duration,expected", [
        (0, 0, False),
        (50, 0, False),
        (90, 100, False),
        (91, 100, True),
        (100, 100, True),
    ])
    def test_threshold(self, current, duration, expected):
        assert views.is_watched(current, duration) is expected
