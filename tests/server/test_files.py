"""Tests for directory/file browsing, download, streaming and subtitles."""
from tests.server.conftest import make_directory, make_file, write_file


def _scan(client):
    assert client.post("/api/scan/start").status_code == 200


class TestDirectories:
    def test_roots_and_children(self, client, media_root):
        write_file(media_root / "movies" / "a.mp4")
        write_file(media_root / "music" / "b.mp3")
        _scan(client)

        roots = client.get("/api/directories", params={"roots": True}).json()
        assert [d["path"] for d in roots] == [str(media_root)]

        children = client.get("/api/directories", params={"parent_id": roots[0]["id"]}).json()
        assert [d["name"] for d in children] == ["movies", "music"]
        assert all(d["file_count"] == 1 for d in children)

        everything = client.get("/api/directories").json()
        assert len(everything) == 3

    def test_get_by_id(self, client):
        d = make_directory("/media")
        resp = client.get(f"/api/directories/{d.id}")
        assert resp.status_code == 200
        assert resp.json()["path"] == "/media"

    def test_unknown_directory_404(self, client):
        assert client.get("/api/directories/ghost").status_code == 404


class TestFiles:
    def test_list_filter_by_directory_and_search(self, client):
        a = make_directory("/media/a")
        b = make_directory("/media/b")
        make_file(a, "Beach.jpg", file_type="image", extension=".jpg")
        make_file(a, "notes.txt")
        make_file(b, "beach-2.jpg", file_type="image", extension=".jpg")

        assert len(client.get("/api/files").json()) == 3
        in_a = client.get("/api/files", params={"directory_id": a.id}).json()
        assert {f["name"] for f in in_a} == {"Beach.jpg", "notes.txt"}
        found = client.get("/api/files", params={"search": "BEACH"}).json()
        assert {f["name"] for f in found} == {"Beach.jpg", "beach-2.jpg"}

    def test_get_by_id(self, client):
        d = make_directory("/media")
        f = make_file(d, "movie.mp4", file_type="video", extension=".mp4",
                      subtitle_paths=["/media/movie.srt"])
        body = client.get(f"/api/files/{f.id}").json()
        assert body["path"] == "/media/movie.mp4"
        assert body["file_type"] == "video"
        assert body["has_subtitles"] is True
        assert body["subtitle_paths"] == ["/media/movie.srt"]

    def test_unknown_file_404(self, client):
        assert client.get("/api/files/ghost").status_code == 404

    def test_stats(self, client):
        assert client.get("/api/stats").json() == {"total_files": 0, "total_size": 0}
        d = make_directory("/media")
        make_file(d, "a.txt", size=10)
        make_file(d, "b.txt", size=32)
        assert client.get("/api/stats").json() == {"total_files": 2, "total_size": 42}


class TestDownloadAndStream:
    def test_download(self, client, media_root):
        write_file(media_root / "report.pdf", size=64)
        _scan(client)
        f = client.get("/api/files", params={"search": "report"}).json()[0]

        resp = client.get(f"/api/files/{f['id']}/download")
        assert resp.status_code == 200
        assert resp.content == b"x" * 64
        assert "report.pdf" in resp.headers["content-disposition"]

    def test_download_missing_on_disk(self, client):
        d = make_directory("/nowhere")
        f = make_file(d, "gone.txt")
        assert client.get(f"/api/files/{f.id}/download").status_code == 404

    def test_stream_video(self, client, media_root):
        write_file(media_root / "clip.mp4", size=2048)
        _scan(client)
        f = client.get("/api/files").json()[0]

        resp = client.get(f"/api/files/{f['id']}/stream")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "video/mp4"
        assert len(resp.content) == 2048

    def test_stream_rejects_non_video(self, client, media_root):
        write_file(media_root / "notes.txt")
        _scan(client)
        f = client.get("/api/files").json()[0]
        assert client.get(f"/api/files/{f['id']}/stream").status_code == 404


class TestSubtitles:
    def test_list_and_serve(self, client, media_root):
        write_file(media_root / "movie.mp4")
        (media_root / "movie.en.srt").write_text("1\n00:00:01,000 --> 00:00:02,000\nHello\n")
        _scan(client)
        movie = client.get("/api/files", params={"search": "movie.mp4"}).json()[0]

        tracks = client.get(f"/api/files/{movie['id']}/subtitles").json()
        assert tracks == [{
            "path": str(media_root / "movie.en.srt"),
            "name": "movie.en.srt",
            "language": "en",
        }]

        resp = client.get(f"/api/files/{movie['id']}/subtitles/0")
        assert resp.status_code == 200
        assert "Hello" in resp.text

    def test_unknown_file_has_no_tracks(self, client):
        assert client.get("/api/files/ghost/subtitles").json() == []

    def test_subtitle_index_out_of_range(self, client, media_root):
        write_file(media_root / "movie.mp4")
        _scan(client)
        movie = client.get("/api/files").json()[0]
        assert client.get(f"/api/files/{movie['id']}/subtitles/0").status_code == 404

    def test_vanished_subtitle_not_listed(self, client):
        d = make_directory("/media")
        f = make_file(d, "movie.mp4", file_type="video", extension=".mp4",
                      subtitle_paths=["/media/movie.srt"])
        assert client.get(f"/api/files/{f.id}/subtitles").json() == []
        assert client.get(f"/api/files/{f.id}/subtitles/0").status_code == 404
