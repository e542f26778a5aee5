import os
import socket
from urllib.parse import urlparse

import pytest
import requests

from localtube.core.identity import video_id
from helpers import write_video


def scanned_id(library, path):
    library.refresh()
    return video_id(os.path.realpath(str(path)))


def test_videos_lists_catalog_with_user_state(live_server, library, media_dir):
    path = write_video(media_dir, "holiday_clip.mp4")
    vid = scanned_id(library, path)
    library.record_history(vid, 12.5)
    library.toggle_like(vid)

    r = requests.get(f"{live_server}/api/videos")

    assert r.status_code == 200
    videos = r.json()
    assert len(videos) == 1
    assert videos[0]["id"] == vid
    assert videos[0]["title"] == "Holiday Clip"
    assert videos[0]["duration"] == "1:05"
    assert videos[0]["resumeTime"] == 12.5
    assert videos[0]["isLiked"] is True


def test_videos_scans_on_first_request(live_server, media_dir):
    write_video(media_dir, "first.mp4")

    r = requests.get(f"{live_server}/api/videos")

    assert [v["filename"] for v in r.json()] == ["first.mp4"]


def test_empty_library_is_an_empty_list(live_server):
    r = requests.get(f"{live_server}/api/videos")
    assert r.status_code == 200
    assert r.json() == []


def test_refresh_reports_count(live_server, media_dir):
    write_video(media_dir, "a.mp4")
    assert requests.post(f"{live_server}/api/refresh").json() == {"success": True, "count": 1}

    write_video(media_dir, "b.mkv")
    assert requests.post(f"{live_server}/api/refresh").json() == {"success": True, "count": 2}


def test_stream_without_range(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mp4", size=5000)
    vid = scanned_id(library, path)

    r = requests.get(f"{live_server}/api/stream/{vid}")

    assert r.status_code == 200
    assert r.headers["Content-Length"] == "5000"
    assert r.headers["Content-Type"] == "video/mp4"
    assert r.content == path.read_bytes()


def test_stream_partial_content(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mp4", size=5000)
    vid = scanned_id(library, path)

    r = requests.get(f"{live_server}/api/stream/{vid}", headers={"Range": "bytes=0-99"})

    assert r.status_code == 206
    assert r.headers["Content-Length"] == "100"
    assert r.headers["Content-Range"] == "bytes 0-99/5000"
    assert r.headers["Accept-Ranges"] == "bytes"
    assert r.content == path.read_bytes()[:100]


def test_stream_open_ended_range(live_server, library, media_dir):
    path = write_video(media_dir, "clip.webm", size=5000)
    vid = scanned_id(library, path)

    r = requests.get(f"{live_server}/api/stream/{vid}", headers={"Range": "bytes=4000-"})

    assert r.status_code == 206
    assert r.headers["Content-Range"] == "bytes 4000-4999/5000"
    assert r.headers["Content-Type"] == "video/webm"
    assert r.content == path.read_bytes()[4000:]


def test_stream_range_past_end_is_416(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mp4", size=5000)
    vid = scanned_id(library, path)

    r = requests.get(f"{live_server}/api/stream/{vid}", headers={"Range": "bytes=5000-"})

    assert r.status_code == 416
    assert r.headers["Content-Range"] == "bytes */5000"


def test_malformed_range_serves_full_file(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mkv", size=3000)
    vid = scanned_id(library, path)

    r = requests.get(f"{live_server}/api/stream/{vid}", headers={"Range": "bytes=oops"})

    assert r.status_code == 200
    assert r.headers["Content-Type"] == "video/x-matroska"
    assert len(r.content) == 3000


def test_head_sends_headers_only(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mov", size=2048)
    vid = scanned_id(library, path)

    r = requests.head(f"{live_server}/api/stream/{vid}")

    assert r.status_code == 200
    assert r.headers["Content-Length"] == "2048"
    assert r.headers["Content-Type"] == "video/quicktime"
    assert r.content == b""


def test_unknown_id_is_404(live_server):
    assert requests.get(f"{live_server}/api/stream/doesnotexist").status_code == 404
    assert requests.get(f"{live_server}/api/thumbnail/doesnotexist").status_code == 404
    assert requests.post(f"{live_server}/api/like/doesnotexist").status_code == 404
    assert requests.delete(f"{live_server}/api/video/doesnotexist").status_code == 404


def test_vanished_file_is_server_error(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mp4")
    vid = scanned_id(library, path)
    os.remove(path)

    r = requests.get(f"{live_server}/api/stream/{vid}")

    assert r.status_code == 500


def test_thumbnail_is_generated_once(live_server, library, media_dir, extractor):
    path = write_video(media_dir, "clip.mp4")
    vid = scanned_id(library, path)

    first = requests.get(f"{live_server}/api/thumbnail/{vid}")
    second = requests.get(f"{live_server}/api/thumbnail/{vid}")

    assert first.status_code == 200
    assert first.headers["Content-Type"] == "image/jpeg"
    assert first.content == second.content
    assert len(extractor.calls) == 1
    assert os.path.exists(os.path.join(library.config.thumb_dir, f"{vid}.jpg"))


def test_thumbnail_extraction_failure_is_404(live_server, library, media_dir, extractor):
    path = write_video(media_dir, "audio_only.mp4")
    vid = scanned_id(library, path)
    extractor.fail = True

    r = requests.get(f"{live_server}/api/thumbnail/{vid}")

    assert r.status_code == 404


def test_like_and_history_round_trip(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mp4")
    vid = scanned_id(library, path)

    assert requests.post(f"{live_server}/api/like/{vid}").json() == {"success": True, "liked": True}
    r = requests.post(f"{live_server}/api/history", json={"videoId": vid, "timestamp": 33})
    assert r.json() == {"success": True}

    db = requests.get(f"{live_server}/api/db").json()
    assert db["likedVideos"] == [vid]
    assert db["history"] == {vid: 33}


def test_history_requires_fields(live_server):
    r = requests.post(f"{live_server}/api/history", json={"videoId": "x"})
    assert r.status_code == 400

    r = requests.post(f"{live_server}/api/history", data="{broken", headers={"Content-Type": "application/json"})
    assert r.status_code == 400


def test_folder_management(live_server, library, tmp_path, media_dir):
    extra = tmp_path / "extra"
    extra.mkdir()
    write_video(extra, "from_extra.mp4")

    r = requests.post(f"{live_server}/api/folders", json={"folder": str(extra)})
    assert r.json() == {"success": True}
    assert requests.post(f"{live_server}/api/folders", json={"folder": str(extra)}).status_code == 400
    assert requests.post(f"{live_server}/api/folders", json={"folder": str(tmp_path / "nope")}).status_code == 400

    folders = requests.get(f"{live_server}/api/folders").json()
    assert folders["customFolders"] == [str(extra)]
    assert folders["defaultFolders"] == [str(media_dir)]

    assert requests.post(f"{live_server}/api/refresh").json()["count"] == 1

    r = requests.delete(f"{live_server}/api/folders", json={"folder": str(extra)})
    assert r.json() == {"success": True}
    assert requests.post(f"{live_server}/api/refresh").json()["count"] == 0


def test_delete_video(live_server, library, media_dir):
    path = write_video(media_dir, "unwanted.mp4")
    keep = write_video(media_dir, "keep.mp4")
    vid = scanned_id(library, path)
    library.toggle_like(vid)
    requests.get(f"{live_server}/api/thumbnail/{vid}")

    r = requests.delete(f"{live_server}/api/video/{vid}")

    assert r.status_code == 200
    assert not path.exists()
    assert keep.exists()
    assert not os.path.exists(os.path.join(library.config.thumb_dir, f"{vid}.jpg"))
    assert vid not in library.state.snapshot().liked_videos
    assert [v["filename"] for v in requests.get(f"{live_server}/api/videos").json()] == ["keep.mp4"]


def test_user_state_survives_rescan(live_server, library, media_dir):
    path = write_video(media_dir, "clip.mp4")
    vid = scanned_id(library, path)
    requests.post(f"{live_server}/api/history", json={"videoId": vid, "timestamp": 90})

    requests.post(f"{live_server}/api/refresh")
    videos = requests.get(f"{live_server}/api/videos").json()

    assert videos[0]["id"] == vid
    assert videos[0]["resumeTime"] == 90


def test_unknown_route_is_404(live_server):
    assert requests.get(f"{live_server}/api/nothing").status_code == 404
    assert requests.post(f"{live_server}/api/nothing").status_code == 404


def send_raw(base_url, payload, expected_responses, timeout=5.0):
    """Writes raw bytes on one keep-alive connection and collects the replies."""
    url = urlparse(base_url)
    received = b""
    with socket.create_connection((url.hostname, url.port), timeout=timeout) as sock:
        sock.sendall(payload)
        while received.count(b"HTTP/1.1 ") < expected_responses or not received.endswith((b"}", b"]")):
            chunk = sock.recv(65536)
            if not chunk:
                break
            received += chunk
    return received


def test_unused_post_body_does_not_poison_keep_alive(live_server, media_dir):
    write_video(media_dir, "a.mp4")
    body = b'{"x": 1}'
    payload = (
        b"POST /api/refresh HTTP/1.1\r\nHost: localhost\r\n"
        b"Content-Type: application/json\r\nContent-Length: " + str(len(body)).encode() + b"\r\n\r\n"
        + body
        + b"GET /api/videos HTTP/1.1\r\nHost: localhost\r\n\r\n"
    )

    received = send_raw(live_server, payload, expected_responses=2)

    assert received.count(b"HTTP/1.1 200 OK") == 2
    assert b"HTTP/1.1 400" not in received
    assert b'"filename": "a.mp4"' in received


def test_unused_delete_body_does_not_poison_keep_alive(live_server):
    body = b'{"reason": "cleanup"}'
    payload = (
        b"DELETE /api/video/unknown HTTP/1.1\r\nHost: localhost\r\n"
        b"Content-Length: " + str(len(body)).encode() + b"\r\n\r\n"
        + body
        + b"GET /api/videos HTTP/1.1\r\nHost: localhost\r\n\r\n"
    )

    received = send_raw(live_server, payload, expected_responses=2)

    assert received.startswith(b"HTTP/1.1 404")
    assert received.count(b"HTTP/1.1 200 OK") == 1
    assert b"HTTP/1.1 400" not in received


@pytest.mark.parametrize("timestamp", ["NaN", "Infinity", "-Infinity", "-5"])
def test_history_rejects_non_finite_or_negative_timestamp(live_server, library, timestamp):
    r = requests.post(
        f"{live_server}/api/history",
        data='{"videoId": "x", "timestamp": %s}' % timestamp,
        headers={"Content-Type": "application/json"},
    )

    assert r.status_code == 400
    assert library.state.snapshot().history == {}
    assert requests.get(f"{live_server}/api/db").json()["history"] == {}
