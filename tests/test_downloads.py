import pytest
import requests

from video_relay.downloads import build_download_path, download_file, path_label, slugify
from video_relay.errors import DownloadError
from video_relay.media import parse_reference_image, reference_image_name
from video_relay.models import RunwayJob, SoraJob

from conftest import FakeResponse, FakeSession


def test_slugify():
    assert slugify("A Cat -- on the Moon!") == "a-cat-on-the-moon"
    assert slugify(None) == ""
    assert len(slugify("word " * 40)) == 40


@pytest.mark.parametrize(
    "value,expected",
    [("16:9", "16x9"), ("1280x720", "1280x720"), ("720p", "720p"), ("1280:768", "1280x768"), (None, "unknown")],
)
def test_path_label(value, expected):
    assert path_label(value) == expected


def test_build_download_path(tmp_path):
    job = RunwayJob(id="t", engine_id="runway-gen3a", provider="runway", prompt="Waves at dusk", aspect_ratio="16:9")
    path = build_download_path(tmp_path, job, timestamp_ms=1700000000000)
    assert path == tmp_path / "runway-gen3a" / "waves-at-dusk" / "16x9" / "runway-gen3a_1700000000000.mp4"
    assert path.parent.is_dir()

    sora = SoraJob(id="v", engine_id="sora-2", provider="openai", prompt="x", size="720x1280")
    assert build_download_path(tmp_path, sora, 1).parent.name == "720x1280"


def test_download_file_streams_to_disk(tmp_path):
    session = FakeSession()
    session.add("GET", "https://cdn.test/v.mp4", FakeResponse(content=b"0123456789"))
    target = tmp_path / "v.mp4"

    download_file(session, "https://cdn.test/v.mp4", target, headers={"x": "1"})

    assert target.read_bytes() == b"0123456789"
    call = session.calls[0]
    assert call.kwargs["stream"] is True
    assert call.kwargs["headers"] == {"x": "1"}


def test_download_http_error_leaves_no_file(tmp_path):
    session = FakeSession()
    session.add("GET", "https://cdn.test/v.mp4", FakeResponse(status_code=403))
    target = tmp_path / "v.mp4"

    with pytest.raises(DownloadError):
        download_file(session, "https://cdn.test/v.mp4", target)
    assert not target.exists()


def test_download_connection_error(tmp_path):
    session = FakeSession()
    session.add("GET", "https://cdn.test/v.mp4", requests.ConnectionError("reset"))
    with pytest.raises(DownloadError) as exc:
        download_file(session, "https://cdn.test/v.mp4", tmp_path / "v.mp4")
    assert "reset" in exc.value.message


def test_parse_reference_image():
    image = parse_reference_image("data:image/jpeg;base64,aGVsbG8=", "ref.jpg")
    assert image.data == b"hello"
    assert image.mime_type == "image/jpeg"
    assert image.filename == "ref.jpg"

    bare = parse_reference_image("aGVsbG8=")
    assert bare.mime_type == "image/png"
    assert bare.filename == "input-reference"

    assert parse_reference_image("") is None
    assert parse_reference_image(None) is None
    assert parse_reference_image("not base64 at all!") is None


def test_reference_image_name_is_sanitized():
    assert reference_image_name("../../etc/passwd") == "etc_passwd"
    assert reference_image_name("  ") == "input-reference"
