import pytest

from video_relay.models import PolloJob

from conftest import FakeResponse


def test_meta_lists_engines_and_aspect_ratios(client):
    resp = client.get("/api/meta")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["aspectRatios"] == ["1:1", "9:16", "16:9"]
    ids = [engine["id"] for engine in data["engines"]]
    assert ids[0] == "pollo-v1-6"
    assert "sora-2" in ids and "gemini-api" in ids
    sora = next(e for e in data["engines"] if e["id"] == "sora-2")
    assert sora["allowedDurations"] == [4, 8, 12]
    assert sora["defaultSize"] == "1280x720"


@pytest.mark.parametrize(
    "body,message",
    [
        ({"engineId": "nope", "prompt": "x", "aspectRatio": "16:9"}, "Bad engine"),
        ({"prompt": "x"}, "Bad engine"),
        ({"engineId": "pika-v2-2", "prompt": "   ", "aspectRatio": "16:9"}, "Prompt required"),
        ({"engineId": "pika-v2-2", "prompt": "x"}, "Aspect ratio required"),
        (
            {"engineId": "runway-gen3a", "prompt": "x", "aspectRatio": "16:9", "lengthSeconds": 7},
            "Length must be one of: 5, 10",
        ),
        (
            {"engineId": "pika-v2-2", "prompt": "x", "aspectRatio": "16:9", "duration": 30},
            "Length must be between 5 and 20 seconds",
        ),
        (
            {"engineId": "runway-gen3a", "prompt": "x", "aspectRatio": "1:1", "promptImage": "data:image/png;base64,AA=="},
            "Aspect ratio not supported for Runway Gen-3",
        ),
        (
            {"engineId": "runway-gen3a", "prompt": "x", "aspectRatio": "16:9"},
            "Runway Gen-3 requires an image upload",
        ),
    ],
)
def test_generate_rejects_bad_input(client, session, body, message):
    resp = client.post("/api/generate", json=body)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": message}
    assert session.calls == []


def test_generate_without_json_body(client):
    resp = client.post("/api/generate", data="not json", content_type="text/plain")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Bad engine"}


def test_duration_alias_wins_over_length_seconds(client, session):
    session.add("POST", "https://pollo.test/api/pollo/pollo-v1-6", FakeResponse(json_data={"taskId": "t-1"}))
    resp = client.post(
        "/api/generate",
        json={"engineId": "pollo-v1-6", "prompt": "x", "aspectRatio": "9:16", "duration": 12, "lengthSeconds": 99},
    )
    assert resp.status_code == 200
    assert session.calls[0].kwargs["json"]["input"]["length"] == 12


def test_missing_credentials_are_a_server_error(client, settings, session):
    settings.runway_api_key = None
    resp = client.post(
        "/api/generate",
        json={"engineId": "runway-gen3a", "prompt": "x", "aspectRatio": "16:9", "promptImage": "data:image/png;base64,AA=="},
    )
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Runway API key not configured"}

    settings.video_api_key = None
    resp = client.post("/api/generate", json={"engineId": "wanx-v2-1", "prompt": "x", "aspectRatio": "16:9"})
    assert resp.status_code == 500
    assert session.calls == []


def test_status_of_unknown_job_is_404(client):
    resp = client.get("/api/status/does-not-exist")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Unknown job"}


def test_jobs_lists_every_record(client, store):
    assert client.get("/api/jobs").get_json() == []

    store.add(PolloJob(id="a", engine_id="pollo-v1-6", provider="pollo", prompt="first", aspect_ratio="16:9"))
    store.add(PolloJob(id="b", engine_id="pika-v2-1", provider="pika", prompt="second", aspect_ratio="1:1"))

    jobs = client.get("/api/jobs").get_json()
    assert [job["id"] for job in jobs] == ["a", "b"]
    assert jobs[1]["provider"] == "pika"
    assert jobs[0]["status"] == "queued"


def test_health_endpoints(client):
    assert client.get("/").get_json() == {"ok": True}
    assert client.get("/healthz").get_json() == {"status": "healthy"}
    assert client.get("/api/health").get_json() == {"status": "healthy"}


def test_unknown_route_renders_json_error(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert "error" in resp.get_json()


def test_serve_download(client, settings):
    target = settings.download_dir / "pika-v2-2" / "clip" / "16x9"
    target.mkdir(parents=True)
    (target / "pika-v2-2_1.mp4").write_bytes(b"mp4-bytes")

    resp = client.get("/downloads/pika-v2-2/clip/16x9/pika-v2-2_1.mp4")
    assert resp.status_code == 200
    assert resp.data == b"mp4-bytes"

    assert client.get("/downloads/pika-v2-2/clip/16x9/missing.mp4").status_code == 404
