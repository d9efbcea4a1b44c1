import pytest

from video_relay.models import FAILED, QUEUED, RUNNING, SUCCEEDED, GeminiJob, PolloJob, RunwayJob, SoraJob, map_status
from video_relay.store import JobStore


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, QUEUED),
        ("", QUEUED),
        ("submitted", QUEUED),
        ("IN_PROGRESS", RUNNING),
        ("generating", RUNNING),
        ("completed", SUCCEEDED),
        ("Ready", SUCCEEDED),
        ("cancelled", FAILED),
        ("rejected", FAILED),
        ("rendering-pass-2", RUNNING),
    ],
)
def test_map_status(raw, expected):
    assert map_status(raw) == expected


def test_raw_vendor_payload_is_exposed_under_provider_key():
    job = RunwayJob(id="t1", engine_id="runway-gen3a", provider="runway", prompt="p", raw={"status": "RUNNING"})
    data = job.to_dict()
    assert data["runway"] == {"status": "RUNNING"}
    assert data["engineId"] == "runway-gen3a"
    assert data["localPath"] is None

    sora = SoraJob(id="v1", engine_id="sora-2", provider="openai", prompt="p", raw={"id": "v1"})
    assert sora.to_dict()["openai"] == {"id": "v1"}


def test_variant_fields():
    gemini = GeminiJob(id="op", engine_id="gemini-api", provider="gemini", prompt="p", operation_name="models/x/operations/op")
    assert gemini.to_dict()["geminiOperationName"] == "models/x/operations/op"
    assert "gemini" not in gemini.to_dict()

    pollo = PolloJob(id="t", engine_id="pika-v2-2", provider="pika", prompt="p", generations=[{"url": "u"}])
    assert pollo.to_dict()["generations"] == [{"url": "u"}]


def test_download_label_depends_on_provider():
    sora = SoraJob(id="v", engine_id="sora-2", provider="openai", prompt="p", aspect_ratio="16:9", size="1280x720")
    runway = RunwayJob(id="t", engine_id="runway-gen3a", provider="runway", prompt="p", aspect_ratio="16:9", size="1280:768")
    assert sora.download_label == "1280x720"
    assert runway.download_label == "16:9"


def test_needs_download_only_once():
    job = RunwayJob(id="t", engine_id="runway-gen3a", provider="runway", prompt="p", status=SUCCEEDED)
    assert not job.needs_download
    job.video_url = "https://cdn.test/v.mp4"
    assert job.needs_download
    job.local_path = "/tmp/v.mp4"
    assert not job.needs_download


def test_store_keeps_insertion_order():
    store = JobStore()
    first = store.add(PolloJob(id="a", engine_id="pollo-v1-6", provider="pollo", prompt="p"))
    store.add(PolloJob(id="b", engine_id="pollo-v1-6", provider="pollo", prompt="q"))

    assert len(store) == 2
    assert "a" in store and "zzz" not in store
    assert store.get("a") is first
    assert store.get("zzz") is None
    assert [job.id for job in store.all()] == ["a", "b"]
