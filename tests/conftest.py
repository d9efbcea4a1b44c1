from types import SimpleNamespace

import pytest

from video_relay import JobStore, Settings, VideoRelay, create_app


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, content=b""):
        self.status_code = status_code
        self._json = json_data
        self.content = content

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    """Stands in for requests.Session: canned responses keyed by (method, url)."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, url, *responses):
        self.routes.setdefault((method, url), []).extend(responses)

    def request(self, method, url, **kwargs):
        self.calls.append(SimpleNamespace(method=method, url=url, kwargs=kwargs))
        queue = self.routes.get((method, url))
        if not queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def calls_to(self, method, url):
        return [c for c in self.calls if c.method == method and c.url == url]


class FakeOperation:
    def __init__(self, name, done=None, error=None, video_uri=None):
        self.name = name
        self.done = done
        self.error = error
        self.response = None
        if video_uri:
            video = SimpleNamespace(uri=video_uri)
            self.response = SimpleNamespace(generated_videos=[SimpleNamespace(video=video)])
        self.result = None

    def model_dump(self, mode="json", exclude_none=True):
        data = {"name": self.name, "done": self.done, "error": self.error}
        return {k: v for k, v in data.items() if v is not None}


class FakeGenai:
    """Just enough of google.genai.Client for the Veo adapter."""

    def __init__(self):
        self.generated = []
        self.polled = []
        self.next_operation = FakeOperation("models/veo-3.1-generate-preview/operations/op-123")
        self.poll_results = []
        self.generate_error = None
        self.models = SimpleNamespace(generate_videos=self._generate_videos)
        self.operations = SimpleNamespace(get=self._get)

    def _generate_videos(self, **kwargs):
        self.generated.append(kwargs)
        if self.generate_error:
            raise self.generate_error
        return self.next_operation

    def _get(self, operation):
        self.polled.append(operation.name)
        return self.poll_results.pop(0) if len(self.poll_results) > 1 else self.poll_results[0]


class FakeOpenAI:
    def __init__(self, content="A red fox in the snow."):
        self.content = content
        self.requests = []
        self.error = None
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def settings(tmp_path):
    return Settings(
        download_dir=tmp_path / "downloads",
        video_api_base="https://pollo.test/api",
        video_api_key="pollo-key",
        runway_api_base="https://runway.test/v1",
        runway_api_key="runway-key",
        openai_api_key="openai-key",
        openai_base_url="https://openai.test/v1",
        gemini_api_key="gemini-key",
        fal_api_key="fal-key",
        fal_api_base="https://fal.test",
        fal_poll_attempts=3,
        fal_poll_interval=0,
        ratelimit_enabled=False,
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def genai_client():
    return FakeGenai()


@pytest.fixture
def openai_client():
    return FakeOpenAI()


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def relay(settings, store, session, genai_client, openai_client):
    return VideoRelay(
        settings,
        store=store,
        session=session,
        genai_factory=lambda _settings: genai_client,
        openai_factory=lambda _settings: openai_client,
        sleep=lambda _seconds: None,
    )


@pytest.fixture
def client(relay):
    app = create_app(relay=relay)
    return app.test_client()


PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="
