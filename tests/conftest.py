import os
import tempfile

# Keep log files out of the home directory while the app module is imported
os.environ.setdefault("BASIL_LOG_DIR", tempfile.mkdtemp(prefix="basil-logs-"))

import pytest

from basil.core.config import refresh_settings


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text="", content_type="application/json"):
        self.status_code = status_code
        self._json = json_data
        self.text = text
        self.headers = {"content-type": content_type}

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class FakeSession:
    """Stands in for requests.Session; records calls and replays queued responses."""

    def __init__(self):
        self.calls = []
        self.responses = []
        self.error = None

    def queue(self, status_code=200, json_data=None, text="", content_type="application/json"):
        self.responses.append(FakeResponse(status_code, json_data, text, content_type))
        return self

    def fail_with(self, error):
        self.error = error
        return self

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("BASIL_") and key != "BASIL_LOG_DIR":
            monkeypatch.delenv(key)
    refresh_settings()
    yield
    refresh_settings()


@pytest.fixture
def fake_session():
    return FakeSession()
