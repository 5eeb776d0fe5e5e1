import hashlib

import pytest
import requests

from arclink.components import ComponentRegistry
from arclink.models import ArcLinkConfig
from arclink.updater import UpdateEngine


class FakeResponse:
    def __init__(self, status_code=200, text="", json_data=None, content=b""):
        self.status_code = status_code
        self.text = text
        self._json = json_data
        self.content = content

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

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
    """Stands in for requests.Session, answering from a url -> response table."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.gets = []
        self.posts = []

    def _answer(self, url):
        answer = self.routes.get(url)
        if answer is None:
            raise requests.ConnectionError(f"No route to {url}")
        if isinstance(answer, Exception):
            raise answer
        return answer

    def get(self, url, **kwargs):
        self.gets.append(url)
        return self._answer(url)

    def post(self, url, json=None, **kwargs):
        self.posts.append((url, json))
        if not url.startswith("http"):
            raise requests.exceptions.MissingSchema(f"Invalid URL {url!r}")
        return self._answer(url)


class FakeProcess:
    def __init__(self, pid):
        self.pid = pid


class FakeMonitor:
    def __init__(self, pids=()):
        self.processes = [FakeProcess(pid) for pid in pids]
        self.callbacks = []
        self.cancelled = False

    def running(self):
        return list(self.processes)

    def is_running(self):
        return bool(self.processes)

    def subscribe_exit(self, processes, callback):
        self.callbacks.append((list(processes), callback))

    def cancel(self):
        self.cancelled = True

    def exit(self, pid):
        self.processes = [p for p in self.processes if p.pid != pid]
        for processes, callback in self.callbacks:
            if any(p.pid == pid for p in processes):
                callback(pid)


def md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


@pytest.fixture
def game_root(tmp_path):
    root = tmp_path / "Guild Wars 2"
    root.mkdir()
    return root


@pytest.fixture
def config(game_root):
    return ArcLinkConfig(game_location=str(game_root), data_dir=str(game_root.parent))


@pytest.fixture
def registry(tmp_path):
    return ComponentRegistry(tmp_path / "arcdps_components.json")


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def monitor():
    return FakeMonitor()


@pytest.fixture
def engine(config, registry, monitor, session):
    return UpdateEngine(config, registry, monitor=monitor, session=session)
