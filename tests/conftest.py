# tests/conftest.py
import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from subplay.clock import PlaybackClock
from subplay.settings import SettingsStore, get_settings
from tests.fakes import FakeMediaHandle, FakeScheduler


@pytest.fixture(scope="session")
def qcore_app():
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Keep settings and logs out of the package directory."""
    path = tmp_path / "userdata"
    monkeypatch.setenv("SUBPLAY_DATA_DIR", str(path))
    return path


@pytest.fixture
def store(tmp_path):
    return SettingsStore(get_settings(str(tmp_path / "settings.ini")))


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def media():
    return FakeMediaHandle()


@pytest.fixture
def clock(scheduler, media):
    c = PlaybackClock(scheduler=scheduler)
    c.attach(media)
    return c


@pytest.fixture
def ready_clock(clock, media):
    """Clock with a 100 s source whose duration is known."""
    media.report_duration(100_000)
    return clock


@pytest.fixture
def playing_clock(ready_clock, media):
    media.play()
    return ready_clock


@pytest.fixture
def recorder():
    """Collects signal payloads: connect(rec.slot('name')), then rec['name']."""

    class Recorder(dict):
        def slot(self, name):
            self.setdefault(name, [])

            def _record(*args):
                self[name].append(args[0] if len(args) == 1 else args)

            return _record

    return Recorder()
