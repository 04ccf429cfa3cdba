import logging
import socket
import threading

import pytest

from beamview import __main__ as beamview_main
from beamview.config import DEFAULT_HOST, DEFAULT_PORT, DIST_PATH, ServerConfig
from beamview.launcher import BrowserLauncher, NullLauncher


class RecordingLauncher(BrowserLauncher):
    def __init__(self):
        self.urls = []
        self.launched = threading.Event()

    def launch(self, url):
        self.urls.append(url)
        self.launched.set()


@pytest.fixture
def no_serve(monkeypatch):
    calls = []

    def fake_serve(app, sock, config):
        calls.append((app, sock.getsockname(), config))

    monkeypatch.setattr(beamview_main, "serve", fake_serve)
    return calls


def test_default_config():
    config = ServerConfig()

    assert config.port == DEFAULT_PORT == 8765
    assert config.host == DEFAULT_HOST == "0.0.0.0"
    assert config.asset_root == DIST_PATH
    assert config.bind_url == "http://0.0.0.0:8765"


def test_config_is_immutable():
    with pytest.raises(AttributeError):
        ServerConfig().port = 9000


def test_bundled_dist_has_an_index():
    assert (DIST_PATH / "index.html").is_file()


def test_run_serves_and_launches_browser(dist_dir, no_serve, monkeypatch):
    monkeypatch.setattr(beamview_main, "resolve_url", lambda port: f"http://10.0.0.5:{port}")
    launcher = RecordingLauncher()
    config = ServerConfig(host="127.0.0.1", port=0, asset_root=dist_dir)

    assert beamview_main.run(config, launcher) == 0

    assert launcher.launched.wait(timeout=5)
    assert launcher.urls == ["http://10.0.0.5:0"]
    assert len(no_serve) == 1
    assert no_serve[0][1][0] == "127.0.0.1"
    assert no_serve[0][2] is config


def test_run_missing_dist(tmp_path, no_serve, caplog):
    config = ServerConfig(host="127.0.0.1", port=0, asset_root=tmp_path / "dist")

    with caplog.at_level(logging.ERROR):
        assert beamview_main.run(config, NullLauncher()) == 1

    assert "embedded dist not found" in caplog.text
    assert no_serve == []


def test_run_port_in_use(dist_dir, no_serve, caplog):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupier:
        occupier.bind(("127.0.0.1", 0))
        occupier.listen()
        port = occupier.getsockname()[1]
        config = ServerConfig(host="127.0.0.1", port=port, asset_root=dist_dir)

        with caplog.at_level(logging.ERROR):
            assert beamview_main.run(config, NullLauncher()) == 1

    assert f"Could not bind 127.0.0.1:{port}" in caplog.text
    assert no_serve == []


def test_run_interrupted_exits_cleanly(dist_dir, monkeypatch):
    def interrupted(app, sock, config):
        raise KeyboardInterrupt

    monkeypatch.setattr(beamview_main, "serve", interrupted)
    config = ServerConfig(host="127.0.0.1", port=0, asset_root=dist_dir)

    assert beamview_main.run(config, NullLauncher()) == 0


def test_main_uses_fixed_config(monkeypatch):
    seen = []
    monkeypatch.setattr(beamview_main, "configure_logging", lambda: None)
    monkeypatch.setattr(beamview_main, "run", lambda config: seen.append(config) or 0)

    assert beamview_main.main() == 0
    assert seen == [ServerConfig()]
