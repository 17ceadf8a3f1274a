"""Fixtures shared by the whole stackeye test suite.

Every test that touches the config file asks for ``isolated_config`` so the
operator's real ``~/.config/stackeye`` is never read or written. Handshake
tests drive the callback server with :class:`FakeBrowser`, which makes real
loopback HTTP requests the way the web UI's redirect would.
"""

from __future__ import annotations

import threading
import time
from http.client import HTTPConnection
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlsplit

import pytest

from stackeye.auth.browser import Launcher
from stackeye.models import ConfigStore, Context
from stackeye.output import OutputFormat, OutputManager, reset_output, set_output


VALID_KEY = "se_" + "0123456789abcdef" * 4
OTHER_KEY = "se_" + "fedcba9876543210" * 4


@pytest.fixture(autouse=True)
def _fresh_output_manager():
    """Drop the global OutputManager after each test.

    A manager binds the stdout/stderr objects that existed when it was
    built; CliRunner swaps those out and closes them afterwards.
    """
    yield
    reset_output()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every stackeye path at *tmp_path* and clear STACKEYE_* variables.

    Returns:
        ``tmp_path/config/stackeye/config.yaml`` (``$STACKEYE_CONFIG``), not
        yet created.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["STACKEYE_API_URL", "STACKEYE_CONTEXT", "NO_COLOR"]:
        monkeypatch.delenv(var, raising=False)

    path = tmp_path / "config" / "stackeye" / "config.yaml"
    monkeypatch.setenv("STACKEYE_CONFIG", str(path))
    monkeypatch.chdir(tmp_path)
    return path


@pytest.fixture
def prod_store() -> ConfigStore:
    """A store already logged in to production as ``acme-corp``."""
    return ConfigStore(
        current_context="acme-corp",
        contexts={
            "acme-corp": Context(
                api_url="https://api.stackeye.io",
                organization_id="org_123",
                organization_name="Acme Corp",
                api_key=VALID_KEY,
            )
        },
    )


@pytest.fixture
def quiet_output():
    """Install a plain, quiet OutputManager for tests that ignore diagnostics."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()


class FakeBrowser(Launcher):
    """Launcher that plays the browser side of the login.

    When opened, it reads the ``callback`` parameter from the authorization
    URL and, after *delay* seconds, sends ``GET <callback>?<query>`` from a
    background thread. With ``query=None`` it never calls back.
    """

    name = "fake"

    def __init__(self, query: Optional[str] = None, delay: float = 0.05) -> None:
        self.query = query
        self.delay = delay
        self.opened: list[str] = []
        self.statuses: list[int] = []
        self.threads: list[threading.Thread] = []

    def _launch(self, url: str) -> None:
        self.opened.append(url)
        if self.query is None:
            return
        callback = urlsplit(parse_qs(urlsplit(url).query)["callback"][0])
        thread = threading.Thread(
            target=self._call, args=(callback.port, f"{callback.path}?{self.query}"), daemon=True
        )
        thread.start()
        self.threads.append(thread)

    def _call(self, port: int, path: str) -> None:
        time.sleep(self.delay)
        conn = HTTPConnection("127.0.0.1", port, timeout=5)
        try:
            conn.request("GET", path)
            self.statuses.append(conn.getresponse().status)
        finally:
            conn.close()

    def join(self) -> None:
        for thread in self.threads:
            thread.join(timeout=5)


@pytest.fixture
def fake_browser() -> type[FakeBrowser]:
    """The :class:`FakeBrowser` class, for building launchers in tests."""
    return FakeBrowser
