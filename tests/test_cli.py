"""Command line entry point."""

from __future__ import annotations

from typing import Any

import pytest

from app.config import get_settings
from cinescope import cli


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, dict[str, Any]]]:
    calls: list[tuple[str, dict[str, Any]]] = []

    def fake_run(target: str, **kwargs: Any) -> None:
        calls.append((target, kwargs))

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)
    return calls


def test_defaults_come_from_settings(served) -> None:
    settings = get_settings()

    cli.main([])

    assert served == [
        (
            "app.main:app",
            {
                "host": settings.server_host,
                "port": settings.server_port,
                "reload": settings.environment == "development",
                "log_level": "info",
            },
        )
    ]


def test_flags_override_settings(served) -> None:
    cli.main(["--host", "127.0.0.1", "--port", "8080", "--no-reload", "--log-level", "debug"])

    _, kwargs = served[0]
    assert kwargs == {"host": "127.0.0.1", "port": 8080, "reload": False, "log_level": "debug"}


def test_invalid_port_exits(served, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        cli.main(["--port", "eighty"])

    assert served == []
    assert "invalid int value" in capsys.readouterr().err
