"""Tests for the command-line entrypoint."""

import json

import pytest
import structlog

from swip import main as main_module
from swip.main import main


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    """Keep log lines out of captured stdout."""
    monkeypatch.setattr(main_module, "setup_logging", lambda level: None)
    structlog.configure(logger_factory=structlog.ReturnLoggerFactory())
    yield
    structlog.reset_defaults()


def test_no_command_exits():
    with pytest.raises(SystemExit):
        main([])


def test_simulate_prints_summary(capsys):
    main([
        "simulate",
        "--seconds", "0.3",
        "--interval", "0.01",
        "--seed", "5",
        "--threshold", "0",
    ])
    summary = json.loads(capsys.readouterr().out)
    assert summary["score_count"] >= 1
    assert 0 <= summary["average_score"] <= 100
    assert summary["session_id"].endswith("_simulator")
