"""CLI behavior for run, extract, mirrors and config commands."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from fakes import profile_page
from nitter_reader import __version__

pytest.importorskip("typer")

from typer.testing import CliRunner

from nitter_reader import cli
from nitter_reader.cli import app
from nitter_reader.diagnostics.events import JsonlEventLogger

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NITTER_READER_CONFIG", str(tmp_path / "absent" / "config.toml"))


def _stub_process_job(monkeypatch: pytest.MonkeyPatch, *, success: bool) -> list[object]:
    received: list[object] = []

    def _process(payload: object, **kwargs: object) -> SimpleNamespace:
        received.append(payload)
        return SimpleNamespace(success=success)

    monkeypatch.setattr(cli, "process_job", _process)
    return received


def test_cli_version_flag_prints_package_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("run", "extract", "mirrors", "events", "config", "--debug"):
        assert command in result.output


def test_run_prints_done_and_exits_zero_on_success(monkeypatch: pytest.MonkeyPatch) -> None:
    received = _stub_process_job(monkeypatch, success=True)

    result = runner.invoke(app, ["run", "-p", '{"type": "user_tweets", "params": {"username": "alice"}}'])

    assert result.exit_code == 0
    assert result.output.strip().endswith("done.")
    assert received == [{"type": "user_tweets", "params": {"username": "alice"}}]


def test_run_exits_one_on_failed_job(monkeypatch: pytest.MonkeyPatch) -> None:
    _stub_process_job(monkeypatch, success=False)

    result = runner.invoke(app, ["run", "--payload", '{"type": "user_tweets"}'])

    assert result.exit_code == 1
    assert "done." in result.output


def test_run_reads_payload_from_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    received = _stub_process_job(monkeypatch, success=True)
    payload_path = tmp_path / "job.json"
    payload_path.write_text(json.dumps({"type": "user_tweets", "indicator": "x"}), encoding="utf-8")

    result = runner.invoke(app, ["run", "-p", str(payload_path)])

    assert result.exit_code == 0
    assert received == [{"type": "user_tweets", "indicator": "x"}]


def test_run_with_invalid_json_still_prints_done(monkeypatch: pytest.MonkeyPatch) -> None:
    received = _stub_process_job(monkeypatch, success=True)

    result = runner.invoke(app, ["run", "-p", "{not json"])

    assert result.exit_code == 1
    assert "done." in result.output
    assert received == []


def test_run_with_unexpected_error_exits_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def _explode(payload: object, **kwargs: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli, "process_job", _explode)

    result = runner.invoke(app, ["run", "-p", '{"type": "user_tweets"}'])

    assert result.exit_code == 1
    assert "done." in result.output


def test_run_with_broken_config_still_rejects_job_to_callback(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[browser]\nengine = \"netscape\"\n", encoding="utf-8")
    received = _stub_process_job(monkeypatch, success=True)
    rejected: list[tuple[object, str]] = []

    def _reject(payload: object, error: BaseException, **kwargs: object) -> None:
        rejected.append((payload, type(error).__name__))

    monkeypatch.setattr(cli, "reject_job", _reject)
    job = {"type": "user_tweets", "callback_url": "https://collector.example/hook"}

    result = runner.invoke(app, ["run", "-p", json.dumps(job), "--config", str(config_path)])

    assert result.exit_code == 1
    assert "done." in result.output
    assert received == []
    assert rejected == [(job, "ConfigError")]


def test_extract_prints_profile_and_items_json(tmp_path: Path) -> None:
    html_path = tmp_path / "page.html"
    html_path.write_text(profile_page(["11", "12", "13"]), encoding="utf-8")

    result = runner.invoke(app, ["extract", str(html_path), "--limit", "2"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["profile"]["username"] == "alice"
    assert [item["id"] for item in payload["items"]] == ["11", "12"]
    assert payload["raw_count"] == 3


def test_extract_jsonl_prints_one_item_per_line(tmp_path: Path) -> None:
    html_path = tmp_path / "page.html"
    html_path.write_text(profile_page(["11", "12", "13"]), encoding="utf-8")

    result = runner.invoke(app, ["extract", str(html_path), "--format", "jsonl"])

    assert result.exit_code == 0
    assert [json.loads(line)["id"] for line in result.stdout.splitlines()] == ["11", "12", "13"]


def test_extract_rejects_unknown_format(tmp_path: Path) -> None:
    html_path = tmp_path / "page.html"
    html_path.write_text(profile_page(["11"]), encoding="utf-8")

    result = runner.invoke(app, ["extract", str(html_path), "--format", "xml"])

    assert result.exit_code == 2
    assert "unsupported output format" in result.output


def test_events_prints_trail_filtered_by_job(tmp_path: Path) -> None:
    trail = tmp_path / "events.jsonl"
    event_logger = JsonlEventLogger(trail)
    event_logger.append("attempt_failed", job_id="job-a", mirror="https://m1.example")
    event_logger.append("job_completed", job_id="job-b", payload={"success": True})
    event_logger.append("job_completed", job_id="job-a", payload={"success": False})

    result = runner.invoke(app, ["events", str(trail), "--job", "job-a"])

    assert result.exit_code == 0
    lines = [json.loads(line) for line in result.stdout.splitlines()]
    assert [line["event_type"] for line in lines] == ["attempt_failed", "job_completed"]
    assert {line["job_id"] for line in lines} == {"job-a"}


def test_events_reports_corrupt_trail(tmp_path: Path) -> None:
    trail = tmp_path / "events.jsonl"
    trail.write_text("{broken\n", encoding="utf-8")

    result = runner.invoke(app, ["events", str(trail)])

    assert result.exit_code == 2
    assert "Events failed" in result.output


def test_events_missing_file_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["events", str(tmp_path / "missing.jsonl")])

    assert result.exit_code == 2
    assert "Events failed" in result.output


def test_extract_missing_file_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["extract", str(tmp_path / "missing.html")])

    assert result.exit_code == 2
    assert "Extract failed" in result.output


def test_mirrors_lists_configured_order(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        '[[mirrors]]\nurl = "https://b.example"\n\n[[mirrors]]\nurl = "https://a.example/"\n',
        encoding="utf-8",
    )

    result = runner.invoke(app, ["mirrors", "--config", str(config_path)])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["0\thttps://b.example", "1\thttps://a.example"]


def test_mirrors_defaults_when_no_config_exists() -> None:
    result = runner.invoke(app, ["mirrors"])

    assert result.exit_code == 0
    assert len(result.output.splitlines()) == 6


def test_config_init_and_show_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"

    init_result = runner.invoke(app, ["config", "init", "--config", str(config_path)])
    assert init_result.exit_code == 0
    assert config_path.exists()

    show_result = runner.invoke(app, ["config", "show", "--config", str(config_path), "--json"])
    assert show_result.exit_code == 0
    payload = json.loads(show_result.output)
    assert payload["path"] == str(config_path)
    assert payload["config"]["browser"]["landing_timeout_ms"] == 15000
    assert len(payload["config"]["mirrors"]) == 6


def test_config_init_refuses_to_overwrite_without_force(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    runner.invoke(app, ["config", "init", "--config", str(config_path)])

    result = runner.invoke(app, ["config", "init", "--config", str(config_path)])

    assert result.exit_code == 2
    assert "--force" in result.output


def test_config_show_reports_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "show", "--config", str(tmp_path / "none.toml")])

    assert result.exit_code == 2
    assert "nitter config init" in result.output
