"""Unit tests for the command-line entrypoint."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from workflow_kernel.kernel.main import build_parser, main


@pytest.fixture
def table_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "review.json"
    path.write_text(
        json.dumps(
            {
                "initial": "draft",
                "rules": [
                    {"source": "draft", "trigger": "submit", "target": "moderation"},
                    {"source": "moderation", "trigger": "approve", "target": "published"},
                    {"source": "moderation", "trigger": "reject", "target": "draft"},
                    {"source": "published", "trigger": "retract", "target": "draft"},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_describe(table_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["describe", "--table", str(table_path)]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "initial: draft"
    assert out[1] == "states: draft, moderation, published"
    assert out[2] == "triggers: submit, approve, reject, retract"
    assert "  draft --submit--> moderation" in out


def test_run_fires_triggers_and_undoes(
    table_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["run", "--table", str(table_path), "--undo", "1", "submit", "approve"])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == [
        "submit: draft -> moderation",
        "approve: moderation -> published",
        "undo: published -> moderation",
        "state: moderation",
    ]


def test_run_reports_invalid_trigger(
    table_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["run", "--table", str(table_path), "approve"])

    captured = capsys.readouterr()
    assert code == 3
    assert "InvalidTransition" in captured.err
    assert captured.out == ""


def test_run_reports_nothing_to_undo(
    table_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["run", "--table", str(table_path), "--undo", "2", "submit"])

    assert code == 3
    assert "NothingToUndo" in capsys.readouterr().err


def test_run_rejects_negative_undo(table_path: Path) -> None:
    assert main(["run", "--table", str(table_path), "--undo", "-1"]) == 2


def test_missing_table_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["describe", "--table", str(tmp_path / "absent.json")]) == 2


def test_invalid_settings_exit_with_config_error(
    table_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("WORKFLOW_KERNEL_MAX_ROUTING_DEPTH", "0")

    assert main(["describe", "--table", str(table_path)]) == 2
    assert "Configuration error" in capsys.readouterr().err


def test_history_limit_from_environment(
    table_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("WORKFLOW_KERNEL_MAX_HISTORY_DEPTH", "1")

    code = main(["run", "--table", str(table_path), "--undo", "2", "submit", "approve"])

    assert code == 3
    out = capsys.readouterr().out.splitlines()
    assert "undo: published -> moderation" in out


def test_demo(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)

    assert main(["demo"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Document created. Document is in DRAFT mode (only visible to authors)."
    assert "  Document is in PUBLISHED mode (visible to everyone)." in out
    assert any(line.startswith("  Rejected:") for line in out)
    assert out.count("undo:") == 3
    assert out[-1] == "final state: draft"
