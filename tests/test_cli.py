"""End-to-end tests of the management commands through the CLI parser."""

import json

import pytest
import yaml

from soundboard.cli import build_parser, dispatch


@pytest.fixture()
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "storage": {
                    "backend": "sqlite",
                    "database": str(tmp_path / "soundboard.db"),
                    "uploads_dir": str(tmp_path / "uploads"),
                    "profiles_dir": str(tmp_path / "profiles"),
                }
            }
        )
    )
    return str(path)


@pytest.fixture()
def wav_file(tmp_path):
    path = tmp_path / "ding.wav"
    path.write_bytes(b"RIFF-ding")
    return str(path)


@pytest.fixture()
def cli(config_path):
    parser = build_parser()

    def _run(*argv):
        return dispatch(parser.parse_args(["--config", config_path, *argv]))

    return _run


def test_clip_and_trigger_workflow(cli, wav_file, capsys):
    assert cli("clips", "add", wav_file, "--name", "Ding")
    assert cli("triggers", "add", "hello", "1")
    assert cli("triggers", "next", "1")
    assert "Next clip: 1" in capsys.readouterr().out

    assert cli("triggers", "update", "1", "--enabled", "false")
    assert cli("triggers", "list")
    assert "disabled" in capsys.readouterr().out

    assert cli("clips", "delete", "1")
    assert cli("triggers", "list")
    assert "Trigger words (0)" in capsys.readouterr().out


def test_unknown_ids_fail(cli):
    assert cli("clips", "delete", "9") is False
    assert cli("triggers", "delete", "9") is False
    assert cli("triggers", "next", "9") is False
    assert cli("triggers", "add", "hello", "9") is False


def test_settings_commands(cli, wav_file, capsys):
    cli("clips", "add", wav_file)
    assert cli("settings", "set", "--enabled", "true", "--clips", "1", "--delay", "0")
    assert cli("settings", "next-default")
    assert "Next default response clip: 1" in capsys.readouterr().out

    assert cli("settings", "set", "--clips")
    assert cli("settings", "show")
    assert "Sound Clips: []" in capsys.readouterr().out


def test_profile_commands(cli, wav_file, tmp_path, capsys):
    cli("clips", "add", wav_file, "--name", "Ding")
    cli("triggers", "add", "hello", "1")

    export_path = tmp_path / "party.json"
    assert cli("profile", "export", str(export_path))
    assert json.loads(export_path.read_text())["triggerWords"][0]["soundClipNames"] == ["Ding"]

    assert cli("profile", "save", "party")
    assert cli("profile", "list")
    assert "party" in capsys.readouterr().out

    assert cli("clips", "delete", "1")
    assert cli("profile", "load", "party")
    assert cli("triggers", "list")
    assert "'hello'" in capsys.readouterr().out

    assert cli("profile", "import", str(export_path))
    assert cli("profile", "delete", "party")
    assert cli("profile", "delete", "party") is False


def test_invalid_profile_file(cli, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"version": "1.0"}')
    assert cli("profile", "import", str(bad)) is False


def test_show_config(cli, capsys):
    assert cli("config")
    assert "Storage Backend: sqlite" in capsys.readouterr().out


def test_missing_config_fails(tmp_path):
    args = build_parser().parse_args(["--config", str(tmp_path / "none.yaml"), "clips", "list"])
    assert dispatch(args) is False
