"""Tests for first-run setup."""

import stat

import pytest

from atticd.oobe import render_config, run_oobe, write_initial_config
from atticd.server.config import parse_config

from conftest import SECRET_B64


def test_rendered_config_parses(tmp_path):
    config = parse_config(render_config(tmp_path, secret=SECRET_B64), env={}.get)

    assert config.storage.path == tmp_path / "storage"
    assert config.database.url == f"sqlite://{tmp_path.as_posix()}/server.db?mode=rwc"
    assert config.garbage_collection.interval.total_seconds() == 12 * 3600


def test_each_render_generates_a_new_secret(tmp_path):
    first = parse_config(render_config(tmp_path), env={}.get)
    second = parse_config(render_config(tmp_path), env={}.get)

    assert first.token_hs256_secret != second.token_hs256_secret


def test_write_initial_config(tmp_path):
    config_path = tmp_path / "attic" / "server.toml"

    assert write_initial_config(config_path, data_dir=tmp_path / "data") is True
    assert (tmp_path / "data" / "storage").is_dir()
    assert stat.S_IMODE(config_path.stat().st_mode) == 0o600


def test_write_initial_config_keeps_existing(tmp_path):
    config_path = tmp_path / "server.toml"
    config_path.write_text("mine")

    assert write_initial_config(config_path, data_dir=tmp_path) is False
    assert config_path.read_text() == "mine"


@pytest.mark.asyncio
async def test_run_oobe_is_noop_when_config_exists(tmp_path, capsys):
    config_path = tmp_path / "server.toml"
    config_path.write_text("mine")

    await run_oobe(config_path)

    assert config_path.read_text() == "mine"
    assert capsys.readouterr().out == ""


@pytest.mark.asyncio
async def test_run_oobe_writes_config(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("atticd.oobe.get_xdg_data_path", lambda: tmp_path / "data")
    config_path = tmp_path / "attic" / "server.toml"

    await run_oobe(config_path)

    assert config_path.exists()
    assert str(config_path) in capsys.readouterr().out
