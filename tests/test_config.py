#!/usr/bin/env python3
"""Tests for configuration loading, saving and path resolution."""

import json
import os
from datetime import date, datetime, timezone

import pytest

from mstodo_sync.core.config import get_default_config_path, get_log_dir, get_log_path, load_config, save_config
from mstodo_sync.core.exceptions import ConfigurationError
from mstodo_sync.core.models import DEFAULT_GRAPH_BASE_URL, SyncConfig
from mstodo_sync.core.paths import PathManager
from mstodo_sync.utils.date import graph_due_date, parse_date, parse_timestamp, to_graph_due, today_string
from mstodo_sync.utils.io import atomic_write, safe_read_json, safe_write_json


class TestSyncConfig:
    def test_defaults(self):
        config = SyncConfig()

        assert config.tenant_id == "consumers"
        assert config.auto_sync is True
        assert config.sync_interval == 300
        assert config.read_delay == 0.5
        assert config.suppression_window == 2.0
        assert config.request_timeout == 30.0
        assert config.graph_base_url == DEFAULT_GRAPH_BASE_URL
        assert not config.has_vault

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        config = SyncConfig(
            vault_path=str(tmp_path / "vault"),
            client_id="client",
            access_token="token",
            default_list="Work",
            target_document="Inbox.md",
            sync_interval=60,
            suppression_window=5.0,
            last_sync_time=1700000000.0,
        )

        assert config.save_to_file(str(path))
        loaded = SyncConfig.load_from_file(str(path))

        assert loaded == config
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["vault"]["path"] == str(tmp_path / "vault")
        assert data["auth"]["client_id"] == "client"
        assert data["sync"]["default_list"] == "Work"

    def test_vault_path_is_normalized(self):
        config = SyncConfig(vault_path="~/Notes")
        assert config.vault_path == os.path.join(os.path.expanduser("~"), "Notes")

    def test_missing_and_corrupted_files_give_defaults(self, tmp_path):
        assert SyncConfig.load_from_file(str(tmp_path / "missing.json")) == SyncConfig()

        broken = tmp_path / "broken.json"
        broken.write_text('{"auth": {', encoding="utf-8")
        assert SyncConfig.load_from_file(str(broken)) == SyncConfig()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"sync": {"sync_interval": "120"}}), encoding="utf-8")

        config = SyncConfig.load_from_file(str(path))

        assert config.sync_interval == 120
        assert config.client_id == ""


class TestConfigHelpers:
    def test_default_path_uses_home_override(self, isolated_home):
        assert get_default_config_path() == isolated_home.resolve() / "config.json"

    def test_save_and_load_default_location(self, isolated_home):
        save_config(SyncConfig(client_id="abc"))

        assert (isolated_home / "config.json").exists()
        assert load_config().client_id == "abc"

    def test_save_failure_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            save_config(SyncConfig(), str(blocker / "config.json"))

    def test_log_dir_is_created(self, isolated_home):
        log_dir = get_log_dir()
        assert log_dir.is_dir()
        assert log_dir == isolated_home.resolve() / "logs"
        assert get_log_path() == log_dir / "mstodo-sync.log"

    def test_xdg_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv("MSTODO_SYNC_HOME", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        monkeypatch.setattr("sys.platform", "linux")

        assert PathManager().working_dir == tmp_path / "xdg" / "mstodo-sync"


class TestSafeIO:
    def test_write_then_read(self, tmp_path):
        path = tmp_path / "data.json"

        assert safe_write_json(str(path), {"a": 1})
        assert safe_read_json(str(path)) == {"a": 1}
        assert not list(tmp_path.glob(".tmp_*"))

    def test_read_default(self, tmp_path):
        assert safe_read_json(str(tmp_path / "nope.json"), default={"x": 1}) == {"x": 1}

    def test_atomic_write_without_lock_leaves_no_lock_file(self, tmp_path):
        path = tmp_path / "note.md"

        atomic_write(str(path), "- [ ] Task\r\n", use_lock=False)

        assert path.read_bytes() == "- [ ] Task\r\n".encode("utf-8")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["note.md"]


class TestDates:
    def test_parse_date(self):
        assert parse_date("2024-05-02") == date(2024, 5, 2)
        assert parse_date("2024-5-2") == date(2024, 5, 2)
        assert parse_date("2024-05-02T00:00:00.0000000") == date(2024, 5, 2)
        assert parse_date("not a date") is None
        assert parse_date(None) is None

    def test_graph_due_dates(self):
        assert to_graph_due(date(2024, 5, 2)) == {"dateTime": "2024-05-02T00:00:00", "timeZone": "UTC"}
        assert to_graph_due(None) is None
        assert graph_due_date({"dateTime": "2024-05-02T00:00:00.0000000", "timeZone": "UTC"}) == date(2024, 5, 2)
        assert graph_due_date(None) is None

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2024-01-15T09:30:00.1234567Z")
        assert parsed == datetime(2024, 1, 15, 9, 30, 0, 123456, tzinfo=timezone.utc)
        assert parse_timestamp("2024-01-15T09:30:00").tzinfo == timezone.utc
        assert parse_timestamp("garbage") is None

    def test_today_string(self):
        assert today_string(date(2024, 3, 1)) == "2024-03-01"
        assert today_string(datetime(2024, 3, 1, 23, 59)) == "2024-03-01"
