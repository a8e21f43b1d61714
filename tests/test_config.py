from pathlib import Path

from ambr.config import Settings, default_data_dir


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("DATA_DIR", "DATABASE_URL", "SAMPLE_INTERVAL_SECONDS", "IGNORED_INTERFACES"):
        monkeypatch.delenv(name, raising=False)

    s = Settings()

    assert s.sample_interval_seconds == 10
    assert s.record_idle_ticks is True
    assert s.ignored_interfaces == []
    assert s.live_refresh_seconds == 1.0
    assert s.background_refresh_seconds == 2.0
    assert s.resolved_database_url == f"sqlite:///{default_data_dir() / 'ambr.db'}"


def test_ignored_interfaces_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("IGNORED_INTERFACES", "lo, docker0,,veth1")

    assert Settings().ignored_interfaces == ["lo", "docker0", "veth1"]


def test_data_dir_and_database_url(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))

    s = Settings()
    assert s.data_dir == tmp_path / "data"
    assert s.resolved_database_url == f"sqlite:///{tmp_path / 'data' / 'ambr.db'}"

    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    assert Settings().resolved_database_url == "sqlite://"


def test_xdg_data_home(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    assert default_data_dir() == Path(tmp_path) / "ambr"

    monkeypatch.delenv("XDG_DATA_HOME")
    assert default_data_dir() == Path.home() / ".local" / "share" / "ambr"
