import tempfile
from types import SimpleNamespace

import pytest
import structlog

from claudepack.config import clear_settings_cache
from tests.helpers import make_database


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Fake home, database root and working directory for one test."""
    base = tmp_path.resolve()
    home = base / "home"
    home.mkdir()
    work = base / "work"
    work.mkdir()
    scratch = base / "scratch"
    scratch.mkdir()
    database_root = make_database(home / ".claude")

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("APP_ENVIRONMENT", "test")
    monkeypatch.setenv("CLAUDEPACK_FALLBACK_DB", str(base / "no-fallback"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("CLAUDEPACK_CLAUDE_DB", raising=False)
    monkeypatch.delenv("CLAUDEPACK_EXTRA_EXCLUDES", raising=False)
    monkeypatch.delenv("CLAUDEPACK_STAGING_DIR", raising=False)
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    monkeypatch.setattr("claudepack.database._DEVELOPMENT_ROOT", base / "checkout")
    monkeypatch.chdir(work)
    clear_settings_cache()
    try:
        yield SimpleNamespace(base=base, home=home, work=work, scratch=scratch, database_root=database_root)
    finally:
        clear_settings_cache()


@pytest.fixture(autouse=True)
def _reset_logging():
    """The CLI reconfigures structlog per invocation; start every test from the defaults."""
    yield
    structlog.reset_defaults()
    clear_settings_cache()
