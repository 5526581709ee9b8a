"""
Tests for backend selection and embedded database initialization.
"""

from pathlib import Path

import pytest
from sqlalchemy import inspect

from core.config import (
    APP_DATA_DIRNAME,
    EMBEDDED_DB_FILENAME,
    Settings,
    default_app_data_dir,
    resolve_storage_config,
)
from core.errors import ConfigurationError
from db.session import Base
from db.storage import init_storage


def _settings(**overrides) -> Settings:
    values = {"database_url": "", "use_embedded_db": False, "database_path": "", "app_data_dir": ""}
    values.update(overrides)
    return Settings(**values)


class TestResolveStorageConfig:
    def test_no_url_selects_embedded_in_app_data_dir(self, tmp_path):
        config = resolve_storage_config(_settings(app_data_dir=str(tmp_path)))
        assert config.backend == "embedded"
        assert config.is_embedded
        assert config.database_path == tmp_path / EMBEDDED_DB_FILENAME
        assert config.url == f"sqlite+aiosqlite:///{tmp_path / EMBEDDED_DB_FILENAME}"

    def test_explicit_path_wins_over_remote_url(self, tmp_path):
        db_file = tmp_path / "custom.db"
        config = resolve_storage_config(
            _settings(database_url="postgresql://u:p@db.example.com/pos", database_path=str(db_file))
        )
        assert config.backend == "embedded"
        assert config.database_path == db_file

    def test_embedded_flag_wins_over_remote_url(self, tmp_path):
        config = resolve_storage_config(
            _settings(database_url="postgresql://u:p@db.example.com/pos", use_embedded_db=True, app_data_dir=str(tmp_path))
        )
        assert config.backend == "embedded"

    @pytest.mark.parametrize(
        "raw",
        ["postgresql://u:p@db.example.com:5432/pos", "postgres://u:p@db.example.com/pos"],
    )
    def test_remote_url_is_normalized_to_asyncpg(self, raw):
        config = resolve_storage_config(_settings(database_url=raw))
        assert config.backend == "remote"
        assert config.url.startswith("postgresql+asyncpg://u:p@db.example.com")
        assert config.database_path is None

    @pytest.mark.parametrize("raw", ["mysql://u:p@db.example.com/pos", "postgresql:///pos", "::not a url::"])
    def test_unusable_remote_url_is_configuration_error(self, raw):
        with pytest.raises(ConfigurationError):
            resolve_storage_config(_settings(database_url=raw))


class TestAppDataDir:
    def test_windows_uses_appdata(self):
        path = default_app_data_dir("win32", {"APPDATA": "C:/Users/x/AppData/Roaming", "HOME": "/h"})
        assert path == Path("C:/Users/x/AppData/Roaming") / APP_DATA_DIRNAME

    def test_macos_uses_application_support(self):
        path = default_app_data_dir("darwin", {"HOME": "/Users/x"})
        assert path == Path("/Users/x/Library/Application Support") / APP_DATA_DIRNAME

    def test_linux_prefers_xdg_config_home(self):
        assert default_app_data_dir("linux", {"HOME": "/home/x", "XDG_CONFIG_HOME": "/cfg"}) == Path("/cfg") / APP_DATA_DIRNAME
        assert default_app_data_dir("linux", {"HOME": "/home/x"}) == Path("/home/x/.config") / APP_DATA_DIRNAME


@pytest.mark.asyncio
class TestEmbeddedInit:
    async def test_creates_missing_directories_and_schema(self, tmp_path):
        db_file = tmp_path / "nested" / "dir" / EMBEDDED_DB_FILENAME
        storage = await init_storage(resolve_storage_config(_settings(database_path=str(db_file))))
        try:
            assert db_file.exists()
            async with storage.engine.connect() as conn:
                tables = await conn.run_sync(lambda c: set(inspect(c).get_table_names()))
            assert tables == set(Base.metadata.tables)
        finally:
            await storage.dispose()

    async def test_initializing_twice_keeps_existing_rows(self, tmp_path):
        config = resolve_storage_config(_settings(database_path=str(tmp_path / EMBEDDED_DB_FILENAME)))

        first = await init_storage(config)
        branch = await first.branches.insert({"name": "Central", "code": "TBR-001", "type": "branch"})
        await first.dispose()

        second = await init_storage(config)
        try:
            rows = await second.branches.list()
            assert [b.id for b in rows] == [branch.id]
        finally:
            await second.dispose()

    async def test_unwritable_location_fails_fast(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        config = resolve_storage_config(_settings(database_path=str(blocker / "pos-system.db")))
        with pytest.raises(ConfigurationError):
            await init_storage(config)
