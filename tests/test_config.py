"""Tests for RecoveryConfig -- configuration and settings module.

All tests use real files in temporary directories, real environment
variables, and real config.json files.
"""

import json
import logging
import os
from pathlib import Path

import pytest

from account_recovery.config import (
    CONFIG_FILE_NAME,
    DEFAULT_GATEWAY_BASE_URL,
    DEFAULT_REDIRECT_DELAY_SECONDS,
    DEFAULT_STORAGE_DIR_NAME,
    ENV_PREFIX,
    RecoveryConfig,
    _load_config_file,
    _load_env_overrides,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    """A temporary project directory."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture()
def config_file(project_dir: Path) -> Path:
    """Create a config.json inside the project's .account-recovery/ directory."""
    storage = project_dir / DEFAULT_STORAGE_DIR_NAME
    storage.mkdir()
    config_path = storage / CONFIG_FILE_NAME
    config_path.write_text(
        json.dumps(
            {
                "log_level": "DEBUG",
                "gateway_base_url": "https://id.example.com",
                "redirect_delay_seconds": 3,
                "token_ttl_seconds": 600,
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    return config_path


@pytest.fixture(autouse=True)
def clean_env():
    """Remove all ACCOUNT_RECOVERY_* env vars before and after each test."""
    saved = {k: os.environ.pop(k) for k in list(os.environ) if k.startswith(ENV_PREFIX)}
    yield
    for k in list(os.environ.keys()):
        if k.startswith(ENV_PREFIX):
            del os.environ[k]
    os.environ.update(saved)


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------


class TestDefaultConstruction:
    def test_defaults(self, tmp_path: Path) -> None:
        config = RecoveryConfig(project_root=str(tmp_path))
        assert config.log_level == "INFO"
        assert config.gateway_base_url == DEFAULT_GATEWAY_BASE_URL
        assert config.gateway_timeout is None
        assert config.redirect_delay_seconds == DEFAULT_REDIRECT_DELAY_SECONDS
        assert config.token_ttl_seconds is None

    def test_storage_path_derived_from_project_root(self, tmp_path: Path) -> None:
        config = RecoveryConfig(project_root=str(tmp_path))
        expected = str(tmp_path.resolve() / DEFAULT_STORAGE_DIR_NAME)
        assert config.storage_path == expected

    def test_explicit_storage_path_resolved(self, tmp_path: Path) -> None:
        config = RecoveryConfig(project_root=str(tmp_path), storage_path=str(tmp_path / "s"))
        assert Path(config.storage_path).is_absolute()
        assert config.storage_path.endswith("s")


class TestValidation:
    def test_log_level_normalised(self, tmp_path: Path) -> None:
        config = RecoveryConfig(project_root=str(tmp_path), log_level=" debug ")
        assert config.log_level == "DEBUG"

    def test_invalid_log_level(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            RecoveryConfig(project_root=str(tmp_path), log_level="LOUD")

    def test_base_url_trailing_slash_stripped(self, tmp_path: Path) -> None:
        config = RecoveryConfig(project_root=str(tmp_path), gateway_base_url="http://x/")
        assert config.gateway_base_url == "http://x"

    def test_timeout_must_be_positive(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            RecoveryConfig(project_root=str(tmp_path), gateway_timeout=0)

    def test_negative_redirect_delay_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            RecoveryConfig(project_root=str(tmp_path), redirect_delay_seconds=-1)

    def test_token_ttl_must_be_positive(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            RecoveryConfig(project_root=str(tmp_path), token_ttl_seconds=0)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    def test_load_without_file_uses_defaults(self, project_dir: Path) -> None:
        config = RecoveryConfig.load(str(project_dir))
        assert config.project_root == str(project_dir.resolve())
        assert config.gateway_base_url == DEFAULT_GATEWAY_BASE_URL

    def test_load_reads_config_file(self, project_dir: Path, config_file: Path) -> None:
        config = RecoveryConfig.load(str(project_dir))
        assert config.log_level == "DEBUG"
        assert config.gateway_base_url == "https://id.example.com"
        assert config.redirect_delay_seconds == 3
        assert config.token_ttl_seconds == 600

    def test_env_overrides_file(self, project_dir: Path, config_file: Path) -> None:
        os.environ[f"{ENV_PREFIX}GATEWAY_BASE_URL"] = "http://env.example.com"
        os.environ[f"{ENV_PREFIX}TOKEN_TTL_SECONDS"] = "60"
        config = RecoveryConfig.load(str(project_dir))
        assert config.gateway_base_url == "http://env.example.com"
        assert config.token_ttl_seconds == 60
        assert config.log_level == "DEBUG"

    def test_defaults_to_cwd(self, project_dir: Path, monkeypatch) -> None:
        monkeypatch.chdir(project_dir)
        config = RecoveryConfig.load()
        assert config.storage_path == str(project_dir.resolve() / DEFAULT_STORAGE_DIR_NAME)

    def test_explicit_storage_path_reads_its_config(self, tmp_path: Path) -> None:
        storage = tmp_path / "custom"
        storage.mkdir()
        (storage / CONFIG_FILE_NAME).write_text(
            json.dumps({"gateway_timeout": 5, "storage_path": "/elsewhere"}),
            encoding="utf-8",
        )
        config = RecoveryConfig.load(str(tmp_path), storage_path=str(storage))
        assert config.gateway_timeout == 5
        assert config.storage_path == str(storage.resolve())

    def test_explicit_storage_path_beats_env(self, tmp_path: Path) -> None:
        os.environ[f"{ENV_PREFIX}STORAGE_PATH"] = str(tmp_path / "from-env")
        config = RecoveryConfig.load(str(tmp_path), storage_path=str(tmp_path / "cli"))
        assert config.storage_path == str((tmp_path / "cli").resolve())

    def test_env_storage_path_locates_config_file(self, tmp_path: Path) -> None:
        storage = tmp_path / "from-env"
        storage.mkdir()
        (storage / CONFIG_FILE_NAME).write_text(
            json.dumps({"log_level": "ERROR"}), encoding="utf-8"
        )
        os.environ[f"{ENV_PREFIX}STORAGE_PATH"] = str(storage)
        config = RecoveryConfig.load(str(tmp_path))
        assert config.log_level == "ERROR"


class TestLoadConfigFile:
    def test_missing_file(self, project_dir: Path) -> None:
        assert _load_config_file(str(project_dir / DEFAULT_STORAGE_DIR_NAME)) == {}

    def test_invalid_json_ignored(self, project_dir: Path) -> None:
        storage = project_dir / DEFAULT_STORAGE_DIR_NAME
        storage.mkdir()
        (storage / CONFIG_FILE_NAME).write_text("{broken", encoding="utf-8")
        assert _load_config_file(str(storage)) == {}

    def test_non_object_ignored(self, project_dir: Path) -> None:
        storage = project_dir / DEFAULT_STORAGE_DIR_NAME
        storage.mkdir()
        (storage / CONFIG_FILE_NAME).write_text("[1]", encoding="utf-8")
        assert _load_config_file(str(storage)) == {}


class TestEnvOverrides:
    def test_no_env(self) -> None:
        assert _load_env_overrides() == {}

    def test_string_values(self) -> None:
        os.environ[f"{ENV_PREFIX}LOG_LEVEL"] = "warning"
        os.environ[f"{ENV_PREFIX}STORAGE_PATH"] = "/tmp/recovery"
        overrides = _load_env_overrides()
        assert overrides["log_level"] == "warning"
        assert overrides["storage_path"] == "/tmp/recovery"

    def test_numeric_values(self) -> None:
        os.environ[f"{ENV_PREFIX}GATEWAY_TIMEOUT"] = "2.5"
        os.environ[f"{ENV_PREFIX}REDIRECT_DELAY_SECONDS"] = "0"
        overrides = _load_env_overrides()
        assert overrides["gateway_timeout"] == 2.5
        assert overrides["redirect_delay_seconds"] == 0.0

    def test_invalid_numbers_ignored(self) -> None:
        os.environ[f"{ENV_PREFIX}GATEWAY_TIMEOUT"] = "soon"
        os.environ[f"{ENV_PREFIX}TOKEN_TTL_SECONDS"] = "1.5"
        assert _load_env_overrides() == {}


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_sets_level_and_single_handler(self, tmp_path: Path) -> None:
        pkg_logger = logging.getLogger("account_recovery")
        saved_handlers = list(pkg_logger.handlers)
        saved_level = pkg_logger.level
        pkg_logger.handlers.clear()
        try:
            config = RecoveryConfig(project_root=str(tmp_path), log_level="DEBUG")
            config.configure_logging()
            config.configure_logging()
            assert pkg_logger.level == logging.DEBUG
            assert len(pkg_logger.handlers) == 1
        finally:
            pkg_logger.handlers[:] = saved_handlers
            pkg_logger.setLevel(saved_level)
