"""Tests for layered YAML configuration."""

from __future__ import annotations

import os
from pathlib import Path

import pydantic as p
import pytest

import edufam
from edufam.core.config import Secrets, Settings
from edufam.model import BulkValidationPolicy, DeploymentEnvironment


@pytest.fixture
def config_root() -> p.FileUrl:
    root = Path(os.path.dirname(edufam.__file__)).parent
    return p.FileUrl(f"file://{root}/config")


class TestSettings(object):
    """Tests for Settings assembled from config/ and env.d/."""

    def test_local_uses_base_files(self, config_root: p.FileUrl) -> None:
        settings = Settings(env=DeploymentEnvironment.Local, root=config_root, override=())

        database = settings.storage.persistent.database
        assert database.driver == "postgresql+psycopg"
        assert not database.is_sqlite
        assert settings.grading.bulk_validation is BulkValidationPolicy.RejectAll
        assert settings.web.edufam.auth.leeway_seconds == 10

    def test_environment_files_merge_over_base(self, config_root: p.FileUrl) -> None:
        settings = Settings(env=DeploymentEnvironment.Test, root=config_root, override=())

        database = settings.storage.persistent.database
        assert database.is_sqlite
        assert database.database == ":memory:"
        assert settings.logging.root.level == "WARNING"
        # keys the environment file does not mention survive from the base file
        assert settings.logging.handlers["console"].formatter == "console"

    def test_overrides_win(self, config_root: p.FileUrl) -> None:
        settings = Settings(
            env=DeploymentEnvironment.Test,
            root=config_root,
            override=("grading.bulk_validation=skip_invalid", "web.edufam.auth.leeway_seconds=30"),
        )

        assert settings.grading.bulk_validation is BulkValidationPolicy.SkipInvalid
        assert settings.web.edufam.auth.leeway_seconds == 30
        assert settings.web.edufam.auth.jwt_algorithm == "HS256"

    def test_malformed_override(self, config_root: p.FileUrl) -> None:
        with pytest.raises(ValueError):
            Settings(env=DeploymentEnvironment.Test, root=config_root, override=("grading.bulk_validation",))

    def test_override_of_unknown_section(self, config_root: p.FileUrl) -> None:
        with pytest.raises(ValueError, match="unknown section"):
            Settings(env=DeploymentEnvironment.Test, root=config_root, override=("grades.bulk_validation=reject_all",))

    def test_logging_handler_needs_known_formatter(self, config_root: p.FileUrl) -> None:
        with pytest.raises(ValueError, match="undefined formatter"):
            Settings(
                env=DeploymentEnvironment.Test,
                root=config_root,
                override=("logging.handlers.console.formatter=missing",),
            )


class TestSecrets(object):
    """Tests for Secrets."""

    def test_read_from_environment_directory(self, config_root: p.FileUrl) -> None:
        secrets = Secrets(env=DeploymentEnvironment.Test, root=config_root)

        assert secrets.auth is not None
        assert secrets.auth.jwt.get_secret_value() == "test-signing-key-not-for-production"

    def test_environment_variable_wins(self, config_root: p.FileUrl, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EDUFAM_AUTH__JWT", "from-the-environment")

        secrets = Secrets(env=DeploymentEnvironment.Test, root=config_root)

        assert secrets.auth is not None
        assert secrets.auth.jwt.get_secret_value() == "from-the-environment"
