"""Settings validation and JWT secret persistence."""

import pytest
from pydantic import ValidationError

from buddy.config import SECRETS_FILENAME, Settings


def test_log_level_is_normalized():
    assert Settings(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")


def test_batch_limit_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(invite_batch_limit=0)


def test_generated_secret_is_persisted(tmp_path):
    first = Settings(data_dir=tmp_path, jwt_secret="")
    first.ensure_secrets()
    assert first.jwt_secret

    secrets_file = tmp_path / SECRETS_FILENAME
    assert secrets_file.stat().st_mode & 0o777 == 0o600

    second = Settings(data_dir=tmp_path, jwt_secret="")
    second.ensure_secrets()
    assert second.jwt_secret == first.jwt_secret


def test_configured_secret_is_not_written(tmp_path):
    configured = Settings(data_dir=tmp_path, jwt_secret="from-env")
    configured.ensure_secrets()
    assert configured.jwt_secret == "from-env"
    assert not (tmp_path / SECRETS_FILENAME).exists()
