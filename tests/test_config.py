"""
tests/test_config.py

Configuration precedence: overrides > environment > YAML file > defaults.
"""

from pathlib import Path

import pydantic
import pytest

from latch_escrow.core.exceptions import ConfigError
from latch_escrow.core.models import Role
from latch_escrow.runtime.config import DEFAULT_STATE_PATH, EscrowConfig, load_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "latch.yaml"
    path.write_text(
        "state_path: from-file.json\n"
        "log_level: info\n"
        "default_role: arbitrator\n",
        encoding="utf-8",
    )
    return path


class TestDefaults:

    def test_empty_environment(self):
        config = load_config(env={})
        assert config == EscrowConfig()
        assert config.state_path == DEFAULT_STATE_PATH
        assert config.policy_path is None
        assert config.log_level == "WARNING"
        assert config.default_role == Role.CREATOR


class TestPrecedence:

    def test_file_values(self, config_file):
        config = load_config(config_path=config_file, env={})
        assert config.state_path == Path("from-file.json")
        assert config.log_level == "INFO"
        assert config.default_role == Role.ARBITRATOR

    def test_config_path_from_env(self, config_file):
        config = load_config(env={"LATCH_CONFIG": str(config_file)})
        assert config.default_role == Role.ARBITRATOR

    def test_env_beats_file(self, config_file):
        config = load_config(
            config_path=config_file,
            env={"LATCH_STATE": "from-env.json", "LATCH_ROLE": "Counterparty"},
        )
        assert config.state_path == Path("from-env.json")
        assert config.default_role == Role.COUNTERPARTY
        assert config.log_level == "INFO"

    def test_override_beats_env(self, config_file):
        config = load_config(
            config_path=config_file,
            env={"LATCH_STATE": "from-env.json", "LATCH_LOG_LEVEL": "error"},
            state_path="from-cli.json",
            log_level=None,
        )
        assert config.state_path == Path("from-cli.json")
        assert config.log_level == "ERROR"

    def test_empty_env_value_ignored(self):
        assert load_config(env={"LATCH_POLICY": ""}).policy_path is None


class TestErrors:

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError, match="Unknown log level") as info:
            load_config(env={"LATCH_LOG_LEVEL": "chatty"})
        assert info.value.details == {"field": "log_level"}

    def test_unknown_role(self):
        with pytest.raises(ConfigError, match="Unknown role"):
            load_config(env={}, default_role="janitor")

    def test_unknown_file_key(self, tmp_path):
        path = tmp_path / "latch.yaml"
        path.write_text("colour: blue\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Unknown config keys"):
            load_config(config_path=path, env={})

    def test_unknown_override(self):
        with pytest.raises(ConfigError):
            load_config(env={}, colour="blue")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(config_path=tmp_path / "nope.yaml", env={})

    def test_file_not_a_mapping(self, tmp_path):
        path = tmp_path / "latch.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(config_path=path, env={})


class TestEscrowConfigModel:

    def test_string_fields_are_coerced(self):
        config = EscrowConfig(state_path="s.json", log_level="debug", default_role="ARBITRATOR")
        assert config.state_path == Path("s.json")
        assert config.log_level == "DEBUG"
        assert config.default_role == Role.ARBITRATOR

    def test_extra_fields_forbidden(self):
        with pytest.raises(pydantic.ValidationError):
            EscrowConfig(colour="blue")

    def test_frozen(self):
        config = EscrowConfig()
        with pytest.raises(pydantic.ValidationError):
            config.log_level = "DEBUG"
