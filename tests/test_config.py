"""Tests for configuration system."""

import pytest

from pipeio.config import ConfigLoader, Config, PipeDefaults
from pipeio.errors import ConfigurationError


def test_config_loader_loads_defaults(isolated_config):
    """Test that config loader can load default configuration."""
    config = ConfigLoader().load()

    assert isinstance(config, Config)
    assert config.logging.level == "INFO"
    assert config.logging.format == "simple"
    assert config.pipe.chunk_size == 64 * 1024
    assert config.pipe.high_water_mark == 16 * 1024
    assert config.pipe.compression_level == 6


def test_explicit_file_overrides_defaults(isolated_config, tmp_path):
    """Test that an explicit file is merged over the defaults."""
    path = tmp_path / "pipeio.toml"
    path.write_text('[pipe]\nchunk_size = 1024\n\n[logging]\nlevel = "debug"\n')

    config = ConfigLoader().load(config_path=path)

    assert config.pipe.chunk_size == 1024
    assert config.pipe.high_water_mark == 16 * 1024
    assert config.logging.level == "DEBUG"


def test_user_config_file(isolated_config):
    """Test that the user config directory is read."""
    isolated_config.mkdir(parents=True)
    (isolated_config / "config.toml").write_text("[pipe]\ncompression_level = 9\n")

    config = ConfigLoader().load()

    assert config.pipe.compression_level == 9


def test_env_overrides(isolated_config, monkeypatch):
    """Test that PIPEIO_<SECTION>_<KEY> variables win over files."""
    monkeypatch.setenv("PIPEIO_PIPE_HIGH_WATER_MARK", "4096")
    monkeypatch.setenv("PIPEIO_LOGGING_FORMAT", "json")

    config = ConfigLoader().load()

    assert config.pipe.high_water_mark == 4096
    assert config.logging.format == "json"


def test_missing_config_file(isolated_config, tmp_path):
    """Test that a missing explicit file is an error."""
    with pytest.raises(ConfigurationError, match="Config file not found") as exc_info:
        ConfigLoader().load(config_path=tmp_path / "nope.toml")

    assert exc_info.value.context["path"].endswith("nope.toml")


def test_malformed_config_file(isolated_config, tmp_path):
    """Test that unparsable TOML is reported as a configuration error."""
    path = tmp_path / "broken.toml"
    path.write_text("[pipe\nchunk_size = ")

    with pytest.raises(ConfigurationError, match="Cannot read config file"):
        ConfigLoader().load(config_path=path)


def test_invalid_value(isolated_config, monkeypatch):
    """Test that out-of-range values are rejected."""
    monkeypatch.setenv("PIPEIO_PIPE_COMPRESSION_LEVEL", "12")

    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        ConfigLoader().load()


def test_unknown_key_rejected(isolated_config, tmp_path):
    """Test that misspelled keys are caught."""
    path = tmp_path / "typo.toml"
    path.write_text("[pipe]\nchunk_sise = 10\n")

    with pytest.raises(ConfigurationError):
        ConfigLoader().load(config_path=path)


def test_env_value_conversion():
    """Test environment value type conversion."""
    loader = ConfigLoader()

    assert loader._convert_env_value("yes") is True
    assert loader._convert_env_value("False") is False
    assert loader._convert_env_value("42") == 42
    assert loader._convert_env_value("1.5") == 1.5
    assert loader._convert_env_value("simple") == "simple"


def test_pipe_defaults_validation():
    """Test that invalid pipe defaults raise validation errors."""
    with pytest.raises(Exception):  # Pydantic validation error
        PipeDefaults(chunk_size=0)

    with pytest.raises(Exception):
        PipeDefaults(compression_level=10)


def test_each_load_reads_sources_again(isolated_config, monkeypatch):
    """Test that the loader keeps no cached configuration between loads."""
    loader = ConfigLoader()
    first = loader.load()

    monkeypatch.setenv("PIPEIO_PIPE_CHUNK_SIZE", "2048")
    second = loader.load()

    assert first.pipe.chunk_size == 64 * 1024
    assert second.pipe.chunk_size == 2048
