"""Tests for configuration loading and validation."""

import pytest

from uzi_pool.config.loader import ConfigError, build_config, load_config, validate_config
from uzi_pool.config.models import Config, MiningConfig, ServerConfig, split_address
from uzi_pool.pool.constants import DEFAULT_DIFFICULTY_SCALE, DEFAULT_POLL_INTERVAL


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_from_minimal_file(tmp_path):
    config = load_config(write(tmp_path, 'node:\n  address: "127.0.0.1:8765"\n'))

    assert config.node.base_url == "http://127.0.0.1:8765"
    assert config.node.miner_token == ""
    assert config.server.listen == "0.0.0.0:8766"
    assert config.server.bind_host == "0.0.0.0"
    assert config.server.bind_port == 8766
    assert config.mining.poll_interval == 5
    assert config.mining.difficulty_scale == 0.1
    assert config.logging.level == "INFO"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "empty"),
        ("- a\n- b\n", "mapping"),
        ("node: [\n", "Invalid YAML"),
        ("server:\n  listen: '0.0.0.0:8766'\n", "node"),
        ("node:\n  address: 'localhost'\n", "node.address"),
        ("node:\n  address: 'localhost:70000'\n", "node.address"),
        ("node:\n  address: 'localhost:1'\nmining:\n  difficulty_scale: 2\n", "mining.difficulty_scale"),
        ("node:\n  address: 'localhost:1'\nlogging:\n  level: LOUD\n", "logging.level"),
    ],
)
def test_invalid_files(tmp_path, text, message):
    with pytest.raises(ConfigError, match=message):
        load_config(write(tmp_path, text))


def test_command_line_overrides_file(tmp_path):
    path = write(
        tmp_path,
        "node:\n  address: '10.0.0.1:8765'\n  miner_token: filetoken\nserver:\n  listen: '0.0.0.0:9000'\n",
    )

    config = build_config(path, node="10.0.0.2:8765", miner_token="clitoken")

    assert config.node.address == "10.0.0.2:8765"
    assert config.node.miner_token == "clitoken"
    assert config.server.listen == "0.0.0.0:9000"


def test_build_without_file():
    config = build_config(node="127.0.0.1:8765", listen="127.0.0.1:9999")

    assert isinstance(config, Config)
    assert config.server.bind_port == 9999


def test_build_requires_node():
    with pytest.raises(ConfigError, match="node.address"):
        build_config()


def test_validate_config_reports_result(tmp_path):
    ok, message = validate_config(write(tmp_path, "node:\n  address: '127.0.0.1:8765'\n"))
    assert ok
    assert "127.0.0.1:8765" in message

    ok, message = validate_config(write(tmp_path, "node: {}\n"))
    assert not ok


def test_split_address_handles_ipv6():
    assert split_address("[::1]:8766") == ("::1", 8766)


def test_privileged_port_warns():
    with pytest.warns(UserWarning, match="privileged"):
        ServerConfig(listen="0.0.0.0:80")


def test_mining_defaults_follow_pool_constants():
    mining = MiningConfig()

    assert mining.poll_interval == DEFAULT_POLL_INTERVAL
    assert mining.difficulty_scale == DEFAULT_DIFFICULTY_SCALE
