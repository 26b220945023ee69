"""Tests for redsentinel.config -- YAML configuration loading."""

import pytest
from redsentinel.config import SentinelConfig, load_config, parse_config


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "absent.yaml")
    assert config == SentinelConfig()
    assert config.port == 26379
    assert config.timeout is None


def test_load_all_keys(tmp_path):
    path = tmp_path / "sentinel.yaml"
    path.write_text("host: 10.0.0.5\nport: 5000\ntimeout: 2\n")
    config = load_config(path)
    assert config.host == "10.0.0.5"
    assert config.port == 5000
    assert config.timeout == 2.0


def test_partial_file_keeps_defaults(tmp_path):
    path = tmp_path / "sentinel.yaml"
    path.write_text("host: sentinel-a\n")
    config = load_config(str(path))
    assert config.host == "sentinel-a"
    assert config.port == 26379


def test_unknown_keys_ignored():
    config = parse_config("host: h\nmaster_name: mymaster\n")
    assert config.host == "h"


def test_empty_document():
    assert parse_config("") == SentinelConfig()


def test_null_timeout_means_blocking():
    assert parse_config("timeout: null\n").timeout is None


def test_invalid_yaml():
    with pytest.raises(ValueError, match="Invalid YAML"):
        parse_config("host: [unclosed\n")


def test_non_mapping_document():
    with pytest.raises(ValueError, match="mapping"):
        parse_config("- a\n- b\n")


@pytest.mark.parametrize("text", ["port: '6379'\n", "port: 0\n", "port: 70000\n", "port: true\n"])
def test_bad_port(text):
    with pytest.raises(ValueError, match="port"):
        parse_config(text)


def test_bad_timeout():
    with pytest.raises(ValueError, match="timeout"):
        parse_config("timeout: -1\n")


def test_bad_host():
    with pytest.raises(ValueError, match="host"):
        parse_config("host: 12\n")
