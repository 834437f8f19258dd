import argparse

import pytest

import config
from config import ConfigurationError, RunConfig, parse_address, parse_duration


@pytest.mark.parametrize("text, seconds", [
    ("5s", 5.0),
    ("2ms", 0.002),
    ("1.5m", 90.0),
    ("0.25", 0.25),
    ("0", 0.0),
])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "fast", "5h", "-1s"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ConfigurationError):
        parse_duration(text)


@pytest.mark.parametrize("text, expected", [
    ("10.0.0.2:9000", ("10.0.0.2", 9000)),
    ("localhost:5000", ("localhost", 5000)),
    ("[::1]:5000", ("::1", 5000)),
    (":7000", ("127.0.0.1", 7000)),
])
def test_parse_address(text, expected):
    assert parse_address(text) == expected


def test_parse_address_uses_given_default_host():
    assert parse_address(":7000", default_host="0.0.0.0") == ("0.0.0.0", 7000)


@pytest.mark.parametrize("text", ["", "localhost", "host:port", "host:70000"])
def test_parse_address_rejects_bad_input(text):
    with pytest.raises(ConfigurationError):
        parse_address(text)


def test_defaults_match_reference_tool():
    cfg = RunConfig()

    assert cfg.packet_size == 1500
    assert cfg.packet_count == 60000
    assert cfg.timeout == 5.0
    assert cfg.send_interval == 0.002
    assert cfg.store_in_memory is False
    assert cfg.payload_capacity == 1494
    assert cfg.range_warnings() == []


def test_config_is_immutable():
    cfg = RunConfig()

    with pytest.raises(AttributeError):
        cfg.packet_count = 1


def test_oversized_values_only_warn():
    cfg = RunConfig(packet_size=70000, packet_count=70000)

    assert cfg.range_warnings() == [
        "max packet count: 65535 (got 70000)",
        "max packet size: 65535 (got 70000)",
    ]


@pytest.mark.parametrize("kwargs", [
    {"packet_size": 5},
    {"packet_count": -1},
    {"timeout": 0},
    {"send_interval": -0.1},
    {"simulate_loss": 1.5},
])
def test_unusable_values_are_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        RunConfig(**kwargs)


def test_config_from_args():
    parser = config.add_run_arguments(argparse.ArgumentParser())
    args = parser.parse_args(["192.168.1.4:6000", "-p", "512", "-c", "50", "-t", "250ms", "-i", "1ms", "-m"])

    cfg = config.config_from_args(args)

    assert cfg == RunConfig(
        address=("192.168.1.4", 6000),
        packet_size=512,
        packet_count=50,
        timeout=0.25,
        send_interval=0.001,
        store_in_memory=True,
    )


def test_bad_duration_is_a_usage_error():
    parser = config.add_run_arguments(argparse.ArgumentParser())

    with pytest.raises(SystemExit):
        parser.parse_args(["127.0.0.1:5000", "-t", "soon"])
