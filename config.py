"""
NSCOM01 - Machine Project 2
UDP Packet Loss Tester
Khyle Villorente and Raina Helaga

This module defines the configuration settings for the UDP packet loss tester.

The defaults below are used by both the sender (client.py) and the receiver (server.py).
A run is described by a single RunConfig value, built once from the command line and passed
to the send and receive loops in engine.py. Packet size and count must match on both sides.
"""

import argparse
import re
from dataclasses import dataclass

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000
DEFAULT_PACKET_SIZE = 1500
DEFAULT_PACKET_COUNT = 60000
DEFAULT_TIMEOUT = 5.0           # seconds, per read / write
DEFAULT_SEND_INTERVAL = 0.002   # seconds between sends

FRAME_OVERHEAD = 6              # 4 byte header + 2 byte terminator
MAX_FIELD_VALUE = 0xFFFF        # sequence number and payload length are uint16 on the wire

_DURATION_DIVISORS = {"ms": 1000.0, "s": 1.0, "m": 1 / 60.0}


class ConfigurationError(ValueError):
    """Raised when a run cannot be configured at all (bad address, unusable sizes)."""


@dataclass(frozen=True)
class RunConfig:
    address: tuple = (DEFAULT_HOST, DEFAULT_PORT)
    packet_size: int = DEFAULT_PACKET_SIZE
    packet_count: int = DEFAULT_PACKET_COUNT
    timeout: float = DEFAULT_TIMEOUT
    send_interval: float = DEFAULT_SEND_INTERVAL
    store_in_memory: bool = False
    verbose: bool = False
    simulate_loss: float = 0.0

    def __post_init__(self):
        if self.packet_size < FRAME_OVERHEAD:
            raise ConfigurationError(
                f"packet size must be at least {FRAME_OVERHEAD} bytes (got {self.packet_size})"
            )
        if self.packet_count < 0:
            raise ConfigurationError(f"packet count must not be negative (got {self.packet_count})")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive (got {self.timeout})")
        if self.send_interval < 0:
            raise ConfigurationError(f"send interval must not be negative (got {self.send_interval})")
        if not 0.0 <= self.simulate_loss <= 1.0:
            raise ConfigurationError(f"loss rate must be between 0 and 1 (got {self.simulate_loss})")

    # Number of payload bytes carried by each frame
    @property
    def payload_capacity(self) -> int:
        return self.packet_size - FRAME_OVERHEAD

    # Values that do not fit the 16-bit wire fields are only warned about, the run still proceeds.
    def range_warnings(self):
        warnings = []
        if self.packet_count > MAX_FIELD_VALUE:
            warnings.append(f"max packet count: {MAX_FIELD_VALUE} (got {self.packet_count})")
        if self.packet_size > MAX_FIELD_VALUE:
            warnings.append(f"max packet size: {MAX_FIELD_VALUE} (got {self.packet_size})")
        return warnings


def parse_duration(text) -> float:
    """
    Parse a duration such as "5s", "2ms", "1.5m" or a bare number of seconds.
    Returns the duration in seconds.
    """
    match = re.fullmatch(r"\s*(\d+(?:\.\d*)?|\.\d+)\s*(ms|s|m)?\s*", str(text))
    if not match:
        raise ConfigurationError(f"invalid duration: {text!r}")
    value, unit = match.groups()
    return float(value) / _DURATION_DIVISORS[unit or "s"]


def parse_address(text, default_host=DEFAULT_HOST):
    """
    Split "host:port" into a (host, port) tuple.
    IPv6 hosts are written in brackets, e.g. "[::1]:5000". An empty host falls back to default_host.
    """
    if not text or ":" not in text:
        raise ConfigurationError(f"address must look like host:port (got {text!r})")

    host, _, port = text.rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        host = default_host

    try:
        port_number = int(port)
    except ValueError:
        raise ConfigurationError(f"invalid port in address {text!r}") from None
    if not 0 <= port_number <= 65535:
        raise ConfigurationError(f"port out of range in address {text!r}")

    return host, port_number


# argparse type wrapper so bad durations are reported as usage errors
def _duration_arg(text):
    try:
        return parse_duration(text)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e))


# Options shared by the sender and the receiver
def add_run_arguments(parser):
    parser.add_argument(
        "address",
        help="destination address (sender) or listen address (receiver), as host:port"
    )
    parser.add_argument(
        "-p", "--packet-size",
        type=int,
        default=DEFAULT_PACKET_SIZE,
        help=f"datagram size including {FRAME_OVERHEAD} bytes of framing (default: {DEFAULT_PACKET_SIZE})"
    )
    parser.add_argument(
        "-c", "--count",
        type=int,
        default=DEFAULT_PACKET_COUNT,
        help=f"datagrams to send / receive (default: {DEFAULT_PACKET_COUNT})"
    )
    parser.add_argument(
        "-t", "--timeout",
        type=_duration_arg,
        default=DEFAULT_TIMEOUT,
        help="read and write timeout, e.g. 5s or 500ms (default: 5s)"
    )
    parser.add_argument(
        "-i", "--interval",
        type=_duration_arg,
        default=DEFAULT_SEND_INTERVAL,
        help="send interval, e.g. 2ms (default: 2ms)"
    )
    parser.add_argument(
        "-m", "--memory",
        action="store_true",
        help="store received data in memory and report its MD5 digest"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="log every frame sent or received"
    )
    return parser


def config_from_args(args, default_host=DEFAULT_HOST) -> RunConfig:
    return RunConfig(
        address=parse_address(args.address, default_host),
        packet_size=args.packet_size,
        packet_count=args.count,
        timeout=args.timeout,
        send_interval=args.interval,
        store_in_memory=args.memory,
        verbose=args.verbose,
        simulate_loss=getattr(args, "simulate_loss", 0.0),
    )
