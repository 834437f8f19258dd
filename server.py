"""
NSCOM01 - Machine Project 2
UDP Packet Loss Tester
Khyle Villorente and Raina Helaga

server.py

This module handles the receiving side of the packet loss test.
The server does the following:

    1. Binds a UDP socket to the listen address and waits, without a deadline, for the "start" handshake.
    2. Reads up to packet_count frames, each read with its own timeout; a timeout ends the run early.
    3. Validates every frame, checks it comes from the same peer as the handshake and tracks its sequence number.
    4. With -m, places every payload in a reconstruction buffer and reports the buffer's MD5 digest.
    5. Prints the number of frames received and, if short of packet_count, the loss count and percentage.

This file works together with protocol.py for frame parsing, engine.py for the receive loop,
and config.py for defaults and option parsing.
"""

import argparse
import socket
import sys

import config
from engine import receive_stream, report_lines
from protocol import Logger


def open_socket(address):
    host, port = address
    family, socktype, proto, _, sockaddr = socket.getaddrinfo(
        host, port, type=socket.SOCK_DGRAM, flags=socket.AI_PASSIVE
    )[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.bind(sockaddr)
    except OSError:
        sock.close()
        raise
    return sock


def build_parser():
    parser = argparse.ArgumentParser(
        description="UDP packet loss tester (receiver). -p and -c must match on both sides."
    )
    return config.add_run_arguments(parser)


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        cfg = config.config_from_args(args, default_host="0.0.0.0")
    except config.ConfigurationError as e:
        Logger.error(str(e))
        return 2

    for warning in cfg.range_warnings():
        Logger.warn(warning)

    try:
        with open_socket(cfg.address) as sock:
            Logger.info(f"Listening on {sock.getsockname()}")
            result = receive_stream(sock, cfg)
    except KeyboardInterrupt:
        Logger.info("Receiver interrupted (Ctrl+C detected).")
        return 130
    except OSError as e:
        Logger.error(f"Receiver Error: {e}")
        return 1

    # Partial counts are printed even when the run was aborted
    for line in report_lines(result):
        print(line)

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
