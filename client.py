"""
NSCOM01 - Machine Project 2
UDP Packet Loss Tester
Khyle Villorente and Raina Helaga

This module implements the sending side of the packet loss test.

The client performs the following steps:
    1. Parses command-line arguments to determine the destination address, packet size, count and send interval.
    2. Opens a UDP socket connected to the destination and sends the "start" handshake once, without waiting for a reply.
    3. Sends packet_count frames of random payload, one per send interval, feeding every payload into an MD5 digest.
    4. Prints the number of frames sent and the digest, which can be compared with the receiver's when it runs with -m.

The client relies on engine.py for the send loop and on config.py for defaults and option parsing.
"""

import argparse
import socket
import sys

import config
from engine import send_stream, report_lines
from protocol import Logger


def open_socket(address):
    host, port = address
    family, socktype, proto, _, sockaddr = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.connect(sockaddr)
    except OSError:
        sock.close()
        raise
    return sock


def build_parser():
    parser = argparse.ArgumentParser(
        description="UDP packet loss tester (sender). -p and -c must match on both sides."
    )
    config.add_run_arguments(parser)
    parser.add_argument(
        "--simulate-loss",
        type=float,
        default=0.0,
        metavar="RATE",
        help="[DEMO] drop this fraction of frames before sending (default: 0)"
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        cfg = config.config_from_args(args)
    except config.ConfigurationError as e:
        Logger.error(str(e))
        return 2

    for warning in cfg.range_warnings():
        Logger.warn(warning)

    try:
        with open_socket(cfg.address) as sock:
            result = send_stream(sock, cfg)
    except KeyboardInterrupt:
        Logger.info("Sender interrupted (Ctrl+C detected).")
        return 130
    except OSError as e:
        Logger.error(f"Sender Error: {e}")
        return 1

    # Partial counts are printed even when the run was aborted
    for line in report_lines(result):
        print(line)

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
