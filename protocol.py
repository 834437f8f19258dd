"""
NSCOM01 - Machine Project 2
UDP Packet Loss Tester
Khyle Villorente and Raina Helaga

This module defines the frame structure and packing/unpacking logic for
the packet loss test protocol.

This module includes the following:
    1. Wire constants: the handshake token, the frame terminator and the header layout.
    2. ErrorCode and the LossTestError hierarchy: the fatal error kinds a run can end with.
    3. Colors and Logger: coloured console output shared by the sender and the receiver.
    4. Frame: the main class representing one datagram on the wire, with methods for packing and unpacking.
    5. encode_frame / decode_frame: helper functions used by the send and receive loops.

Wire format (little-endian):
    offset 0..2           sequence number (uint16)
    offset 2..4           payload length  (uint16)
    offset 4..4+len       payload bytes
    offset 4+len..+2      terminator b"\\r\\n"
"""

# Python Library imports
import struct
import sys

HANDSHAKE_TOKEN = b"start"
TERMINATOR = b"\r\n"


class ErrorCode:
    FRAMING_ERROR = 1       # Frame too short, length field mismatch or bad terminator
    HANDSHAKE_MISMATCH = 2  # First datagram was not the handshake token
    PEER_CHANGED = 3        # A datagram arrived from a different address than the first one


class LossTestError(Exception):
    """Base class for fatal protocol errors. Each subclass carries an ErrorCode."""
    code = 0


class FramingError(LossTestError):
    code = ErrorCode.FRAMING_ERROR


class HandshakeMismatch(LossTestError):
    code = ErrorCode.HANDSHAKE_MISMATCH


class PeerChanged(LossTestError):
    code = ErrorCode.PEER_CHANGED


class ContractViolation(RuntimeError):
    """Raised when the caller breaks the encoder's contract (payload too long, field overflow)."""


class Colors:
    BLUE = '\033[94m'    # Outgoing
    GREEN = '\033[92m'   # Incoming
    YELLOW = '\033[93m'  # Warning
    RED = '\033[91m'     # Error
    CYAN = '\033[96m'    # System/Handshake
    MAGENTA = '\033[95m' # Demo simulation alerts
    RESET = '\033[0m'


class Logger:
    @staticmethod
    def sent(frame):
        """Standard format for outgoing frames"""
        print(f"{Colors.BLUE}<-- Sent:     {frame.log_str()}{Colors.RESET}")

    @staticmethod
    def received(frame):
        """Standard format for incoming frames"""
        print(f"{Colors.GREEN}--> Received: {frame.log_str()}{Colors.RESET}")

    @staticmethod
    def info(msg):
        print(f"{Colors.CYAN}[INFO] {msg}{Colors.RESET}")

    @staticmethod
    def demo(msg):
        print(f"{Colors.MAGENTA}[DEMO] {msg}{Colors.RESET}")

    @staticmethod
    def warn(msg):
        print(f"{Colors.YELLOW}[WARN] {msg}{Colors.RESET}")

    @staticmethod
    def error(msg):
        print(f"{Colors.RED}[FAIL] {msg}{Colors.RESET}", file=sys.stderr)


class Frame:
    # Header Format: < - Little-endian
    #                H - Sequence Number (2 bytes)
    #                H - Payload Length (2 bytes)
    HEADER_FORMAT = "<HH"
    HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
    OVERHEAD = HEADER_SIZE + len(TERMINATOR)
    MAX_FIELD = 0xFFFF

    def __init__(self, sequence_number, payload=b""):
        self.sequence_number = sequence_number
        self.payload = payload

    # Pack the frame into bytes for transmission
    def pack(self):
        if not 0 <= self.sequence_number <= self.MAX_FIELD:
            raise ContractViolation(f"sequence number {self.sequence_number} does not fit 16 bits")
        if len(self.payload) > self.MAX_FIELD:
            raise ContractViolation(f"payload of {len(self.payload)} bytes does not fit 16 bits")

        header = struct.pack(self.HEADER_FORMAT, self.sequence_number, len(self.payload))
        return b"".join((header, self.payload, TERMINATOR))

    # Unpack bytes into a Frame, validating the length field and the terminator.
    # The payload is a memoryview into data, nothing is copied.
    @classmethod
    def unpack(cls, data):
        if len(data) < cls.OVERHEAD:
            raise FramingError(f"too few bytes received: {len(data)} < {cls.OVERHEAD}")

        sequence_number, payload_length = struct.unpack_from(cls.HEADER_FORMAT, data)
        if len(data) - cls.OVERHEAD != payload_length:
            raise FramingError(
                f"declared payload length {payload_length} does not match received {len(data) - cls.OVERHEAD}"
            )

        view = memoryview(data)
        if view[-len(TERMINATOR):] != TERMINATOR:
            raise FramingError(f"unexpected frame end: {bytes(view[-len(TERMINATOR):])!r}")

        return cls(sequence_number, view[cls.HEADER_SIZE:cls.HEADER_SIZE + payload_length])

    # String representation for debugging purposes
    def __str__(self):
        return f"Frame SeqNum: {self.sequence_number} | Size: {len(self.payload)}"

    def log_str(self):
        # Format: [SEQ: 00005 | DATA] -> Content: 1494 bytes
        return f"[SEQ: {self.sequence_number:05} | DATA] -> Content: {len(self.payload)} bytes"


def encode_frame(sequence_number, payload, packet_size=None):
    """
    Build the wire bytes for one frame.
    When packet_size is given the payload must fit in packet_size - 6 bytes.
    """
    if packet_size is not None and len(payload) > packet_size - Frame.OVERHEAD:
        raise ContractViolation(
            f"payload too long: {len(payload)} > {packet_size - Frame.OVERHEAD}"
        )
    return Frame(sequence_number, payload).pack()


def decode_frame(data):
    return Frame.unpack(data)
