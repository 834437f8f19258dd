"""
NSCOM01 - Machine Project 2
UDP Packet Loss Tester
Khyle Villorente and Raina Helaga

This module implements the core logic of the packet loss test, including:
    1. SequenceTracker: remembers the last sequence number seen and counts ordering anomalies.
    2. ReconstructionBuffer: places every received payload at the offset derived from its sequence number.
    3. ChecksumAccumulator: running MD5 digest over payload bytes.
    4. IntervalTicker: periodic timer gating every send.
    5. send_stream: the sender loop, handshake followed by packet_count framed datagrams.
    6. receive_stream: the receiver loop, handshake gated and bounded by a fresh deadline per read.
    7. report_lines: the human readable summary printed at the end of a run.

The functions in this module are used by both the Client (sender) and Server (receiver) modules.
Neither loop terminates the process: fatal errors are returned in RunResult.error and the
entry points decide what to do with them.
The module relies on the Frame class and related constants defined in protocol.py, and on RunConfig from config.py.
"""

# Python Library imports
import hashlib
import os
import random
import socket
import time
from dataclasses import dataclass
from typing import Optional

# Local imports
from protocol import (
    Frame, Logger, HANDSHAKE_TOKEN,
    LossTestError, HandshakeMismatch, PeerChanged, FramingError, ContractViolation,
    decode_frame, encode_frame
)


class RunState:
    WAIT_HANDSHAKE = "WAIT_HANDSHAKE"
    SENDING = "SENDING"
    RECEIVING = "RECEIVING"
    TIMED_OUT = "TIMED_OUT"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"


class SequenceTracker:
    def __init__(self):
        self.last_sequence = 0      # 0 means nothing seen yet
        self.received_count = 0
        self.anomalies = 0

    def observe(self, sequence_number) -> bool:
        """
        Account for one accepted frame. Returns False when the frame arrived out of order.
        Out of order frames are reported, never dropped.
        """
        in_order = sequence_number > self.last_sequence
        if not in_order:
            self.anomalies += 1
            Logger.warn(f"wrong packet order: prev no: {self.last_sequence}, cur no: {sequence_number}")

        self.last_sequence = sequence_number
        self.received_count += 1
        return in_order


class ChecksumAccumulator:
    def __init__(self):
        self._md5 = hashlib.md5()

    def update(self, data):
        self._md5.update(data)

    def hexdigest(self):
        return self._md5.hexdigest()


class ReconstructionBuffer:
    """
    Memory region of payload_capacity * packet_count bytes, allocated on the first store.
    The payload of sequence k is written at offset (k - 1) * payload_capacity, so frames may
    arrive in any order. Missing payloads stay zero-filled, which makes the digest only
    comparable with the sender's when nothing was lost.
    """

    def __init__(self, payload_capacity, packet_count):
        self.payload_capacity = payload_capacity
        self.packet_count = packet_count
        self._data = None

    @property
    def size(self):
        return self.payload_capacity * self.packet_count

    def offset_for(self, sequence_number):
        return (sequence_number - 1) * self.payload_capacity

    def store(self, sequence_number, payload):
        if not 1 <= sequence_number <= self.packet_count:
            raise FramingError(
                f"sequence number {sequence_number} outside of 1..{self.packet_count}"
            )
        if len(payload) > self.payload_capacity:
            raise FramingError(
                f"payload of {len(payload)} bytes exceeds capacity {self.payload_capacity}"
            )

        if self._data is None:
            self._data = bytearray(self.size)

        offset = self.offset_for(sequence_number)
        self._data[offset:offset + len(payload)] = payload

    def view(self):
        if self._data is None:
            return memoryview(b"")
        return memoryview(self._data)

    def checksum(self):
        accumulator = ChecksumAccumulator()
        if self._data is not None:
            accumulator.update(self._data)
            return accumulator.hexdigest()

        # Nothing stored: digest the zero-filled region one payload at a time instead of allocating it
        zeros = bytes(self.payload_capacity)
        for _ in range(self.packet_count):
            accumulator.update(zeros)
        return accumulator.hexdigest()


class IntervalTicker:
    """
    Periodic timer. wait() blocks until the next tick; ticks missed while the caller was busy are
    skipped rather than fired back to back.
    """

    def __init__(self, interval, clock=time.monotonic, sleep=time.sleep):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._next_tick = clock() + interval

    def wait(self):
        now = self._clock()
        if now < self._next_tick:
            self._sleep(self._next_tick - now)
            self._next_tick += self.interval
        else:
            missed = int((now - self._next_tick) // self.interval) + 1 if self.interval > 0 else 1
            self._next_tick += missed * self.interval


@dataclass
class RunResult:
    role: str
    configured_count: int
    state: str = RunState.WAIT_HANDSHAKE
    sent_count: int = 0
    dropped_count: int = 0
    received_count: int = 0
    anomalies: int = 0
    digest: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self):
        return self.error is None

    @property
    def lost(self):
        return self.configured_count - self.received_count

    @property
    def loss_percent(self):
        if self.configured_count == 0:
            return 0.0
        return self.lost / self.configured_count * 100


# Function to run the sender side: handshake, then packet_count frames of random payload.
# A failed send ends the run; the error and the partial counts are returned in the result.
def send_stream(sock, cfg, rng=None):
    rng = rng or random
    result = RunResult(role="sender", configured_count=cfg.packet_count, state=RunState.SENDING)
    checksum = ChecksumAccumulator()

    try:
        sock.settimeout(cfg.timeout)

        # The handshake is fire-and-forget, nothing is awaited from the receiver.
        sock.send(HANDSHAKE_TOKEN)
        Logger.info(f"Sent start command to {cfg.address}")

        ticker = IntervalTicker(cfg.send_interval)
        for sequence_number in range(1, cfg.packet_count + 1):
            ticker.wait()

            payload = os.urandom(cfg.payload_capacity)
            checksum.update(payload)
            data = encode_frame(sequence_number, payload, cfg.packet_size)

            if cfg.simulate_loss and rng.random() < cfg.simulate_loss:
                Logger.demo(f"Dropping Frame Seq {sequence_number}...")
                result.dropped_count += 1
                continue

            sock.send(data)
            result.sent_count += 1
            if cfg.verbose:
                Logger.sent(Frame(sequence_number, payload))

    except (OSError, ContractViolation) as e:
        Logger.error(f"Sender Error: {e}")
        result.error = e
        result.state = RunState.ABORTED
        return result

    result.digest = checksum.hexdigest()
    result.state = RunState.COMPLETED
    return result


# Waits for the handshake token and returns the address it came from.
def wait_for_handshake(sock):
    sock.settimeout(None)
    data, peer = sock.recvfrom(len(HANDSHAKE_TOKEN))
    if data != HANDSHAKE_TOKEN:
        raise HandshakeMismatch(f"unexpected first bytes: {data!r}")
    return peer


# Function to run the receiver side. A read timeout ends the run early; protocol errors and other
# socket errors abort it. Either way the partial counts are returned in the result.
def receive_stream(sock, cfg):
    result = RunResult(role="receiver", configured_count=cfg.packet_count)
    tracker = SequenceTracker()
    buffer = ReconstructionBuffer(cfg.payload_capacity, cfg.packet_count) if cfg.store_in_memory else None

    Logger.info("waiting for incoming connection")
    try:
        peer = wait_for_handshake(sock)
        Logger.info(f"received start command from {peer}")
        result.state = RunState.RECEIVING

        for _ in range(cfg.packet_count):
            # Fresh deadline for every read
            sock.settimeout(cfg.timeout)
            try:
                data, sender_addr = sock.recvfrom(cfg.packet_size)
            except socket.timeout:
                Logger.warn(f"no data within {cfg.timeout}s, stopping")
                result.state = RunState.TIMED_OUT
                break

            frame = decode_frame(data)
            if sender_addr != peer:
                raise PeerChanged(f"remote address changed: {peer} -> {sender_addr}")
            if cfg.verbose:
                Logger.received(frame)

            tracker.observe(frame.sequence_number)
            if buffer is not None:
                buffer.store(frame.sequence_number, frame.payload)
        else:
            result.state = RunState.COMPLETED

    except (LossTestError, OSError) as e:
        Logger.error(f"Receiver Error: {e}")
        result.error = e
        result.state = RunState.ABORTED

    result.received_count = tracker.received_count
    result.anomalies = tracker.anomalies
    if buffer is not None and result.ok:
        result.digest = buffer.checksum()
    return result


# Summary lines printed at the end of a run
def report_lines(result):
    lines = []
    if result.role == "sender":
        lines.append(f"total packets sent: {result.sent_count}")
        if result.dropped_count:
            lines.append(f"simulated drops: {result.dropped_count}")
    else:
        lines.append(f"total packets received: {result.received_count}")
        if result.received_count < result.configured_count:
            lines.append(f"packet loss: {result.lost} ({result.loss_percent:.2f}%)")
        if result.anomalies:
            lines.append(f"out of order packets: {result.anomalies}")

    if result.digest is not None:
        lines.append(result.digest)
    return lines
