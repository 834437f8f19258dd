import struct

import pytest

from protocol import (
    Frame, FramingError, ContractViolation, ErrorCode, TERMINATOR,
    decode_frame, encode_frame
)


def test_encode_layout_is_little_endian_with_terminator():
    assert encode_frame(0x0102, b"ab") == b"\x02\x01\x02\x00ab\r\n"


@pytest.mark.parametrize("length", [0, 1, 100, 1494])
def test_decode_returns_what_was_encoded(length):
    payload = bytes(range(256)) * 6
    payload = payload[:length]

    frame = decode_frame(encode_frame(42, payload, packet_size=1500))

    assert frame.sequence_number == 42
    assert bytes(frame.payload) == payload


def test_decoded_payload_is_a_view_into_the_datagram():
    data = encode_frame(7, b"hello")

    frame = decode_frame(data)

    assert isinstance(frame.payload, memoryview)
    assert frame.payload.obj is data


@pytest.mark.parametrize("size", range(Frame.OVERHEAD))
def test_frames_shorter_than_overhead_are_rejected(size):
    with pytest.raises(FramingError):
        decode_frame(b"\x01\x00\x00\x00\r\n"[:size])


def test_empty_payload_frame_is_valid():
    frame = decode_frame(b"\x05\x00\x00\x00\r\n")

    assert frame.sequence_number == 5
    assert bytes(frame.payload) == b""


def test_declared_length_larger_than_payload_is_rejected():
    data = struct.pack("<HH", 1, 10) + b"abc" + TERMINATOR

    with pytest.raises(FramingError):
        decode_frame(data)


def test_trailing_garbage_is_rejected():
    data = encode_frame(1, b"abc") + b"x"

    with pytest.raises(FramingError):
        decode_frame(data)


@pytest.mark.parametrize("terminator", [b"\n\r", b"\r\r", b"\x00\x00"])
def test_altered_terminator_is_rejected(terminator):
    data = encode_frame(3, b"payload")[:-2] + terminator

    with pytest.raises(FramingError) as excinfo:
        decode_frame(data)
    assert excinfo.value.code == ErrorCode.FRAMING_ERROR


def test_payload_longer_than_packet_capacity_breaks_contract():
    with pytest.raises(ContractViolation):
        encode_frame(1, b"x" * 11, packet_size=16)


def test_sequence_number_must_fit_16_bits():
    with pytest.raises(ContractViolation):
        encode_frame(0x10000, b"")


def test_log_str_mentions_sequence_and_size():
    assert Frame(5, b"abcd").log_str() == "[SEQ: 00005 | DATA] -> Content: 4 bytes"
