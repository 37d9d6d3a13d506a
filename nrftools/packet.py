"""
Enhanced ShockBurst packet fields.

A frame following the preamble is laid out MSB-first as::

    address (3-5 bytes) | length (6) | pid (2) | no_ack (1) | payload | crc (16)

The CRC covers everything from the first address bit to the last payload
bit. Parsing and CRC recomputation both work on the same ``(bits, offset)``
window and share the field helpers of this module.

Functions
---------
read_field :
    Reads an MSB-first unsigned integer from a bit buffer.
read_bytes :
    Reads MSB-first bytes from a bit buffer.
covered_bits :
    Number of CRC-covered bits of a frame.
parse_packet :
    Extracts and validates a frame at a bit offset.
build_frame_bits :
    Encodes a packet (optionally with preamble) into bits.
format_packet :
    Renders a packet as a single output line.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Union

import numpy as np

from .config import CRC_BITS, PCF_BITS
from .crc import check_crc, crc16

LENGTH_BITS = 6
PID_BITS = 2
MAX_PAYLOAD = 32


class Rejection(Enum):
    """Reason a candidate frame was discarded."""

    TRUNCATED = "truncated"
    LENGTH = "length"
    CRC = "crc"


@dataclass(frozen=True)
class Packet:
    """A frame that passed the CRC check.

    Attributes
    ----------
    offset : int
        Bit position of the first address bit.
    address : bytes
        Address, most significant byte first.
    length : int
        Payload length in bytes.
    pid : int
        2-bit packet identity.
    no_ack : bool
        No-acknowledgement flag. Parsed for completeness only.
    payload : bytes
        Payload bytes.
    crc : int
        Received (and verified) checksum.
    """

    offset: int
    address: bytes
    length: int
    pid: int
    no_ack: bool
    payload: bytes
    crc: int

    def __str__(self) -> str:
        return format_packet(self)


class ParseResult(NamedTuple):
    """Outcome of :func:`parse_packet`; exactly one field is set."""

    packet: Optional[Packet]
    rejection: Optional[Rejection]

    @property
    def ok(self) -> bool:
        return self.packet is not None


def read_field(bits, offset: int, width: int) -> int:
    """
    Reads an unsigned integer stored MSB-first.

    Parameters
    ----------
    bits : ndarray
        Bit buffer.
    offset : int
        Position of the most significant bit.
    width : int
        Field width in bits.

    Returns
    -------
    int
    """
    value = 0
    for bit in bits[offset : offset + width].tolist():
        value = (value << 1) | bit
    return value


def read_bytes(bits, offset: int, num_bytes: int) -> bytes:
    """Reads ``num_bytes`` MSB-first bytes starting at ``offset``."""
    return np.packbits(bits[offset : offset + 8 * num_bytes]).tobytes()


def covered_bits(length: int, address_width: int = 4) -> int:
    """CRC-covered bits of a frame: address, control field and payload."""
    return 8 * address_width + PCF_BITS + 8 * length


def parse_packet(
    bits, offset: int, address_width: int = 4, max_payload: int = MAX_PAYLOAD
) -> ParseResult:
    """
    Parses and validates a frame starting at ``offset``.

    Fields are consumed in transmission order. A length above
    ``max_payload`` is rejected before any later field is read; a frame that
    would extend past the end of ``bits`` is rejected as truncated.

    Parameters
    ----------
    bits : array_like
        Hard-decision bits (0 or 1).
    offset : int
        Position of the first address bit.
    address_width : int, default 4
        Address length in bytes.
    max_payload : int, default 32
        Largest accepted payload length in bytes.

    Returns
    -------
    ParseResult
        The packet on success, otherwise the rejection reason.
    """
    bits = np.asarray(bits, dtype=np.uint8)
    if offset < 0:
        raise ValueError(f"Offset must be non-negative, got {offset}")

    pos = offset
    if pos + 8 * address_width + LENGTH_BITS > bits.size:
        return ParseResult(None, Rejection.TRUNCATED)

    address = read_bytes(bits, pos, address_width)
    pos += 8 * address_width

    length = read_field(bits, pos, LENGTH_BITS)
    pos += LENGTH_BITS
    if length > max_payload:
        return ParseResult(None, Rejection.LENGTH)

    num_covered = covered_bits(length, address_width)
    if offset + num_covered + CRC_BITS > bits.size:
        return ParseResult(None, Rejection.TRUNCATED)

    pid = read_field(bits, pos, PID_BITS)
    pos += PID_BITS

    no_ack = bool(bits[pos])
    pos += 1

    payload = read_bytes(bits, pos, length)
    pos += 8 * length

    crc = read_field(bits, pos, CRC_BITS)

    if not check_crc(bits, offset, num_covered, crc):
        return ParseResult(None, Rejection.CRC)

    packet = Packet(
        offset=offset,
        address=address,
        length=length,
        pid=pid,
        no_ack=no_ack,
        payload=payload,
        crc=crc,
    )
    return ParseResult(packet, None)


def _int_bits(value: int, width: int) -> np.ndarray:
    return np.array([(value >> (width - 1 - j)) & 1 for j in range(width)], dtype=np.uint8)


def _byte_bits(data: bytes) -> np.ndarray:
    return np.unpackbits(np.frombuffer(data, dtype=np.uint8))


def preamble_bits(first_bit: int, num_bits: int = 8) -> np.ndarray:
    """
    Alternating preamble that keeps alternating into the first address bit.

    Parameters
    ----------
    first_bit : int
        Most significant address bit.
    num_bits : int, default 8
        Preamble length.

    Returns
    -------
    ndarray
        ``uint8`` bits whose last bit differs from ``first_bit``.
    """
    last = 1 - int(first_bit)
    return np.array(
        [last if (num_bits - 1 - j) % 2 == 0 else first_bit for j in range(num_bits)],
        dtype=np.uint8,
    )


def build_frame_bits(
    address: Union[bytes, int],
    payload: bytes = b"",
    pid: int = 0,
    no_ack: bool = False,
    address_width: int = 4,
    preamble: int = 8,
) -> np.ndarray:
    """
    Encodes a packet into transmitted bits, CRC included.

    Parameters
    ----------
    address : bytes or int
        Address, most significant byte first when given as bytes.
    payload : bytes, default b""
        Payload, at most 63 bytes (the length field is 6 bits wide).
    pid : int, default 0
        2-bit packet identity.
    no_ack : bool, default False
        No-acknowledgement flag.
    address_width : int, default 4
        Address length in bytes.
    preamble : int, default 8
        Number of alternating preamble bits to prepend (0 for none).

    Returns
    -------
    ndarray
        Frame bits as ``uint8``.
    """
    if isinstance(address, int):
        address = address.to_bytes(address_width, "big")
    if len(address) != address_width:
        raise ValueError(
            f"Address must be {address_width} bytes, got {len(address)}"
        )
    if len(payload) >= 1 << LENGTH_BITS:
        raise ValueError(f"Payload too long for the length field: {len(payload)} bytes")
    if not 0 <= pid < 1 << PID_BITS:
        raise ValueError(f"PID must be in [0, 3], got {pid}")

    body = np.concatenate(
        [
            _byte_bits(address),
            _int_bits(len(payload), LENGTH_BITS),
            _int_bits(pid, PID_BITS),
            _int_bits(int(no_ack), 1),
            _byte_bits(payload),
        ]
    )
    frame = np.concatenate([body, _int_bits(crc16(body), CRC_BITS)])

    if preamble:
        frame = np.concatenate([preamble_bits(frame[0], preamble), frame])
    return frame


def format_packet(packet: Packet) -> str:
    """
    Formats a packet as ``address=<hex>,  pld=<pid>,  payload=<hex>``.

    Parameters
    ----------
    packet : Packet

    Returns
    -------
    str
    """
    return (
        f"address={packet.address.hex()},  "
        f"pld={packet.pid},  "
        f"payload={packet.payload.hex()}"
    )
