"""
CRC-16/CCITT over bit sequences.

Frames are not byte aligned (the packet control field is 9 bits), so the
checksum is defined over bits: the register starts at ``0xFFFF`` and every
bit is shifted in MSB-first against polynomial ``0x1021``. No other CRC
variant is supported.

Functions
---------
crc16_bits :
    Bit-serial reference implementation.
crc16 :
    Table-driven implementation over the byte-aligned tail of the input.
check_crc :
    Compares the checksum of a bit range with a received value.
"""

import numpy as np

CRC16_POLY = 0x1021
CRC16_INIT = 0xFFFF
_MASK = 0xFFFF


def _shift_bit(reg: int, bit: int) -> int:
    if bit != (reg >> 15):
        return ((reg << 1) ^ CRC16_POLY) & _MASK
    return (reg << 1) & _MASK


def crc16_bits(bits, init: int = CRC16_INIT) -> int:
    """
    Computes CRC-16/CCITT one bit at a time.

    Parameters
    ----------
    bits : array_like
        Bit values (0 or 1), first transmitted bit first.
    init : int, default 0xFFFF
        Initial register value.

    Returns
    -------
    int
        16-bit checksum. ``0xFFFF`` for an empty input.
    """
    reg = init
    for bit in np.asarray(bits, dtype=np.uint8).tolist():
        reg = _shift_bit(reg, bit)
    return reg


def _make_table() -> np.ndarray:
    table = np.zeros(256, dtype=np.uint16)
    for byte in range(256):
        reg = byte << 8
        for _ in range(8):
            reg = ((reg << 1) ^ CRC16_POLY) if reg & 0x8000 else (reg << 1)
        table[byte] = reg & _MASK
    return table


_TABLE = _make_table().tolist()


def crc16(bits, init: int = CRC16_INIT) -> int:
    """
    Computes CRC-16/CCITT over a bit sequence.

    The leading ``len(bits) % 8`` bits are processed bit-serially; the rest
    is packed MSB-first into bytes and run through a 256-entry table. The
    result is identical to :func:`crc16_bits`.

    Parameters
    ----------
    bits : array_like
        Bit values (0 or 1), first transmitted bit first.
    init : int, default 0xFFFF
        Initial register value.

    Returns
    -------
    int
        16-bit checksum.
    """
    bits = np.asarray(bits, dtype=np.uint8)
    head = bits.size % 8

    reg = init
    for bit in bits[:head].tolist():
        reg = _shift_bit(reg, bit)

    for byte in np.packbits(bits[head:]).tolist():
        reg = ((reg << 8) & _MASK) ^ _TABLE[(reg >> 8) ^ byte]
    return reg


def check_crc(bits, offset: int, num_bits: int, expected: int) -> bool:
    """
    Checks the CRC of ``bits[offset:offset + num_bits]`` against ``expected``.

    Parameters
    ----------
    bits : array_like
        Bit buffer.
    offset : int
        First covered bit.
    num_bits : int
        Number of covered bits.
    expected : int
        Received checksum.

    Returns
    -------
    bool
    """
    return crc16(bits[offset : offset + num_bits]) == expected
