"""
nrftools: An Enhanced ShockBurst (nRF24) packet receiver.

This package provides tools for:
- Reading raw IQ recordings.
- Quadrature demodulation and Muller & Mueller symbol timing recovery.
- Scanning demodulated bits for frames and validating their CRC.
- Building reference frames and plotting receiver diagnostics.
"""

from . import crc, demod, filtering, packet, scanner, timing
from .config import ReceiverConfig
from .io import read_iq, write_iq
from .logger import set_log_level
from .packet import Packet, Rejection, build_frame_bits, parse_packet
from .receiver import Receiver, decode_file, decode_samples
from .scanner import PacketScanner
from .timing import MuellerMuellerLoop, TimingResult, TimingState

__all__ = [
    "Packet",
    "PacketScanner",
    "Receiver",
    "ReceiverConfig",
    "Rejection",
    "MuellerMuellerLoop",
    "TimingResult",
    "TimingState",
    "build_frame_bits",
    "parse_packet",
    "decode_file",
    "decode_samples",
    "read_iq",
    "write_iq",
    "crc",
    "demod",
    "filtering",
    "packet",
    "scanner",
    "timing",
    "set_log_level",
]
