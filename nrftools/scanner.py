"""
Preamble scanning over a demodulated bit stream.

Frames are found with a brute-force heuristic: a run of alternating bits of
suitable length (the preamble rolling into the first address bits) marks a
candidate frame start, and every candidate is parsed and CRC-checked on its
own. Most candidates fail; that is the expected outcome and is only counted.

Functions
---------
alternating_run_lengths :
    Per-position length of the alternating run ending there.
candidate_offsets :
    Positions whose alternating run length falls in the preamble window.

Classes
-------
PacketScanner :
    Parses every candidate and yields the validated packets.
"""

from collections import Counter
from typing import Iterator, Optional

import numpy as np

from .config import ReceiverConfig
from .logger import logger
from .packet import Packet, parse_packet


def alternating_run_lengths(bits) -> np.ndarray:
    """
    Counts alternating bits ending at every position.

    ``runs[i]`` is incremented from ``runs[i - 1]`` when ``bits[i]`` differs
    from ``bits[i - 1]`` and reset to 0 otherwise; ``runs[0]`` is 0.

    Parameters
    ----------
    bits : array_like
        Bit values. Shape: (N,).

    Returns
    -------
    ndarray
        Run lengths as ``int64``. Shape: (N,).
    """
    bits = np.asarray(bits)
    runs = np.zeros(bits.size, dtype=np.int64)
    if bits.size < 2:
        return runs

    toggles = bits[1:] != bits[:-1]
    count = np.cumsum(toggles, dtype=np.int64)
    # count at the most recent reset, carried forward
    base = np.maximum.accumulate(np.where(toggles, 0, count))
    runs[1:] = count - base
    return runs


def candidate_offsets(
    bits, min_run: int = 9, max_run: int = 17, margin: int = 313
) -> np.ndarray:
    """
    Finds candidate frame starts.

    Parameters
    ----------
    bits : array_like
        Bit values. Shape: (N,).
    min_run, max_run : int
        Inclusive window of alternating run lengths marking a candidate.
    margin : int
        Bits that must remain from a candidate to the end of the buffer.
        Positions beyond ``N - margin`` are not scanned.

    Returns
    -------
    ndarray
        Ascending candidate positions (all >= 1).
    """
    runs = alternating_run_lengths(bits)
    last = runs.size - margin
    if last < 1:
        return np.zeros(0, dtype=np.int64)

    window = runs[1 : last + 1]
    hits = np.flatnonzero((window >= min_run) & (window <= max_run))
    return hits + 1


class PacketScanner:
    """Scans bit streams for valid frames.

    Attributes
    ----------
    config : ReceiverConfig
        Framing parameters (address width, payload limit, preamble window).
    stats : Counter
        Candidates seen, packets found and rejections per reason over all
        scans of this instance.
    """

    def __init__(self, config: Optional[ReceiverConfig] = None):
        self.config = config if config is not None else ReceiverConfig()
        self.stats = Counter()

    def candidates(self, bits) -> np.ndarray:
        cfg = self.config
        return candidate_offsets(
            bits,
            min_run=cfg.min_preamble_run,
            max_run=cfg.max_preamble_run,
            margin=cfg.frame_margin,
        )

    def scan(self, bits) -> Iterator[Packet]:
        """
        Yields validated packets in ascending bit position.

        Overlapping windows that both validate are both yielded.

        Parameters
        ----------
        bits : array_like
            Hard-decision bits.

        Yields
        ------
        Packet
        """
        bits = np.asarray(bits, dtype=np.uint8)
        offsets = self.candidates(bits)
        logger.debug(f"Scanning {bits.size} bits: {offsets.size} candidates.")

        for offset in offsets.tolist():
            self.stats["candidates"] += 1
            result = parse_packet(
                bits,
                offset,
                address_width=self.config.address_width,
                max_payload=self.config.max_payload,
            )
            if result.ok:
                self.stats["packets"] += 1
                yield result.packet
            else:
                self.stats[result.rejection.value] += 1

        logger.debug(f"Scan statistics: {dict(self.stats)}")
