"""
End-to-end packet receiver.

Chains the receiver stages in a single forward pass over a fully loaded
recording::

    IQ samples -> soft symbols -> timing-corrected samples -> bits -> packets

Classes
-------
Receiver :
    Holds the configuration and the shared filter bank.

Functions
---------
decode_samples :
    Decodes packets from an in-memory sample array.
decode_file :
    Reads an IQ recording and decodes its packets.
"""

from typing import Iterator, List, Optional

import numpy as np

from .config import ReceiverConfig
from .demod import quadrature_demod, slice_bits
from .filtering import FilterBank
from .io import Source, read_iq
from .logger import logger
from .packet import Packet
from .scanner import PacketScanner
from .timing import MuellerMuellerLoop, TimingResult


class Receiver:
    """Demodulates and decodes recordings with a fixed configuration.

    The filter bank is designed once on construction and reused for every
    call.

    Attributes
    ----------
    config : ReceiverConfig
    filter_bank : FilterBank
    timing_loop : MuellerMuellerLoop
    last_timing : TimingResult or None
        Timing loop output of the most recent :meth:`bits` call.
    """

    def __init__(self, config: Optional[ReceiverConfig] = None):
        self.config = config if config is not None else ReceiverConfig()
        self.filter_bank = FilterBank.design(
            num_filters=self.config.num_filters,
            num_taps=self.config.num_taps,
            span=self.config.interpolator_span,
        )
        self.timing_loop = MuellerMuellerLoop.from_config(
            self.config, self.filter_bank
        )
        self.last_timing: Optional[TimingResult] = None

    def bits(self, samples, store_history: bool = False) -> np.ndarray:
        """
        Demodulates complex samples to hard bits.

        Parameters
        ----------
        samples : array_like
            Complex baseband samples.
        store_history : bool, default False
            Keep the timing loop state history in :attr:`last_timing`.

        Returns
        -------
        ndarray
            Bits as ``uint8``.
        """
        soft = quadrature_demod(samples)
        self.last_timing = self.timing_loop.run(
            soft, backend=self.config.timing_backend, store_history=store_history
        )
        return slice_bits(self.last_timing.interpolated, self.config.samples_per_symbol)

    def packets(self, bits) -> Iterator[Packet]:
        """Yields validated packets found in a bit stream."""
        scanner = PacketScanner(self.config)
        yield from scanner.scan(bits)

    def decode(self, samples, store_history: bool = False) -> List[Packet]:
        """
        Decodes all packets in a recording.

        Parameters
        ----------
        samples : array_like
            Complex baseband samples.
        store_history : bool, default False
            Keep the timing loop state history in :attr:`last_timing`.

        Returns
        -------
        list of Packet
            Packets in ascending bit position, duplicates included.
        """
        bits = self.bits(samples, store_history=store_history)
        packets = list(self.packets(bits))
        logger.info(
            f"Decoded {len(packets)} packets from {np.asarray(samples).size} samples."
        )
        return packets


def decode_samples(samples, config: Optional[ReceiverConfig] = None) -> List[Packet]:
    """
    Decodes packets from an in-memory recording.

    Parameters
    ----------
    samples : array_like
        Complex baseband samples.
    config : ReceiverConfig, optional
        Receiver parameters. Defaults to ``ReceiverConfig()``.

    Returns
    -------
    list of Packet
    """
    return Receiver(config).decode(samples)


def decode_file(
    source: Optional[Source] = None, config: Optional[ReceiverConfig] = None
) -> List[Packet]:
    """
    Reads a complete IQ recording and decodes its packets.

    Parameters
    ----------
    source : str, path-like or binary file object, optional
        Recording to read. Falls back to ``config.input_path``.
    config : ReceiverConfig, optional
        Receiver parameters. Defaults to ``ReceiverConfig()``.

    Returns
    -------
    list of Packet

    Raises
    ------
    ValueError
        If neither ``source`` nor ``config.input_path`` is given.
    OSError
        If the recording cannot be read.
    """
    if config is None:
        config = ReceiverConfig()
    if source is None:
        source = config.input_path
    if source is None:
        raise ValueError("No input given: pass a source or set config.input_path")

    samples = read_iq(source)
    return Receiver(config).decode(samples)
