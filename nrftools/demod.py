"""
Phase demodulation and hard-decision slicing.

Functions
---------
quadrature_demod :
    Converts complex samples to sample-to-sample phase differences.
slice_bits :
    Takes one hard decision per symbol period from the interpolated stream.
"""

import numpy as np

from .logger import logger


def quadrature_demod(samples) -> np.ndarray:
    """
    Quadrature (phase-difference) demodulator.

    Output ``i`` is ``arg(conj(x[i + 1]) * x[i])``, the phase rotation
    between two consecutive samples.

    Parameters
    ----------
    samples : array_like
        Complex baseband samples. Shape: (N,).

    Returns
    -------
    ndarray
        Soft symbols in radians. Shape: (N - 1,), empty for N < 2.
    """
    samples = np.asarray(samples)
    if samples.size < 2:
        return np.zeros(0, dtype=np.float32)

    soft = np.angle(np.conj(samples[1:]) * samples[:-1])
    logger.debug(f"Demodulated {samples.size} samples to {soft.size} soft symbols.")
    return soft.astype(np.float32, copy=False)


def slice_bits(samples, sps: float) -> np.ndarray:
    """
    Hard-decision bit slicer.

    The stream is split into chunks of ``int(sps)`` samples and only the
    first sample of each chunk is kept. A sample with its sign bit clear
    (including ``+0.0``) decides a 1, anything else a 0.

    Parameters
    ----------
    samples : array_like
        Timing-corrected samples. Shape: (N,).
    sps : float
        Nominal samples per symbol.

    Returns
    -------
    ndarray
        Bits as ``uint8``. Shape: (ceil(N / int(sps)),).
    """
    step = int(sps)
    if step < 1:
        raise ValueError(f"Samples per symbol must be at least 1, got {sps}")

    decisions = np.asarray(samples)[::step]
    bits = (~np.signbit(decisions)).astype(np.uint8)
    logger.debug(f"Sliced {bits.size} bits at {step} samples/symbol.")
    return bits
