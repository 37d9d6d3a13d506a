"""
IQ sample file I/O.

This module reads and writes raw interleaved complex recordings as produced
by ``uhd_rx_cfile`` and GNU Radio file sinks: each sample is a little-endian
float32 in-phase value followed by a little-endian float32 quadrature value.

Functions
---------
read_iq :
    Loads a complete recording into a ``complex64`` array.
write_iq :
    Stores a sample array in the same interleaved format.
"""

from os import PathLike
from typing import BinaryIO, Union

import numpy as np

from .logger import logger

# Interleaved little-endian float32 I/Q
IQ_DTYPE = np.dtype("<c8")

Source = Union[str, PathLike, BinaryIO]


def read_iq(source: Source) -> np.ndarray:
    """
    Reads an interleaved complex float32 recording into memory.

    Reading stops at end-of-file. A trailing partial sample (fewer than 8
    bytes) is dropped, as it would be by a reader that stops at the first
    short read.

    Parameters
    ----------
    source : str, path-like or binary file object
        File to read. File objects are read from their current position.

    Returns
    -------
    ndarray
        Samples as ``complex64``. Shape: (N,).

    Raises
    ------
    OSError
        If the file cannot be opened or read.
    """
    if hasattr(source, "read"):
        data = source.read()
    else:
        with open(source, "rb") as f:
            data = f.read()

    num_samples = len(data) // IQ_DTYPE.itemsize
    dropped = len(data) - num_samples * IQ_DTYPE.itemsize
    if dropped:
        logger.debug(f"Dropping {dropped} trailing bytes (partial sample).")

    samples = np.frombuffer(data, dtype=IQ_DTYPE, count=num_samples)
    logger.debug(f"Read {num_samples} IQ samples.")
    return samples.astype(np.complex64)


def write_iq(target: Source, samples: np.ndarray) -> int:
    """
    Writes samples as interleaved little-endian complex float32.

    Parameters
    ----------
    target : str, path-like or binary file object
        Destination file.
    samples : array_like
        Complex samples. Real input is written with a zero quadrature part.

    Returns
    -------
    int
        Number of samples written.
    """
    data = np.asarray(samples).astype(IQ_DTYPE).tobytes()

    if hasattr(target, "write"):
        target.write(data)
    else:
        with open(target, "wb") as f:
            f.write(data)

    num_samples = len(data) // IQ_DTYPE.itemsize
    logger.debug(f"Wrote {num_samples} IQ samples.")
    return num_samples
