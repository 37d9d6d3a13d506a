"""
Fractional-delay interpolation filters.

This module designs the sinc interpolation filters used by the symbol timing
loop to resample the soft-symbol stream between sample instants.

Functions
---------
sinc :
    Normalized sinc, ``sin(pi x) / (pi x)`` with ``sinc(0) == 1``.

Classes
-------
SincFilter :
    A single fractional-delay FIR filter.
FilterBank :
    A precomputed, read-only table of SincFilters over a range of offsets.
"""

from dataclasses import dataclass
from typing import Iterator

import numpy as np

from .logger import logger


def sinc(x):
    """
    Normalized sinc function.

    Parameters
    ----------
    x : float or array_like
        Argument in samples.

    Returns
    -------
    float or ndarray
        ``sin(pi x) / (pi x)``, and exactly ``1.0`` at ``x == 0``.
    """
    return np.sinc(x)


def _read_only(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=np.float64)
    a.setflags(write=False)
    return a


@dataclass(frozen=True)
class SincFilter:
    """Fractional-delay interpolation filter.

    Attributes
    ----------
    taps : ndarray
        Filter coefficients, read-only. Shape: (num_taps,).
    offset : float
        Sub-sample delay the filter was designed for.
    """

    taps: np.ndarray
    offset: float = 0.0

    @classmethod
    def design(cls, offset: float, num_taps: int = 8) -> "SincFilter":
        """
        Designs a sinc interpolator for a sub-sample offset.

        Tap ``j`` is ``sinc(-num_taps/2 + j + offset) / num_taps``.

        Parameters
        ----------
        offset : float
            Sub-sample delay.
        num_taps : int, default 8
            Number of filter taps.

        Returns
        -------
        SincFilter
        """
        t = -num_taps / 2 + np.arange(num_taps) + offset
        return cls(taps=_read_only(sinc(t) / num_taps), offset=float(offset))

    def __len__(self) -> int:
        return len(self.taps)

    def convolve(self, window) -> float:
        """
        Filters one output sample.

        The most recent sample is the last element of ``window`` and is
        weighted by the first tap.

        Parameters
        ----------
        window : array_like
            Exactly ``len(self)`` consecutive samples, oldest first.

        Returns
        -------
        float
            Dot product of the reversed window with the taps.
        """
        window = np.asarray(window, dtype=np.float64)
        if window.shape != self.taps.shape:
            raise ValueError(
                f"Window length {window.shape} does not match filter length {self.taps.shape}"
            )
        return float(np.dot(window[::-1], self.taps))


@dataclass(frozen=True)
class FilterBank:
    """Read-only table of fractional-delay filters.

    Filter ``k`` interpolates at offset ``k * span / num_filters``. The table
    is built once and shared by reference; nothing mutates it afterwards.

    Attributes
    ----------
    taps : ndarray
        Coefficient matrix, read-only. Shape: (num_filters, num_taps).
    span : float
        Fraction of a sample covered by the offsets of the bank.
    """

    taps: np.ndarray
    span: float

    @classmethod
    def design(
        cls, num_filters: int = 129, num_taps: int = 8, span: float = 0.25
    ) -> "FilterBank":
        """
        Builds a bank of ``num_filters`` sinc interpolators.

        Parameters
        ----------
        num_filters : int, default 129
            Number of filters (table rows).
        num_taps : int, default 8
            Taps per filter.
        span : float, default 0.25
            Largest offset (exclusive) covered by the bank, in samples.

        Returns
        -------
        FilterBank
        """
        if num_filters < 1:
            raise ValueError(f"num_filters must be positive, got {num_filters}")
        if num_taps < 1:
            raise ValueError(f"num_taps must be positive, got {num_taps}")

        step = span / num_filters
        rows = [
            SincFilter.design(k * step, num_taps).taps for k in range(num_filters)
        ]
        logger.debug(
            f"Designed filter bank: {num_filters} filters x {num_taps} taps, span={span}."
        )
        return cls(taps=_read_only(np.vstack(rows)), span=float(span))

    @property
    def num_filters(self) -> int:
        return self.taps.shape[0]

    @property
    def num_taps(self) -> int:
        return self.taps.shape[1]

    @property
    def step(self) -> float:
        """Offset increment between neighbouring filters."""
        return self.span / self.num_filters

    def __len__(self) -> int:
        return self.num_filters

    def __getitem__(self, k: int) -> SincFilter:
        return SincFilter(taps=self.taps[k], offset=k * self.step)

    def __iter__(self) -> Iterator[SincFilter]:
        for k in range(self.num_filters):
            yield self[k]

    def index(self, mu: float) -> int:
        """
        Selects the filter for a fractional sample offset.

        Parameters
        ----------
        mu : float
            Fractional offset, nominally in [0, 1).

        Returns
        -------
        int
            ``floor(mu * num_filters)`` clamped to ``[0, num_filters - 1]``.
        """
        k = int(np.floor(mu * self.num_filters))
        return min(max(k, 0), self.num_filters - 1)
