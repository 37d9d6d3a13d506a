"""
Symbol timing recovery.

This module implements a decision-directed Muller & Mueller timing loop that
jointly tracks the symbol rate (samples per symbol) and the fractional
sampling phase of a soft-symbol stream, resampling it with a bank of sinc
interpolators.

The loop state is an explicit immutable value (:class:`TimingState`) that is
threaded through the sequence one sample at a time; a new state is returned
by every :meth:`MuellerMuellerLoop.step`. Two execution backends produce
identical results:

* **Numba**: compiles the sequential loop to native code via ``@njit``. Used
  for full recordings where the per-sample interpreter overhead dominates.
* **Python**: a plain fold over :meth:`MuellerMuellerLoop.step`, kept as the
  reference and for environments without Numba.

Classes
-------
TimingState :
    Estimated samples per symbol, fractional offset and last output.
TimingResult :
    Interpolated output, final state and optional state history.
MuellerMuellerLoop :
    Loop parameters, state transition and runners.

Functions
---------
recover_timing :
    Runs the loop configured from a :class:`~nrftools.config.ReceiverConfig`.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from .config import ReceiverConfig
from .filtering import FilterBank
from .logger import logger

# Fractional offset the loop starts from
_INITIAL_OFFSET = 0.5


# ============================================================================
# STATE AND RESULT CONTAINERS
# ============================================================================


class TimingState(NamedTuple):
    """State of the timing loop between two samples.

    Attributes
    ----------
    sps : float
        Estimated samples per symbol.
    mu : float
        Fractional sample offset in [0, 1).
    last : float
        Previous interpolated output.
    """

    sps: float
    mu: float
    last: float


@dataclass
class TimingResult:
    """Container for timing loop outputs.

    Attributes
    ----------
    interpolated : ndarray
        Timing-corrected samples, one per soft symbol. Shape: (N,).
    state : TimingState
        State after the last sample.
    sps_history : ndarray or None
        Estimated samples per symbol after every step. Only populated when
        ``store_history=True``.
    mu_history : ndarray or None
        Fractional offset after every step. Only populated when
        ``store_history=True``.
    """

    interpolated: np.ndarray
    state: TimingState
    sps_history: Optional[np.ndarray] = None
    mu_history: Optional[np.ndarray] = None


def wrap_offset(mu: float) -> float:
    """Reduces a fractional offset modulo 1, strictly below 1.0."""
    mu = mu - math.floor(mu)
    # a tiny negative value rounds up to exactly 1.0
    if mu >= 1.0:
        return 0.0
    return mu


def _sign(x: float) -> float:
    return -1.0 if x < 0 else 1.0


# ============================================================================
# NUMBA LAZY LOADER
# ============================================================================

_NUMBA_CACHE: dict = {}
_NUMBA_KERNELS: dict = {}


def _get_numba():
    """Lazy loader for Numba.

    Returns the ``numba`` module if installed, else ``None``.
    """
    if "numba" not in _NUMBA_CACHE:
        try:
            import numba  # noqa: PLC0415

            _NUMBA_CACHE["numba"] = numba
        except ImportError:
            _NUMBA_CACHE["numba"] = None
    return _NUMBA_CACHE.get("numba")


def _get_numba_mm():
    """JIT-compile and cache the Numba Muller & Mueller loop kernel.

    Returns
    -------
    mm_loop : numba-compiled callable
        See kernel source for argument shapes and semantics.
    """
    if "mm" not in _NUMBA_KERNELS:
        numba_mod = _get_numba()
        if numba_mod is None:
            raise ImportError("Numba is required for backend='numba'.")

        @numba_mod.njit(cache=True, nogil=True)
        def mm_loop(
            soft,
            taps,
            nominal_sps,
            sps_tolerance,
            gain_mu,
            gain_sps,
            sps,
            mu,
            last,
            store_history,
            out,
            sps_hist,
            mu_hist,
        ):
            # soft          : (N,)                 float64
            # taps          : (num_filters, T)     float64
            # sps, mu, last : float64            : initial state
            # out           : (N,)                 float64: pre-allocated
            # sps_hist      : (N or 1,)            float64: pre-allocated
            # mu_hist       : (N or 1,)            float64: pre-allocated
            num_filters = taps.shape[0]
            num_taps = taps.shape[1]
            sps_min = nominal_sps - sps_tolerance
            sps_max = nominal_sps + sps_tolerance

            for i in range(soft.shape[0]):
                out[i] = soft[i]

                if i >= num_taps:
                    k = int(math.floor(mu * num_filters))
                    if k < 0:
                        k = 0
                    elif k > num_filters - 1:
                        k = num_filters - 1
                    # newest sample (out[i], still the raw input) meets tap 0
                    acc = 0.0
                    for t in range(num_taps):
                        acc += out[i - t] * taps[k, t]
                    out[i] = acc

                y = out[i]
                s_last = -1.0 if last < 0 else 1.0
                s_y = -1.0 if y < 0 else 1.0
                error = s_last * y - s_y * last
                last = y

                sps += gain_sps * error
                if sps > sps_max:
                    sps = sps_max
                if sps < sps_min:
                    sps = sps_min

                mu += sps + gain_mu * error
                mu -= math.floor(mu)
                if mu >= 1.0:
                    mu = 0.0

                if store_history:
                    sps_hist[i] = sps
                    mu_hist[i] = mu

            return sps, mu, last

        _NUMBA_KERNELS["mm"] = mm_loop
    return _NUMBA_KERNELS["mm"]


# ============================================================================
# TIMING LOOP
# ============================================================================


@dataclass(frozen=True)
class MuellerMuellerLoop:
    """Second-order Muller & Mueller symbol timing loop.

    Attributes
    ----------
    filter_bank : FilterBank
        Interpolation filters indexed by the fractional offset.
    nominal_sps : float
        Expected samples per symbol; also the initial estimate.
    sps_tolerance : float
        The estimate is clamped to ``nominal_sps +/- sps_tolerance``.
    phase_gain : float
        Gain of the fractional offset update. The samples-per-symbol update
        uses ``0.25 * phase_gain**2`` (critically damped).
    """

    filter_bank: FilterBank
    nominal_sps: float = 2.0
    sps_tolerance: float = 0.005
    phase_gain: float = 0.175

    @classmethod
    def from_config(
        cls, config: ReceiverConfig, filter_bank: Optional[FilterBank] = None
    ) -> "MuellerMuellerLoop":
        if filter_bank is None:
            filter_bank = FilterBank.design(
                num_filters=config.num_filters,
                num_taps=config.num_taps,
                span=config.interpolator_span,
            )
        return cls(
            filter_bank=filter_bank,
            nominal_sps=config.samples_per_symbol,
            sps_tolerance=config.sps_tolerance,
            phase_gain=config.phase_gain,
        )

    @property
    def frequency_gain(self) -> float:
        return 0.25 * self.phase_gain * self.phase_gain

    def initial_state(self) -> TimingState:
        return TimingState(sps=self.nominal_sps, mu=_INITIAL_OFFSET, last=0.0)

    @staticmethod
    def timing_error(last: float, current: float) -> float:
        """
        Muller & Mueller timing error detector.

        Parameters
        ----------
        last : float
            Previous interpolated output.
        current : float
            Current interpolated output.

        Returns
        -------
        float
            ``sign(last) * current - sign(current) * last`` where
            ``sign(0) == 1``.
        """
        return _sign(last) * current - _sign(current) * last

    def step(self, state: TimingState, sample: float) -> TimingState:
        """
        Advances the loop by one interpolated output.

        Parameters
        ----------
        state : TimingState
            State before ``sample``.
        sample : float
            Interpolated output for the current position.

        Returns
        -------
        TimingState
            New state; ``state`` itself is left untouched.
        """
        error = self.timing_error(state.last, sample)

        sps = state.sps + self.frequency_gain * error
        sps = min(sps, self.nominal_sps + self.sps_tolerance)
        sps = max(sps, self.nominal_sps - self.sps_tolerance)

        mu = wrap_offset(state.mu + sps + self.phase_gain * error)
        return TimingState(sps=sps, mu=mu, last=sample)

    def run(
        self, soft, backend: str = "numba", store_history: bool = False
    ) -> TimingResult:
        """
        Runs the loop over a complete soft-symbol sequence.

        The first ``num_taps`` outputs pass the input through unchanged.
        After that, output ``i`` is the interpolation filter selected by the
        current offset applied to the previous ``num_taps - 1`` outputs and
        the raw soft symbol ``i``, so the loop filters its own output.

        Parameters
        ----------
        soft : array_like
            Soft symbols. Shape: (N,).
        backend : {'numba', 'python'}, default 'numba'
            Execution backend.
        store_history : bool, default False
            If True, record the samples-per-symbol estimate and fractional
            offset after every step.

        Returns
        -------
        TimingResult
        """
        soft = np.ascontiguousarray(soft, dtype=np.float64)
        logger.debug(
            f"Timing recovery: {soft.size} soft symbols, nominal sps={self.nominal_sps}, "
            f"backend={backend}"
        )

        if backend == "numba":
            result = self._run_numba(soft, store_history)
        elif backend == "python":
            result = self._run_python(soft, store_history)
        else:
            raise ValueError(f"Unknown timing backend: {backend}")

        logger.debug(
            f"Timing recovery finished: sps={result.state.sps:.5f}, mu={result.state.mu:.4f}"
        )
        return result

    def _run_python(self, soft: np.ndarray, store_history: bool) -> TimingResult:
        bank = self.filter_bank
        num_taps = bank.num_taps
        n = soft.size

        out = np.empty(n, dtype=np.float64)
        sps_hist = np.empty(n) if store_history else None
        mu_hist = np.empty(n) if store_history else None

        state = self.initial_state()
        for i, x in enumerate(soft.tolist()):
            out[i] = x
            if i >= num_taps:
                k = bank.index(state.mu)
                out[i] = bank[k].convolve(out[i - num_taps + 1 : i + 1])

            state = self.step(state, float(out[i]))

            if store_history:
                sps_hist[i] = state.sps
                mu_hist[i] = state.mu

        return TimingResult(
            interpolated=out, state=state, sps_history=sps_hist, mu_history=mu_hist
        )

    def _run_numba(self, soft: np.ndarray, store_history: bool) -> TimingResult:
        mm_loop = _get_numba_mm()
        n = soft.size

        out = np.empty(n, dtype=np.float64)
        hist_len = n if store_history else 1
        sps_hist = np.empty(hist_len, dtype=np.float64)
        mu_hist = np.empty(hist_len, dtype=np.float64)

        init = self.initial_state()
        sps, mu, last = mm_loop(
            soft,
            np.ascontiguousarray(self.filter_bank.taps),
            float(self.nominal_sps),
            float(self.sps_tolerance),
            float(self.phase_gain),
            float(self.frequency_gain),
            float(init.sps),
            float(init.mu),
            float(init.last),
            bool(store_history),
            out,
            sps_hist,
            mu_hist,
        )

        return TimingResult(
            interpolated=out,
            state=TimingState(sps=float(sps), mu=float(mu), last=float(last)),
            sps_history=sps_hist if store_history else None,
            mu_history=mu_hist if store_history else None,
        )


def recover_timing(
    soft,
    config: Optional[ReceiverConfig] = None,
    filter_bank: Optional[FilterBank] = None,
    store_history: bool = False,
) -> TimingResult:
    """
    Recovers symbol timing of a soft-symbol stream.

    Parameters
    ----------
    soft : array_like
        Soft symbols from :func:`~nrftools.demod.quadrature_demod`.
    config : ReceiverConfig, optional
        Loop parameters and backend. Defaults to ``ReceiverConfig()``.
    filter_bank : FilterBank, optional
        Precomputed bank to share between calls. Designed from ``config``
        if omitted.
    store_history : bool, default False
        Record the loop state after every step.

    Returns
    -------
    TimingResult
    """
    if config is None:
        config = ReceiverConfig()
    loop = MuellerMuellerLoop.from_config(config, filter_bank)
    return loop.run(soft, backend=config.timing_backend, store_history=store_history)
