"""
Diagnostic plots for recordings and the timing loop.

Functions
---------
apply_default_theme :
    Sets the Matplotlib style used by all plots.
psd :
    Power spectral density of a recording.
time_domain :
    Soft symbols with the slicer decision samples marked.
timing_trace :
    Samples-per-symbol estimate and fractional offset over time.
"""

from typing import Any, Optional, Tuple, Union

import matplotlib as mpl
import matplotlib.font_manager as fm
import matplotlib.pyplot as plt
import numpy as np
from scipy.signal import welch

from .logger import logger
from .timing import TimingResult


def apply_default_theme() -> None:
    try:
        font_prop = fm.FontProperties(family="Roboto", weight="regular")
        fm.findfont(font_prop, fallback_to_default=False)
        font_name = "Roboto"
    except ValueError:
        font_name = "sans"
        logger.debug("Roboto font not found, falling back to default sans-serif.")

    mpl.rcParams.update(
        {
            "figure.figsize": (5, 3.5),
            "font.family": font_name,
            "font.size": 12,
            "lines.linewidth": 1.5,
            "axes.linewidth": 1,
            "axes.grid": True,
            "axes.titleweight": "bold",
            "figure.autolayout": True,
            "figure.facecolor": "white",
            "savefig.facecolor": "white",
            "savefig.dpi": 300,
            "xtick.direction": "in",
            "ytick.direction": "in",
            "xtick.top": True,
            "ytick.right": True,
        }
    )


def psd(
    samples: Any,
    sampling_rate: float = 1.0,
    nperseg: int = 1024,
    ax: Optional[Any] = None,
    title: Optional[str] = "Spectrum",
    show: bool = False,
    **kwargs: Any,
) -> Optional[Tuple[Any, Any]]:
    """
    Plots the Power Spectral Density (PSD) of the signal.

    Args:
        samples: The signal samples to plot.
        sampling_rate: Sampling rate in Hz.
        nperseg: Length of each segment (clipped to the number of samples).
        ax: Optional matplotlib axis to plot on.
        title: Title of the plot. Defaults to "Spectrum". If None, no title is set.
        show: Whether to call plt.show() after plotting.
        **kwargs: Additional arguments passed to ax.plot.

    Returns:
        Tuple of (figure, axis) if show is False, else None.
    """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    samples = np.asarray(samples)
    nperseg = min(nperseg, samples.size)

    if np.iscomplexobj(samples):
        f, Pxx = welch(
            samples, fs=sampling_rate, nperseg=nperseg, return_onesided=False
        )
        # Shift zero frequency to center if complex
        f = np.fft.fftshift(f)
        Pxx = np.fft.fftshift(Pxx)
    else:
        f, Pxx = welch(samples, fs=sampling_rate, nperseg=nperseg)

    ax.plot(f, 10 * np.log10(Pxx + np.finfo(float).tiny), **kwargs)
    ax.set_xlabel("Frequency [Hz]")
    ax.set_ylabel("PSD [dB/Hz]")
    if title is not None:
        ax.set_title(title)

    if show:
        plt.show()
        return None
    return fig, ax


def time_domain(
    samples: Any,
    num_symbols: Optional[int] = None,
    sps: Optional[float] = None,
    ax: Optional[Any] = None,
    title: Optional[str] = "Soft symbols",
    show: bool = False,
    **kwargs: Any,
) -> Optional[Tuple[Any, Any]]:
    """
    Plots a soft-symbol stream against the slicer threshold.

    Args:
        samples: Real soft or timing-corrected symbols.
        num_symbols: Number of symbols to plot (requires sps).
        sps: Samples per symbol. If given, the samples the slicer decides
            on (every ``int(sps)``-th one) are marked.
        ax: Optional matplotlib axis to plot on.
        title: Title of the plot. If None, no title is set.
        show: Whether to call plt.show() after plotting.
        **kwargs: Additional arguments passed to ax.plot for the trace.

    Returns:
        Tuple of (figure, axis) if show is False, else None.

    Raises:
        ValueError: If the samples are complex.
    """
    samples = np.asarray(samples)
    if np.iscomplexobj(samples):
        raise ValueError("time_domain expects real soft symbols; demodulate first")

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    if num_symbols is not None and sps is not None:
        samples = samples[: int(num_symbols * sps)]
    n = np.arange(samples.size)

    ax.plot(n, samples, **kwargs)
    ax.axhline(0.0, color="k", linewidth=0.8)
    if sps is not None:
        step = max(int(sps), 1)
        ax.plot(n[::step], samples[::step], "o", markersize=3, label="Decisions")
        ax.legend()
    ax.set_xlabel("Sample index")
    ax.set_ylabel("Phase step [rad]")
    if title is not None:
        ax.set_title(title)

    if show:
        plt.show()
        return None
    return fig, ax


def timing_trace(
    result: TimingResult,
    nominal_sps: Optional[float] = None,
    axes: Optional[Any] = None,
    title: Optional[str] = "Timing recovery",
    show: bool = False,
) -> Optional[Tuple[Any, Union[Any, np.ndarray]]]:
    """
    Plots the timing loop state history.

    Args:
        result: Output of a timing loop run with ``store_history=True``.
        nominal_sps: If given, drawn as a reference line on the sps panel.
        axes: Optional pair of matplotlib axes (sps, offset).
        title: Figure title. If None, no title is set.
        show: Whether to call plt.show() after plotting.

    Returns:
        Tuple of (figure, axes) if show is False, else None.

    Raises:
        ValueError: If the result carries no state history.
    """
    if result.sps_history is None or result.mu_history is None:
        raise ValueError("Timing result has no history; run with store_history=True")

    if axes is None:
        fig, axes = plt.subplots(2, 1, sharex=True)
    else:
        fig = axes[0].figure

    n = np.arange(result.sps_history.size)

    axes[0].plot(n, result.sps_history)
    if nominal_sps is not None:
        axes[0].axhline(nominal_sps, color="k", linestyle="--", linewidth=1)
    axes[0].set_ylabel("Samples/symbol")

    axes[1].plot(n, result.mu_history, ".", markersize=1)
    axes[1].set_ylim(0, 1)
    axes[1].set_xlabel("Soft symbol index")
    axes[1].set_ylabel("Offset")

    if title is not None:
        fig.suptitle(title)

    if show:
        plt.show()
        return None
    return fig, axes
