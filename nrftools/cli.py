"""
Command-line packet receiver.

Decodes an IQ recording and prints one line per validated packet to stdout::

    nrftools-rx nrf24-2460-4e6.iq --sps 2
"""

import argparse
from typing import List, Optional

import yaml

from .config import ReceiverConfig
from .io import read_iq
from .logger import logger, set_log_level
from .receiver import Receiver


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nrftools-rx",
        description="Decode Enhanced ShockBurst packets from an IQ recording.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="IQ file (interleaved little-endian float32); overrides the config",
    )
    parser.add_argument("--config", help="YAML receiver configuration")
    parser.add_argument(
        "--sps", type=float, help="Nominal samples per symbol (default 2.0)"
    )
    parser.add_argument(
        "--backend",
        choices=["numba", "python"],
        help="Timing recovery backend (default numba)",
    )
    parser.add_argument("--plot", help="Save spectrum and timing diagnostics to this image")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity; overrides the config (default INFO)",
    )
    return parser


def _load_config(args: argparse.Namespace) -> ReceiverConfig:
    config = ReceiverConfig.from_yaml(args.config) if args.config else ReceiverConfig()

    overrides = {}
    if args.input is not None:
        overrides["input_path"] = args.input
    if args.sps is not None:
        overrides["samples_per_symbol"] = args.sps
    if args.backend is not None:
        overrides["timing_backend"] = args.backend
    if args.log_level is not None:
        overrides["log_level"] = args.log_level

    # re-validate the merged values
    return ReceiverConfig(**{**config.model_dump(), **overrides})


def _save_diagnostics(path: str, samples, receiver: Receiver) -> None:
    import matplotlib.pyplot as plt

    from .plotting import apply_default_theme, psd, time_domain, timing_trace

    apply_default_theme()
    sps = receiver.config.samples_per_symbol
    fig, axes = plt.subplots(4, 1, figsize=(6, 10))
    psd(samples, ax=axes[0])
    time_domain(
        receiver.last_timing.interpolated,
        num_symbols=200,
        sps=sps,
        ax=axes[1],
        title=None,
    )
    timing_trace(
        receiver.last_timing,
        nominal_sps=sps,
        axes=axes[2:],
        title=None,
    )
    fig.savefig(path)
    plt.close(fig)
    logger.info(f"Saved diagnostics to {path}.")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    set_log_level(config.log_level)

    if config.input_path is None:
        logger.error("No input file given.")
        return 1

    try:
        samples = read_iq(config.input_path)
    except OSError as e:
        logger.error(f"Unable to read IQ file {config.input_path}: {e}")
        return 1

    receiver = Receiver(config)
    bits = receiver.bits(samples, store_history=args.plot is not None)

    count = 0
    for packet in receiver.packets(bits):
        print(packet)
        count += 1
    logger.info(f"Decoded {count} packets from {samples.size} samples.")

    if args.plot:
        _save_diagnostics(args.plot, samples, receiver)

    return 0
