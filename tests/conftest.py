import matplotlib
import numpy as np
import pytest

from nrftools.packet import build_frame_bits

matplotlib.use("Agg")


def pytest_addoption(parser):
    parser.addoption(
        "--timing-backend",
        action="store",
        default="all",
        help="Timing loop backend to run tests on: python, numba, or all",
    )


def pytest_generate_tests(metafunc):
    if "timing_backend" in metafunc.fixturenames:
        backend_opt = metafunc.config.getoption("--timing-backend")
        if backend_opt == "all":
            params = ["python", "numba"]
        elif backend_opt in ("python", "numba"):
            params = [backend_opt]
        else:
            params = ["python"]  # Default fallback

        metafunc.parametrize("timing_backend", params, indirect=True)


@pytest.fixture
def timing_backend(request):
    """
    Fixture that returns the timing loop backend name.
    Skips Numba tests if Numba is not installed.
    """
    backend = request.param
    if backend == "numba":
        pytest.importorskip("numba")
    return backend


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def frame_stream():
    """
    Bit stream holding a single frame: 20 idle bits, a 16-bit preamble,
    address 0xAABBCCDD, PID 1, payload 0x1234 and its CRC, then 400 idle bits.
    The first address bit sits at position 36.
    """
    frame = build_frame_bits(0xAABBCCDD, b"\x12\x34", pid=1, preamble=16)
    return np.concatenate(
        [np.zeros(20, dtype=np.uint8), frame, np.zeros(400, dtype=np.uint8)]
    )
