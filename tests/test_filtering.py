"""Tests for the sinc interpolation filters and filter bank."""

import numpy as np
import pytest

from nrftools.filtering import FilterBank, SincFilter, sinc


# ============================================================================
# SINC
# ============================================================================


def test_sinc_zero_exact():
    assert sinc(0.0) == 1.0


@pytest.mark.parametrize("n", [-7, -3, -1, 1, 2, 5, 10])
def test_sinc_integer_zeros(n):
    assert abs(sinc(float(n))) < 1e-12


def test_sinc_value():
    assert sinc(0.5) == pytest.approx(2 / np.pi)


# ============================================================================
# SINGLE FILTER
# ============================================================================


def test_zero_offset_filter_is_delay():
    """At zero offset only the centre tap (j=4) is non-zero."""
    filt = SincFilter.design(0.0)

    assert len(filt) == 8
    assert filt.taps[4] == 0.125
    mask = np.arange(8) != 4
    assert np.all(np.abs(filt.taps[mask]) < 1e-12)


def test_filter_taps_formula():
    offset = 0.1
    filt = SincFilter.design(offset, num_taps=8)
    expected = [np.sinc(-4 + j + offset) / 8 for j in range(8)]
    np.testing.assert_allclose(filt.taps, expected)


def test_convolve_reverses_window():
    """The newest (last) sample meets the first tap."""
    filt = SincFilter.design(0.2)
    newest = np.zeros(8)
    newest[-1] = 1.0
    oldest = np.zeros(8)
    oldest[0] = 1.0

    assert filt.convolve(newest) == pytest.approx(filt.taps[0])
    assert filt.convolve(oldest) == pytest.approx(filt.taps[7])


def test_convolve_linear(rng):
    """convolve(a + b) == convolve(a) + convolve(b)."""
    filt = SincFilter.design(0.17)
    for _ in range(20):
        a = rng.uniform(-np.pi, np.pi, 8)
        b = rng.uniform(-np.pi, np.pi, 8)
        assert filt.convolve(a + b) == pytest.approx(
            filt.convolve(a) + filt.convolve(b), abs=1e-12
        )


def test_convolve_length_mismatch():
    filt = SincFilter.design(0.0)
    with pytest.raises(ValueError, match="does not match"):
        filt.convolve(np.ones(7))


def test_filter_is_immutable():
    filt = SincFilter.design(0.0)
    with pytest.raises(ValueError):
        filt.taps[0] = 1.0


# ============================================================================
# FILTER BANK
# ============================================================================


def test_bank_shape():
    bank = FilterBank.design()

    assert len(bank) == 129
    assert bank.num_filters == 129
    assert bank.num_taps == 8
    assert bank.taps.shape == (129, 8)
    assert bank.step == pytest.approx(0.25 / 129)


def test_bank_rows_match_single_filters():
    bank = FilterBank.design()
    for k in (0, 1, 64, 128):
        single = SincFilter.design(k * 0.25 / 129)
        np.testing.assert_allclose(bank[k].taps, single.taps)
        assert bank[k].offset == pytest.approx(k * 0.25 / 129)


def test_bank_iteration():
    bank = FilterBank.design(num_filters=5, num_taps=4, span=1.0)
    filters = list(bank)
    assert len(filters) == 5
    assert all(len(f) == 4 for f in filters)


def test_bank_is_read_only():
    bank = FilterBank.design()
    with pytest.raises(ValueError):
        bank.taps[0, 0] = 1.0


@pytest.mark.parametrize(
    "mu, expected",
    [(0.0, 0), (0.5, 64), (0.25, 32), (0.999999, 128), (1.0, 128), (-0.1, 0)],
)
def test_bank_index(mu, expected):
    """floor(mu * 129), always inside the table."""
    bank = FilterBank.design()
    assert bank.index(mu) == expected


def test_bank_invalid_size():
    with pytest.raises(ValueError, match="num_filters must be positive"):
        FilterBank.design(num_filters=0)
