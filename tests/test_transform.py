"""Tests for the FFT plan and spectral transform."""

import logging

import numpy as np
import pytest

from pulsescope.core.transform import FFTPlan, SpectralTransform
from pulsescope.errors import BufferMismatchError, InvalidArgumentError, NotConfiguredError


def sinusoid(n, k, amplitude=1.0):
    t = np.arange(n)
    return amplitude * np.cos(2 * np.pi * k * t / n)


class TestFFTPlan:
    def test_constant_frame(self):
        with FFTPlan(8) as plan:
            real, imaginary = plan.execute(np.ones(8))
            assert real[0] == pytest.approx(8.0)
            assert imaginary[0] == pytest.approx(0.0)
            np.testing.assert_allclose(real[1:], 0.0, atol=1e-12)
            np.testing.assert_allclose(imaginary[1:], 0.0, atol=1e-12)

    def test_matches_reference_fft(self):
        rng = np.random.default_rng(7)
        samples = rng.standard_normal(48)
        with FFTPlan(48) as plan:
            real, imaginary = plan.execute(samples)
            expected = np.fft.fft(samples)
            np.testing.assert_allclose(real, expected.real, atol=1e-9)
            np.testing.assert_allclose(imaginary, expected.imag, atol=1e-9)

    def test_linear(self):
        a = np.arange(16, dtype=float)
        b = np.cos(np.arange(16))
        with FFTPlan(16) as plan:
            ra, ia = (x.copy() for x in plan.execute(a))
            rb, ib = (x.copy() for x in plan.execute(b))
            rs, is_ = plan.execute(2 * a + b)
            np.testing.assert_allclose(rs, 2 * ra + rb, atol=1e-9)
            np.testing.assert_allclose(is_, 2 * ia + ib, atol=1e-9)

    def test_length_mismatch(self):
        with FFTPlan(8) as plan:
            with pytest.raises(BufferMismatchError):
                plan.execute(np.ones(9))

    def test_released_by_context_manager(self):
        with FFTPlan(8) as plan:
            pass
        assert plan.released
        with pytest.raises(NotConfiguredError):
            plan.execute(np.ones(8))

    def test_release_is_idempotent(self):
        plan = FFTPlan(4)
        plan.release()
        plan.release()
        assert plan.released

    def test_invalid_length(self):
        with pytest.raises(InvalidArgumentError):
            FFTPlan(0)


class TestSpectralTransform:
    def test_execute_before_prepare_strict(self):
        transform = SpectralTransform(strict=True)
        with pytest.raises(NotConfiguredError):
            transform.execute(np.ones(8))

    def test_execute_before_prepare_lenient(self, caplog):
        transform = SpectralTransform(strict=False)
        with caplog.at_level(logging.ERROR, logger="pulsescope.core.transform"):
            real, imaginary = transform.execute(np.ones(8))
        np.testing.assert_array_equal(real, np.zeros(8))
        np.testing.assert_array_equal(imaginary, np.zeros(8))
        np.testing.assert_array_equal(transform.magnitude, np.zeros(4))
        assert "not prepared" in caplog.text

    def test_execute_after_release(self):
        transform = SpectralTransform(strict=True)
        transform.prepare(8)
        transform.release()
        assert not transform.is_configured
        with pytest.raises(NotConfiguredError):
            transform.execute(np.ones(8))

    def test_buffer_mismatch_even_when_lenient(self):
        transform = SpectralTransform(strict=False)
        transform.prepare(8)
        with pytest.raises(BufferMismatchError):
            transform.execute(np.ones(4))

    def test_constant_frame_magnitude(self):
        with SpectralTransform() as transform:
            transform.prepare(8)
            transform.execute(np.ones(8))
            np.testing.assert_allclose(transform.magnitude, [8.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_magnitude_is_modulus_of_first_half(self):
        rng = np.random.default_rng(3)
        with SpectralTransform() as transform:
            transform.prepare(32)
            real, imaginary = transform.execute(rng.standard_normal(32))
            np.testing.assert_allclose(
                transform.magnitude, np.sqrt(real[:16] ** 2 + imaginary[:16] ** 2)
            )

    @pytest.mark.parametrize("k", [1, 5, 13, 31])
    def test_sinusoid_peaks_at_bin(self, k):
        n = 64
        with SpectralTransform() as transform:
            transform.prepare(n)
            transform.execute(sinusoid(n, k))
            magnitude = transform.magnitude
            assert int(np.argmax(magnitude)) == k
            assert magnitude[k] == pytest.approx(n / 2, rel=1e-3)

    def test_prepare_releases_previous_plan(self):
        transform = SpectralTransform()
        first = transform.prepare(8)
        second = transform.prepare(16)
        assert first.released
        assert not second.released
        assert transform.length == 16
        assert transform.magnitude.shape == (8,)
        transform.release()
        assert second.released
