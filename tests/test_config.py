"""Tests for the ReceiverConfig model."""

import pytest
from pydantic import ValidationError

from nrftools import ReceiverConfig


class TestReceiverConfig:
    """Test ReceiverConfig creation and validation."""

    def test_defaults(self):
        config = ReceiverConfig()

        assert config.samples_per_symbol == 2.0
        assert config.sps_tolerance == 0.005
        assert config.phase_gain == 0.175
        assert config.num_filters == 129
        assert config.num_taps == 8
        assert config.interpolator_span == 0.25
        assert config.timing_backend == "numba"
        assert config.input_path is None

    def test_log_level(self):
        assert ReceiverConfig().log_level == "INFO"
        assert ReceiverConfig(log_level="DEBUG").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            ReceiverConfig(log_level="LOUD")

    def test_frame_margin_default(self):
        """Largest frame: 32 address + 9 PCF + 256 payload + 16 CRC bits."""
        config = ReceiverConfig()
        assert config.header_bits == 41
        assert config.frame_margin == 313

    def test_frame_margin_follows_widths(self):
        config = ReceiverConfig(address_width=5, max_payload=10)
        assert config.frame_margin == 40 + 9 + 80 + 16

    def test_invalid_sps(self):
        with pytest.raises(ValidationError):
            ReceiverConfig(samples_per_symbol=0.5)

    def test_invalid_address_width(self):
        with pytest.raises(ValidationError):
            ReceiverConfig(address_width=6)

    def test_invalid_backend(self):
        with pytest.raises(ValidationError):
            ReceiverConfig(timing_backend="cuda")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ReceiverConfig(sample_rate=4e6)

    def test_preamble_bounds(self):
        with pytest.raises(ValidationError, match="must not exceed"):
            ReceiverConfig(min_preamble_run=18, max_preamble_run=17)

    def test_assignment_is_validated(self):
        config = ReceiverConfig()
        with pytest.raises(ValidationError):
            config.samples_per_symbol = -1.0


class TestConfigYaml:
    """Test YAML persistence."""

    def test_roundtrip(self, tmp_path):
        config = ReceiverConfig(
            input_path=tmp_path / "capture.iq",
            samples_per_symbol=4.0,
            timing_backend="python",
            address_width=5,
        )
        path = tmp_path / "rx.yaml"
        config.to_yaml(str(path))

        loaded = ReceiverConfig.from_yaml(str(path))
        assert loaded == config

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "rx.yaml"
        path.write_text("samples_per_symbol: 3.0\n")

        config = ReceiverConfig.from_yaml(str(path))
        assert config.samples_per_symbol == 3.0
        assert config.phase_gain == 0.175

    def test_empty_file(self, tmp_path):
        path = tmp_path / "rx.yaml"
        path.write_text("")
        assert ReceiverConfig.from_yaml(str(path)) == ReceiverConfig()

    def test_invalid_value_in_file(self, tmp_path):
        path = tmp_path / "rx.yaml"
        path.write_text("phase_gain: -1\n")
        with pytest.raises(ValidationError):
            ReceiverConfig.from_yaml(str(path))

    def test_list_document_rejected(self, tmp_path):
        path = tmp_path / "rx.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            ReceiverConfig.from_yaml(str(path))

    def test_malformed_file(self, tmp_path):
        import yaml

        path = tmp_path / "rx.yaml"
        path.write_text("num_taps: [8\n")
        with pytest.raises(yaml.YAMLError):
            ReceiverConfig.from_yaml(str(path))
