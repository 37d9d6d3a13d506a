"""Receiver configuration for nrftools.

This module holds every tunable parameter of the receiver chain in a single
validated model, so that recordings made at other oversampling ratios or
with other loop gains can be decoded without touching the code.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Protocol constants
PCF_BITS = 9  # 6-bit length + 2-bit PID + 1-bit no-ack
CRC_BITS = 16


class ReceiverConfig(BaseModel):
    """Central configuration for the packet receiver.

    Defaults reproduce a 2 samples-per-symbol recording of 4-byte addressed
    frames with a 2-byte CRC.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    # Input
    input_path: Optional[Path] = Field(None, description="Path to the IQ file")

    # Symbol timing
    samples_per_symbol: float = Field(
        2.0, ge=1.0, description="Nominal samples per symbol"
    )
    sps_tolerance: float = Field(
        0.005, ge=0, description="Allowed deviation of the estimated sps"
    )
    phase_gain: float = Field(
        0.175, gt=0, description="Fractional offset (phase) loop gain"
    )
    timing_backend: Literal["numba", "python"] = Field(
        "numba", description="Execution backend of the timing recovery loop"
    )

    # Interpolator
    num_filters: int = Field(129, ge=1, description="Filters in the bank")
    num_taps: int = Field(8, ge=2, description="Taps per interpolation filter")
    interpolator_span: float = Field(
        0.25, gt=0, le=1, description="Fraction of a sample covered by the bank"
    )

    # Framing
    address_width: int = Field(4, ge=3, le=5, description="Address bytes")
    max_payload: int = Field(32, ge=0, le=63, description="Max payload bytes")
    min_preamble_run: int = Field(
        9, ge=1, description="Shortest alternating run marking a frame start"
    )
    max_preamble_run: int = Field(
        17, ge=1, description="Longest alternating run marking a frame start"
    )

    # Diagnostics
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Verbosity of the nrftools logger"
    )

    @model_validator(mode="after")
    def check_preamble_bounds(self) -> "ReceiverConfig":
        """Reject an empty candidate window."""
        if self.min_preamble_run > self.max_preamble_run:
            raise ValueError(
                f"min_preamble_run ({self.min_preamble_run}) must not exceed "
                f"max_preamble_run ({self.max_preamble_run})"
            )
        return self

    @property
    def header_bits(self) -> int:
        """Address plus packet control field, in bits."""
        return 8 * self.address_width + PCF_BITS

    @property
    def frame_margin(self) -> int:
        """Bits needed after a frame start to hold the largest frame."""
        return self.header_bits + 8 * self.max_payload + CRC_BITS

    @classmethod
    def from_yaml(cls, path: str) -> "ReceiverConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            ReceiverConfig instance

        Raises:
            ValueError: If the document is not a mapping or fails validation.
            yaml.YAMLError: If the file is not valid YAML.
        """
        import yaml

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a mapping at the top of {path}, got {type(data).__name__}"
            )
        return cls(**data)

    def to_yaml(self, path: str):
        """Save configuration to YAML file.

        Args:
            path: Path where YAML file will be saved
        """
        import yaml

        data = self.model_dump(mode="json")

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
