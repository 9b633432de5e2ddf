import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

class BlowDetectorConfig(BaseModel):
    sensitivity: float = Field(default=0.3, gt=0.0, le=1.0, description="Scales every classification threshold; lower is more permissive")
    cooldown_ms: float = Field(default=1500.0, ge=0.0, description="Minimum interval between two emitted blows in milliseconds")
    fft_size: int = Field(default=512, ge=64, le=32768, description="Transform size (power of two); the spectrum has fft_size / 2 bins")
    smoothing_time_constant: float = Field(default=0.8, ge=0.0, le=1.0, description="Averaging factor applied between consecutive spectra")
    min_decibels: float = Field(default=-100.0, description="Level mapped to byte value 0")
    max_decibels: float = Field(default=-30.0, description="Level mapped to byte value 255")
    sample_rate: int = Field(default=44100, gt=0, description="Microphone sample rate in Hz")
    input_device: Optional[int] = Field(default=None, description="sounddevice input device index, None for the default device")
    frame_rate_hz: float = Field(default=60.0, gt=0.0, description="Analysis ticks per second")
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = ConfigDict(frozen=True)

    @field_validator("fft_size")
    @classmethod
    def _fft_size_power_of_two(cls, value: int) -> int:
        if value & (value - 1):
            raise ValueError(f"fft_size must be a power of two, got {value}")
        return value

    @model_validator(mode="after")
    def _decibel_range(self) -> "BlowDetectorConfig":
        if self.min_decibels >= self.max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")
        return self

def load_config(config_path: Optional[Path] = None) -> BlowDetectorConfig:
    if config_path is None:
        config_path = Path(".env")

    if config_path.exists():
        load_dotenv(config_path)
        logger.info(f"Loaded environment variables from {config_path}")
    else:
        logger.warning(f"Config file {config_path} not found, using environment variables only")

    try:
        input_device = os.getenv("BLOW_INPUT_DEVICE", "").strip()
        return BlowDetectorConfig(
            sensitivity=float(os.getenv("BLOW_SENSITIVITY", "0.3")),
            cooldown_ms=float(os.getenv("BLOW_COOLDOWN_MS", "1500")),
            fft_size=int(os.getenv("BLOW_FFT_SIZE", "512")),
            smoothing_time_constant=float(os.getenv("BLOW_SMOOTHING", "0.8")),
            sample_rate=int(os.getenv("BLOW_SAMPLE_RATE", "44100")),
            input_device=int(input_device) if input_device else None,
            frame_rate_hz=float(os.getenv("BLOW_FRAME_RATE", "60")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def create_example_env_file(path: Path = Path(".env.example")):
    example_content = """# Sensitivity in (0, 1]; lower values make blows easier to trigger
BLOW_SENSITIVITY=0.3

# Minimum time between two detected blows (milliseconds)
BLOW_COOLDOWN_MS=1500

# Spectrum resolution: FFT size (power of two), the spectrum has FFT_SIZE / 2 bins
BLOW_FFT_SIZE=512

# Averaging between consecutive spectra, 0 disables smoothing
BLOW_SMOOTHING=0.8

# Microphone sample rate in Hz
BLOW_SAMPLE_RATE=44100

# Input device index (see --list-devices), empty for the system default
BLOW_INPUT_DEVICE=

# Analysis ticks per second
BLOW_FRAME_RATE=60

# Logging level
LOG_LEVEL=INFO
"""

    with open(path, "w") as f:
        f.write(example_content)

    logger.info(f"Created example environment file at {path}")

def setup_logging(log_level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
