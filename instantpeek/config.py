"""InstantPeek configuration with defaults, loadable from YAML."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

log = logging.getLogger(__name__)

INVERSION_START_CHOICES = ("immediate", "delayed")


class ConfigError(ValueError):
    """Raised when a configuration value is out of range."""


@dataclass
class BrightnessConfig:
    dim: float = 0.2  # 20% when idle
    full: float = 1.0  # 100% when peeking
    peek_duration_s: float = 10.0


@dataclass
class MotionConfig:
    threshold: float = 2.0  # m/s² beyond gravity
    gravity: float = 9.8
    debounce_s: float = 1.0


@dataclass
class BurnInConfig:
    offset_interval_s: float = 60.0
    offset_range_px: int = 10
    inversion_interval_s: float = 20.0
    inversion_start: str = "immediate"  # "immediate" | "delayed"
    color_variance: int = 15  # ± per-channel variation
    dominant_floor: int = 200
    minor_ceiling: int = 30


@dataclass
class NetworkConfig:
    http_port: int = 8080
    host: str = "127.0.0.1"


@dataclass
class SimConfig:
    sample_hz: float = 16.0  # ~60 ms sensor cadence
    shake_every_s: float = 0.0  # 0 = never shake on its own
    shake_magnitude: float = 16.0


_SECTIONS = ("brightness", "motion", "burn_in", "network", "sim")


@dataclass
class DisplayConfig:
    brightness: BrightnessConfig = field(default_factory=BrightnessConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    burn_in: BurnInConfig = field(default_factory=BurnInConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    sim: SimConfig = field(default_factory=SimConfig)

    def validate(self) -> DisplayConfig:
        """Fail fast on values the controller cannot honour. Returns self."""
        b = self.brightness
        for name, val in (("brightness.dim", b.dim), ("brightness.full", b.full)):
            if not 0.0 <= val <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {val}")
        if b.dim > b.full:
            raise ConfigError(f"brightness.dim ({b.dim}) exceeds brightness.full ({b.full})")

        positive = {
            "brightness.peek_duration_s": b.peek_duration_s,
            "burn_in.offset_interval_s": self.burn_in.offset_interval_s,
            "burn_in.inversion_interval_s": self.burn_in.inversion_interval_s,
            "sim.sample_hz": self.sim.sample_hz,
        }
        for name, val in positive.items():
            if val <= 0:
                raise ConfigError(f"{name} must be positive, got {val}")

        non_negative = {
            "motion.threshold": self.motion.threshold,
            "motion.gravity": self.motion.gravity,
            "motion.debounce_s": self.motion.debounce_s,
            "burn_in.offset_range_px": self.burn_in.offset_range_px,
            "burn_in.color_variance": self.burn_in.color_variance,
            "sim.shake_every_s": self.sim.shake_every_s,
        }
        for name, val in non_negative.items():
            if val < 0:
                raise ConfigError(f"{name} must be non-negative, got {val}")

        for name, val in (
            ("burn_in.dominant_floor", self.burn_in.dominant_floor),
            ("burn_in.minor_ceiling", self.burn_in.minor_ceiling),
        ):
            if not 0 <= val <= 255:
                raise ConfigError(f"{name} must be within 0..255, got {val}")

        if self.burn_in.inversion_start not in INVERSION_START_CHOICES:
            raise ConfigError(
                f"burn_in.inversion_start must be one of {INVERSION_START_CHOICES}, "
                f"got {self.burn_in.inversion_start!r}"
            )
        return self

    def to_dict(self) -> dict:
        return asdict(self)


def _coerce(name: str, type_name: str, value):
    """Convert a YAML scalar to the field type (annotations are strings here)."""
    if type_name == "str":
        if not isinstance(value, str):
            raise ConfigError(f"{name} must be a string, got {value!r}")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if type_name == "int":
        if isinstance(value, float) and not value.is_integer():
            raise ConfigError(f"{name} must be a whole number, got {value!r}")
        return int(value)
    return float(value)


def load_config(path: str | Path | None = None) -> DisplayConfig:
    """Load config from YAML file, falling back to defaults.

    Unreadable files fall back to defaults; unknown keys, wrongly typed
    values and out-of-range values raise ConfigError.
    """
    if path is None:
        return DisplayConfig().validate()

    path = Path(path)
    if not path.exists():
        log.warning("config file not found: %s, using defaults", path)
        return DisplayConfig().validate()

    import yaml  # type: ignore[import-untyped]

    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        log.warning("config load error: %s, using defaults", e)
        return DisplayConfig().validate()

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    cfg = DisplayConfig()
    for section_name, values in raw.items():
        if section_name not in _SECTIONS:
            raise ConfigError(f"unknown config section: {section_name}")
        if values is not None and not isinstance(values, dict):
            raise ConfigError(f"config section {section_name} must be a mapping")
        section = getattr(cfg, section_name)
        known = {f.name: f.type for f in fields(section)}
        for k, v in (values or {}).items():
            if k not in known:
                raise ConfigError(f"unknown key {section_name}.{k}")
            setattr(section, k, _coerce(f"{section_name}.{k}", known[k], v))

    log.info("config loaded from %s", path)
    return cfg.validate()
