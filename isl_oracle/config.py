"""Oracle and instance configuration.

All tuning parameters are defined here and can be overridden via config file.
"""

from dataclasses import dataclass, field
from pathlib import Path
import json
from typing import Optional

from astropy import units as u
from astropy.constants import GM_earth, R_earth


# Earth defaults in the units used throughout the package (km, s)
EARTH_RADIUS_KM = float(R_earth.to(u.km).value)
EARTH_MU_KM3_S2 = float(GM_earth.to(u.km**3 / u.s**2).value)


@dataclass
class CentralBodyConfig:
    """Central body used when an instance file carries no header."""
    radius: float = EARTH_RADIUS_KM  # [km]
    gravitational_parameter: float = EARTH_MU_KM3_S2  # [km^3/s^2]


@dataclass
class AntennaConfig:
    """Antenna parameters not carried by the instance file."""
    cone_angle: float = 0.0  # Cone half-angle [deg]
    default_rotation_speed: float = 1.0  # Slew rate for generated bodies [deg/s]


@dataclass
class SolverConfig:
    """Visibility solver parameters."""
    step_size: float = 1.0  # Sampling resolution [s]
    prune_step: float = 1.0  # Coarse step for dead-link pruning [s]


@dataclass
class ApiConfig:
    """HTTP service parameters."""
    instance_file: Optional[str] = None  # Loaded on first request if set


@dataclass
class Config:
    """Root configuration."""
    central_body: CentralBodyConfig = field(default_factory=CentralBodyConfig)
    antenna: AntennaConfig = field(default_factory=AntennaConfig)
    solver: SolverConfig = field(default_factory=SolverConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from JSON file or return defaults.

    Args:
        path: Path to config JSON file. If None, returns defaults.

    Returns:
        Configuration object

    Raises:
        ValueError: If the step sizes are not positive
    """
    if path is None or not path.exists():
        return Config()

    with open(path) as f:
        data = json.load(f)

    config = Config()

    if "central_body" in data:
        cb = data["central_body"]
        config.central_body.radius = cb.get("radius", config.central_body.radius)
        config.central_body.gravitational_parameter = cb.get(
            "gravitational_parameter", config.central_body.gravitational_parameter
        )

    if "antenna" in data:
        ant = data["antenna"]
        config.antenna.cone_angle = ant.get("cone_angle", config.antenna.cone_angle)
        config.antenna.default_rotation_speed = ant.get(
            "default_rotation_speed", config.antenna.default_rotation_speed
        )

    if "solver" in data:
        sol = data["solver"]
        config.solver.step_size = sol.get("step_size", config.solver.step_size)
        config.solver.prune_step = sol.get("prune_step", config.solver.prune_step)

    if "api" in data:
        config.api.instance_file = data["api"].get(
            "instance_file", config.api.instance_file
        )

    if config.solver.step_size <= 0 or config.solver.prune_step <= 0:
        raise ValueError(
            f"Step sizes must be positive "
            f"(step_size={config.solver.step_size}, prune_step={config.solver.prune_step})"
        )

    return config


# Default config file path
CONFIG_FILE = Path(__file__).parent.parent / "config.json"

# Global state
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance.

    Auto-loads from config.json if it exists.
    """
    global _config

    if _config is None:
        _config = load_config(CONFIG_FILE)

    return _config


def set_config(config: Config) -> None:
    """Set global configuration instance."""
    global _config
    _config = config


def reload_config() -> Config:
    """Force reload configuration from file."""
    global _config
    _config = load_config(CONFIG_FILE)
    return _config
