"""
Configuration for Traceability Resolution.

Provides dataclasses and utilities for configuring the traceability
service: traversal limits, geometry bounds and identifier rules.
Configuration can come from a YAML file, a dictionary, or environment
variables (LTRACE_MAX_DEPTH, LTRACE_VALIDATE_INPUTS, LTRACE_REQUIRE_UUID).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from core.exceptions import ConfigError
from core.geometry import GeometryConfig
from core.lineage import TraversalConfig

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(name, value, "expected a boolean")


def _coerce_bool(name: str, value: Any) -> bool:
    """Accept YAML booleans and the same strings as the environment."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _parse_bool(name, value)
    raise ConfigError(name, value, "expected a boolean")


@dataclass
class TraceConfig:
    """
    Complete configuration for the traceability service.

    Attributes:
        traversal: Traversal limits
        geometry: Polygon validation bounds
        require_uuid: Reject identifiers that are not UUIDs
    """

    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    require_uuid: bool = False

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "TraceConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            TraceConfig instance
        """
        traversal_dict = dict(config_dict.get("traversal") or {})
        geometry_dict = dict(config_dict.get("geometry") or {})

        unknown = set(traversal_dict) - {"max_depth", "validate_inputs"}
        if unknown:
            raise ConfigError("traversal", sorted(unknown), "unknown keys")

        return cls(
            traversal=TraversalConfig(**traversal_dict),
            geometry=GeometryConfig.from_dict(geometry_dict),
            require_uuid=_coerce_bool("require_uuid", config_dict.get("require_uuid", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "traversal": {
                "max_depth": self.traversal.max_depth,
                "validate_inputs": self.traversal.validate_inputs,
            },
            "geometry": {
                "valid_longitude_range": list(self.geometry.valid_longitude_range),
                "valid_latitude_range": list(self.geometry.valid_latitude_range),
                "min_ring_points": self.geometry.min_ring_points,
            },
            "require_uuid": self.require_uuid,
        }

    def apply_env_overrides(self, environ: Optional[Dict[str, str]] = None) -> "TraceConfig":
        """
        Apply LTRACE_* environment variables in place.

        Args:
            environ: Environment mapping (os.environ if None)

        Returns:
            self
        """
        environ = os.environ if environ is None else environ

        if "LTRACE_MAX_DEPTH" in environ:
            raw = environ["LTRACE_MAX_DEPTH"]
            try:
                max_depth = int(raw)
            except ValueError:
                raise ConfigError("LTRACE_MAX_DEPTH", raw, "expected an integer") from None
            self.traversal = TraversalConfig(
                max_depth=max_depth,
                validate_inputs=self.traversal.validate_inputs,
            )

        if "LTRACE_VALIDATE_INPUTS" in environ:
            self.traversal.validate_inputs = _parse_bool(
                "LTRACE_VALIDATE_INPUTS", environ["LTRACE_VALIDATE_INPUTS"]
            )

        if "LTRACE_REQUIRE_UUID" in environ:
            self.require_uuid = _parse_bool("LTRACE_REQUIRE_UUID", environ["LTRACE_REQUIRE_UUID"])

        return self


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> TraceConfig:
    """
    Load configuration from a YAML file and the environment.

    Args:
        config_path: Path to YAML file (defaults only if None)
        environ: Environment mapping (os.environ if None)

    Returns:
        TraceConfig instance

    Raises:
        ConfigError: If the file is not a mapping or a value is invalid
    """
    config_dict: Dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        with open(path) as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            logger.warning(f"Config file {path} is empty, using defaults")
        elif not isinstance(loaded, dict):
            raise ConfigError(str(path), type(loaded).__name__, "expected a mapping")
        else:
            config_dict = loaded
            logger.debug(f"Loaded config from {path}")

    config = TraceConfig.from_dict(config_dict)
    return config.apply_env_overrides(environ)
