"""Configuration loader and validation."""

import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from injection_app._types import InjectBackend
from injection_app.clipboard import CLIPBOARD_PORTS

logger = logging.getLogger(__name__)

__all__ = [
    "InjectorConfig",
    "GeneralConfig",
    "Config",
    "ConfigError",
    "load_config",
    "validate_general_config",
    "validate_injector_config",
]

CONFIG_ENV_VAR = "INJECTION_CONFIG"
BACKEND_ENV_VAR = "INJECTION_BACKEND"


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


@dataclass
class InjectorConfig:
    """Text injection configuration."""

    backend: str = "auto"
    settle_delay: float = 0.2
    timeout: float | None = None
    dry_run: bool = False
    clipboard: str = "gtk"


@dataclass
class GeneralConfig:
    """General application settings."""

    verbose: bool = False


@dataclass
class Config:
    """Main configuration container."""

    injector: InjectorConfig = field(default_factory=InjectorConfig)
    general: GeneralConfig = field(default_factory=GeneralConfig)

    @classmethod
    def from_toml(
        cls,
        path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> "Config":
        """Load configuration from TOML file with environment overrides.

        Args:
            path: Explicit config file path. If None, searches in order:
                  1. INJECTION_CONFIG env var
                  2. ./injection.toml
                  3. ~/.config/injection.toml
                  Defaults are used when no file exists.
            env: Environment variables for overrides (defaults to os.environ)

        Returns:
            Loaded Config instance

        Raises:
            ConfigError: If an explicit file is missing or values are invalid
        """
        if env is None:
            import os

            env = os.environ

        resolved_path = _resolve_config_path(path, env)
        raw_data = _load_toml_file(resolved_path) if resolved_path else {}

        try:
            coerced = _coerce_config_values(raw_data, env)
            return cls(
                injector=InjectorConfig(**coerced["injector"]),
                general=GeneralConfig(**coerced["general"]),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration values: {e}") from e

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If any setting is invalid
        """
        validate_injector_config(self.injector)
        validate_general_config(self.general)


def _resolve_config_path(
    cli_path: Path | None,
    env: Mapping[str, str],
) -> Path | None:
    """Resolve configuration file path following search order.

    Search order:
    1. CLI-provided path (must exist)
    2. INJECTION_CONFIG environment variable
    3. ./injection.toml (current directory)
    4. ~/.config/injection.toml (user config directory)

    Returns:
        Resolved path, or None when no config file exists

    Raises:
        ConfigError: If the CLI-provided file does not exist
    """
    if cli_path:
        cli_path = Path(cli_path)
        if cli_path.exists():
            logger.info("Using config file: %s", cli_path.resolve())
            return cli_path.resolve()
        raise ConfigError(f"Config file not found: {cli_path}")

    candidates = []
    if env_path := env.get(CONFIG_ENV_VAR):
        candidates.append(Path(env_path))

    candidates.append(Path("injection.toml"))
    candidates.append(Path.home() / ".config" / "injection.toml")

    for candidate in candidates:
        if candidate.exists():
            logger.info("Using config file: %s", candidate.resolve())
            return candidate.resolve()

    logger.debug(
        "No config file found (searched: %s), using defaults",
        ", ".join(str(c) for c in candidates),
    )
    return None


def _load_toml_file(path: Path) -> dict:
    """Load and parse TOML configuration file.

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except Exception as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e


def _coerce_config_values(raw_data: dict, env: Mapping[str, str]) -> dict:
    """Normalize raw TOML data for dataclass instantiation.

    Args:
        raw_data: Raw parsed TOML dictionary
        env: Environment variables for overrides

    Returns:
        Coerced dictionary ready for dataclass instantiation
    """
    coerced = {}

    for section in ("injector", "general"):
        value = raw_data.get(section, {})
        if not isinstance(value, dict):
            raise ConfigError(f"Section [{section}] must be a table")
        coerced[section] = dict(value)

    injector_section = coerced["injector"]

    if backend := env.get(BACKEND_ENV_VAR):
        logger.debug("Backend overridden by %s=%s", BACKEND_ENV_VAR, backend)
        injector_section["backend"] = backend

    for key in ("settle_delay", "timeout"):
        value = injector_section.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            injector_section[key] = float(value)

    return coerced


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_injector_config(injector_cfg: InjectorConfig) -> None:
    """Validate injector configuration.

    Args:
        injector_cfg: InjectorConfig instance

    Raises:
        ConfigError: If injector configuration is invalid
    """
    try:
        InjectBackend.parse(injector_cfg.backend)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if not _is_number(injector_cfg.settle_delay):
        raise ConfigError(
            f"settle_delay must be a number, got {injector_cfg.settle_delay!r}"
        )
    if injector_cfg.settle_delay < 0:
        raise ConfigError(
            f"settle_delay must be non-negative, got {injector_cfg.settle_delay}"
        )

    if injector_cfg.timeout is not None:
        if not _is_number(injector_cfg.timeout):
            raise ConfigError(
                f"timeout must be a number, got {injector_cfg.timeout!r}"
            )
        if injector_cfg.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {injector_cfg.timeout}")

    if not isinstance(injector_cfg.dry_run, bool):
        raise ConfigError(f"dry_run must be a boolean, got {injector_cfg.dry_run!r}")

    if injector_cfg.clipboard not in CLIPBOARD_PORTS:
        valid = ", ".join(CLIPBOARD_PORTS)
        raise ConfigError(
            f"Unknown clipboard '{injector_cfg.clipboard}'. Must be one of: {valid}"
        )


def validate_general_config(general_cfg: GeneralConfig) -> None:
    """Validate general configuration.

    Raises:
        ConfigError: If general configuration is invalid
    """
    if not isinstance(general_cfg.verbose, bool):
        raise ConfigError(f"verbose must be a boolean, got {general_cfg.verbose!r}")


def load_config(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from TOML file.

    Convenience wrapper around Config.from_toml().

    Args:
        path: Explicit config file path (optional)
        env: Environment variables (defaults to os.environ)

    Returns:
        Loaded Config instance

    Raises:
        ConfigError: If config cannot be loaded
    """
    return Config.from_toml(path, env=env)
