"""
Configuration for roamql.

Settings are applied in layers, later layers winning:

1. Built-in defaults (the ``RoamqlConfig`` field defaults)
2. User file: ~/.config/roamql/config.toml
3. Local file: ./roamql.toml, or ./.roamqlrc when that is absent
4. An explicit file given with ``--config``
5. ROAMQL_* environment variables (ROAMQL_PAGE_SIZE=20)
6. Command-line overrides passed to ``init_config``

The merged result is validated before it is handed out.
"""
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import tomli
import tomli_w

logger = logging.getLogger(__name__)

ENV_PREFIX = "ROAMQL_"
LOCAL_CONFIG_NAMES = ("roamql.toml", ".roamqlrc")

OUTPUT_FORMATS = ("table", "json", "ids", "plain")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

PATH_SETTINGS = ("database", "saved_queries_file", "bookmarks_file")
BOOL_SETTINGS = ("database_echo", "cache_enabled", "cache_track_store_version")
INT_SETTINGS = ("page_size",)


class ConfigError(ValueError):
    """A configuration file or setting roamql cannot use."""


def user_config_path() -> Path:
    return Path.home() / ".config" / "roamql" / "config.toml"


def config_sources(config_file: Optional[Path] = None) -> Iterator[Path]:
    """
    Yield the config files to apply, lowest priority first.

    Raises:
        ConfigError: If an explicit ``config_file`` does not exist
    """
    if user_config_path().exists():
        yield user_config_path()

    for name in LOCAL_CONFIG_NAMES:
        local = Path.cwd() / name
        if local.exists():
            yield local
            break

    if config_file is not None:
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
        yield config_file


def read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def parse_env_value(name: str, raw: str) -> Any:
    """Convert a ROAMQL_* string to the type of setting ``name``."""
    if name in BOOL_SETTINGS:
        return raw.strip().lower() in ("true", "1", "yes", "on")
    if name in INT_SETTINGS:
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"{ENV_PREFIX}{name.upper()} must be an integer, got {raw!r}") from None
    return raw


@dataclass
class RoamqlConfig:
    """roamql settings. See the module docstring for the load order."""

    # Node store
    database: str = field(default="roam.db")
    database_url: Optional[str] = field(default=None)  # overrides database
    database_echo: bool = field(default=False)

    # Named queries
    saved_queries_file: Optional[str] = field(default=None)
    bookmarks_file: Optional[str] = field(default=None)

    # Resolution cache
    cache_enabled: bool = field(default=True)
    cache_track_store_version: bool = field(default=True)

    # CLI output
    default_sort: Optional[str] = field(default=None)
    output_format: str = field(default="table")
    page_size: int = field(default=50)  # default `query --limit`; 0 shows everything

    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "RoamqlConfig":
        """Build a validated configuration from files and environment."""
        config = cls()
        for path in config_sources(config_file):
            logger.debug(f"Reading config from {path}")
            config.update(read_toml(path), source=str(path))
        config.apply_environment()
        config.expand_paths()
        return config.validate()

    @classmethod
    def setting_names(cls):
        return [f.name for f in fields(cls)]

    def update(self, data: Dict[str, Any], source: str = "overrides"):
        """Apply settings from a mapping. Unknown keys are logged and skipped."""
        known = self.setting_names()
        for key, value in data.items():
            name = key.replace("-", "_")
            if name not in known:
                logger.warning(f"Ignoring unknown setting {key!r} from {source}")
                continue
            setattr(self, name, value)

    def apply_environment(self, environ: Optional[Dict[str, str]] = None):
        """Apply ROAMQL_<SETTING> variables."""
        environ = os.environ if environ is None else environ
        for name in self.setting_names():
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None:
                setattr(self, name, parse_env_value(name, raw))

    def expand_paths(self):
        """Expand ~ and $VARS in file settings."""
        for name in PATH_SETTINGS:
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, os.path.expanduser(os.path.expandvars(value)))

    def validate(self) -> "RoamqlConfig":
        """
        Check setting values, normalising ``log_level`` to upper case.

        ``default_sort`` is only checked for shape here; whether the name
        is a registered sort is checked when the query engine is built.

        Raises:
            ConfigError: On the first invalid setting
        """
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output_format must be one of {', '.join(OUTPUT_FORMATS)}, got {self.output_format!r}"
            )

        level = str(self.log_level).upper()
        if level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        self.log_level = level

        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size < 0:
            raise ConfigError(f"page_size must be a non-negative integer, got {self.page_size!r}")

        if self.default_sort is not None and (not isinstance(self.default_sort, str) or not self.default_sort):
            raise ConfigError(f"default_sort must be a sort name, got {self.default_sort!r}")

        return self

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level.upper())

    def save(self, path: Optional[Path] = None):
        """Write the settings as TOML, to the user config file by default."""
        path = path or user_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        # TOML has no null
        data = {k: v for k, v in asdict(self).items() if v is not None}
        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def get_database_path(self) -> Path:
        """``database`` as an absolute path, relative to the working directory."""
        path = Path(self.database)
        return path if path.is_absolute() else Path.cwd() / path

    def get_database_url(self) -> str:
        """SQLAlchemy URL: ``database_url`` if set, else a SQLite file URL."""
        return self.database_url or f"sqlite:///{self.get_database_path()}"

    def is_sqlite(self) -> bool:
        return self.get_database_url().startswith("sqlite:")


_config: Optional[RoamqlConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> RoamqlConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None or reload:
        _config = RoamqlConfig.load(config_file)
    return _config


def init_config(database: Optional[str] = None, config_file: Optional[Path] = None, **overrides) -> RoamqlConfig:
    """
    Load the configuration and apply command-line overrides on top.

    ``None`` overrides are ignored, so unset CLI options leave the loaded
    value alone.
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    overrides = {k: v for k, v in overrides.items() if v is not None}
    if database:
        overrides["database"] = database
    config.update(overrides, source="command line")

    return config.validate()
