"""
Configuration management for Pod Watchdog

Settings are read from an optional ``config.yaml`` and from the environment,
which may be seeded from a ``.env`` file. Environment variables take
precedence over the file. The configuration is loaded once at startup and
never mutated afterwards.
"""

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError

DEFAULT_NAMESPACES = "default"
DEFAULT_SCHEDULE_INTERVAL = "10m"
DEFAULT_MAX_POD_LIFETIME = "24h"
DEFAULT_HTTP_ADDR = ":8080"
DEFAULT_HTTP_READ_TIMEOUT = "10s"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"

LOG_FORMATS = ("json", "console")

CONFIG_FILE_NAME = "config.yaml"
CONFIG_SEARCH_PATHS = (".", "configs")

# logging.mode in the config file selects the renderer
LOG_MODES = {"production": "json", "development": "console"}

_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off", "")


@dataclass(frozen=True)
class WatchdogConfig:
    """What to watch and how old pods may get"""

    namespaces: Tuple[str, ...] = ("default",)
    label_selectors: Mapping[str, str] = field(default_factory=dict)
    schedule_interval: timedelta = timedelta(minutes=10)
    max_pod_lifetime: timedelta = timedelta(hours=24)
    dry_run: bool = False
    ttl_label: str = ""

    def __post_init__(self):
        object.__setattr__(self, "namespaces", tuple(self.namespaces))
        object.__setattr__(self, "label_selectors", MappingProxyType(dict(self.label_selectors)))


@dataclass(frozen=True)
class HttpConfig:
    host: str = ""
    port: int = 8080
    read_timeout: timedelta = timedelta(seconds=10)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = DEFAULT_LOG_LEVEL
    format: str = DEFAULT_LOG_FORMAT


@dataclass(frozen=True)
class Config:
    """Configuration class for Pod Watchdog"""

    watchdog: WatchdogConfig = field(default_factory=WatchdogConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Kubernetes connection
    kube_config_path: Optional[str] = None

    # Perform a single cycle and exit
    run_once: bool = False

    def to_dict(self) -> Dict[str, object]:
        """Loggable view of the configuration"""
        return {
            "namespaces": list(self.watchdog.namespaces),
            "label_selectors": dict(self.watchdog.label_selectors),
            "schedule_interval_seconds": self.watchdog.schedule_interval.total_seconds(),
            "max_pod_lifetime_seconds": self.watchdog.max_pod_lifetime.total_seconds(),
            "dry_run": self.watchdog.dry_run,
            "ttl_label": self.watchdog.ttl_label,
            "http_addr": f"{self.http.host}:{self.http.port}",
            "http_read_timeout_seconds": self.http.read_timeout.total_seconds(),
            "log_level": self.logging.level,
            "log_format": self.logging.format,
            "run_once": self.run_once,
        }


def parse_duration(value: str) -> timedelta:
    """Parse ``90s``, ``10m``, ``1h30m``, ``500ms`` or a bare number of seconds"""
    raw = value.strip()
    if not raw:
        raise ConfigurationError("Empty duration")

    try:
        return timedelta(seconds=float(raw))
    except (ValueError, OverflowError):
        pass

    position = 0
    total = timedelta()
    try:
        for match in _DURATION_PART.finditer(raw):
            if match.start() != position:
                break
            total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            position = match.end()
    except OverflowError:
        raise ConfigurationError(f"Duration out of range: {value!r}") from None

    if position != len(raw):
        raise ConfigurationError(f"Invalid duration: {value!r}")
    return total


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean: {value!r}")


def parse_namespaces(value: str) -> Tuple[str, ...]:
    return tuple(ns.strip() for ns in value.split(",") if ns.strip())


def parse_label_selectors(value: str) -> Dict[str, str]:
    """Parse ``app=web,tier=frontend`` into a mapping"""
    selectors = {}
    for clause in value.split(","):
        clause = clause.strip()
        if not clause:
            continue
        key, sep, label_value = clause.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"Invalid label selector clause: {clause!r}")
        selectors[key.strip()] = label_value.strip()
    return selectors


def parse_addr(value: str) -> Tuple[str, int]:
    """Split ``host:port`` (host may be empty) into its parts"""
    host, sep, port = value.strip().rpartition(":")
    if not sep:
        raise ConfigurationError(f"Invalid HTTP address: {value!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ConfigurationError(f"Invalid HTTP port in {value!r}") from None
    if not 0 <= port_number <= 65535:
        raise ConfigurationError(f"HTTP port out of range in {value!r}")
    return host, port_number


def find_config_file(path: Optional[str] = None) -> Optional[str]:
    """Return the config file to read, or None when there is none"""
    if path:
        if not os.path.isfile(path):
            raise ConfigurationError(f"Config file not found: {path}")
        return path

    for directory in CONFIG_SEARCH_PATHS:
        candidate = os.path.join(directory, CONFIG_FILE_NAME)
        if os.path.isfile(candidate):
            return candidate
    return None


def read_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section {name!r} must be a mapping")
    return section


def _setting(env_name: str, section: Mapping[str, Any], key: str, default: Any) -> Any:
    """Environment first, then the config file, then the default"""
    value = os.getenv(env_name)
    if value is not None:
        return value
    value = section.get(key)
    return default if value is None else value


def _namespaces(value: Any) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(ns).strip() for ns in value if str(ns).strip())
    return parse_namespaces(str(value))


def _label_selectors(value: Any) -> Dict[str, str]:
    if isinstance(value, dict):
        return {str(key): str(label_value) for key, label_value in value.items()}
    return parse_label_selectors(str(value))


def _positive_duration(name: str, value: Any) -> timedelta:
    duration = parse_duration(str(value))
    if duration <= timedelta():
        raise ConfigurationError(f"{name} must be greater than zero")
    return duration


def load_config(env_file: Optional[str] = None, config_file: Optional[str] = None) -> Config:
    """Load the configuration from the config file and the environment"""
    load_dotenv(env_file or find_dotenv(usecwd=True))

    path = find_config_file(config_file or os.getenv("WATCHDOG_CONFIG_FILE"))
    data = read_config_file(path) if path else {}
    watchdog_section = _section(data, "watchdog")
    http_section = _section(data, "http")
    logging_section = _section(data, "logging")

    log_format = os.getenv("LOG_FORMAT")
    if log_format is None:
        mode = str(logging_section.get("mode", "production")).lower()
        if mode not in LOG_MODES:
            raise ConfigurationError(f"logging.mode must be one of {', '.join(LOG_MODES)}")
        log_format = LOG_MODES[mode]
    log_format = log_format.lower()
    if log_format not in LOG_FORMATS:
        raise ConfigurationError(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")

    host, port = parse_addr(str(_setting("HTTP_ADDR", http_section, "addr", DEFAULT_HTTP_ADDR)))
    read_timeout = _positive_duration(
        "HTTP_READ_TIMEOUT",
        _setting("HTTP_READ_TIMEOUT", http_section, "readTimeout", DEFAULT_HTTP_READ_TIMEOUT),
    )

    watchdog = WatchdogConfig(
        namespaces=_namespaces(
            _setting("WATCHDOG_NAMESPACES", watchdog_section, "namespaces", DEFAULT_NAMESPACES)
        ),
        label_selectors=_label_selectors(
            _setting("WATCHDOG_LABEL_SELECTORS", watchdog_section, "labelSelectors", "")
        ),
        schedule_interval=_positive_duration(
            "WATCHDOG_SCHEDULE_INTERVAL",
            _setting("WATCHDOG_SCHEDULE_INTERVAL", watchdog_section, "scheduleInterval", DEFAULT_SCHEDULE_INTERVAL),
        ),
        max_pod_lifetime=_positive_duration(
            "WATCHDOG_MAX_POD_LIFETIME",
            _setting("WATCHDOG_MAX_POD_LIFETIME", watchdog_section, "maxPodLifetime", DEFAULT_MAX_POD_LIFETIME),
        ),
        dry_run=parse_bool(str(_setting("WATCHDOG_DRY_RUN", watchdog_section, "dryRun", "false"))),
        ttl_label=str(_setting("WATCHDOG_TTL_LABEL", watchdog_section, "ttlLabel", "")).strip(),
    )

    return Config(
        watchdog=watchdog,
        http=HttpConfig(host=host, port=port, read_timeout=read_timeout),
        logging=LoggingConfig(
            level=str(_setting("LOG_LEVEL", logging_section, "level", DEFAULT_LOG_LEVEL)).upper(),
            format=log_format,
        ),
        kube_config_path=os.getenv("KUBECONFIG") or None,
        run_once=parse_bool(os.getenv("RUN_ONCE", "false")),
    )
