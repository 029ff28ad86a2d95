"""Configuration models using Pydantic for validation."""
from typing import Any, Dict, List, Literal, Optional
import os
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) or Go-style strings such as
    "2s", "500ms" or "1m30s".
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise ValueError(f"Invalid duration {value!r}, want e.g. 2s, 500ms or 1m30s")
    return total


class LabelFilter(BaseModel):
    """Exact label equality constraint."""
    name: str
    value: str

    @classmethod
    def parse(cls, text: str) -> "LabelFilter":
        """Parse a `name=value` argument."""
        name, sep, value = text.partition("=")
        if not sep or not name:
            raise ValueError(f"Bad label filter {text!r}, want name=value")
        return cls(name=name, value=value)

    def __str__(self) -> str:
        return f"{self.name}={self.value}"


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "WARNING"
    log_format: Literal["json", "text"] = "text"
    log_file: Optional[str] = None


class ScrapeConfig(BaseModel):
    """Scrape target and schedule."""
    endpoint: str
    interval_s: float = 2.0
    timeout_s: float = 5.0

    @field_validator('endpoint')
    @classmethod
    def validate_endpoint(cls, v):
        """Require a scrape target."""
        if not v or not v.strip():
            raise ValueError(
                "must specify an endpoint to scrape, "
                "e.g. --endpoint http://localhost:9090/metrics"
            )
        return v.strip()

    @field_validator('interval_s', 'timeout_s', mode='before')
    @classmethod
    def validate_duration(cls, v):
        """Accept Go-style duration strings."""
        seconds = parse_duration(v)
        if seconds <= 0:
            raise ValueError("Duration must be positive")
        return seconds


class FilterConfig(BaseModel):
    """Name and label filters applied to every scrape."""
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    labels: List[LabelFilter] = Field(default_factory=list)

    @field_validator('labels', mode='before')
    @classmethod
    def validate_labels(cls, v):
        """Parse `name=value` strings into label filters."""
        if v is None:
            return []
        if isinstance(v, dict):
            return [LabelFilter(name=k, value=str(val)) for k, val in v.items()]
        return [LabelFilter.parse(item) if isinstance(item, str) else item for item in v]


class DisplayConfig(BaseModel):
    """Terminal view settings."""
    show_graph: bool = False
    page_size: Optional[int] = Field(default=None, ge=1)  # None = fit terminal
    graph_height: int = Field(default=12, ge=2)
    graph_width: int = Field(default=70, ge=10)


class ControlAPIConfig(BaseModel):
    """Optional status API."""
    enabled: bool = False
    port: int = 8081
    bind_address: str = "127.0.0.1"


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    scrape: ScrapeConfig
    filters: FilterConfig = Field(default_factory=FilterConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    api: ControlAPIConfig = Field(default_factory=ControlAPIConfig)


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    if raw.get(name) is None:
        raw[name] = {}
    return raw[name]


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Config:
    """
    Load and validate configuration.

    Sources are layered: YAML file (optional), then environment
    variables, then explicit overrides (normally from the command line).

    Raises:
        FileNotFoundError: if config_path does not exist
        ValueError: if the merged configuration is invalid
    """
    raw_config: Dict[str, Any] = {}

    if config_path:
        import yaml

        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_endpoint := os.getenv('MET_ENDPOINT'):
        _section(raw_config, 'scrape')['endpoint'] = env_endpoint

    if env_interval := os.getenv('MET_INTERVAL'):
        _section(raw_config, 'scrape')['interval_s'] = env_interval

    if env_log_level := os.getenv('LOG_LEVEL'):
        _section(raw_config, 'global')['log_level'] = env_log_level

    for section, values in (overrides or {}).items():
        target = _section(raw_config, section)
        for key, value in values.items():
            if value is not None:
                target[key] = value

    _section(raw_config, 'scrape').setdefault('endpoint', '')

    try:
        return Config(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
