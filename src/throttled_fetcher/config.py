"""Configuration management with Pydantic models."""

from pathlib import Path

from pydantic import BaseModel, Field


class FetcherConfig(BaseModel):
    """Configuration for fetching and throttle handling."""

    max_concurrent_requests: int = Field(default=0, ge=0)  # 0 = unlimited
    timeout_ms: int = Field(default=30000, ge=1000, le=120000)
    user_agent: str = "ThrottledFetcher/0.1"
    follow_redirects: bool = True
    default_retry_after_seconds: float = Field(default=60.0, ge=0.0)
    max_throttle_retries: int = Field(default=0, ge=0)  # 0 = unlimited


class CacheConfig(BaseModel):
    """Configuration for the response cache."""

    ttl_seconds: float = Field(default=3600.0, gt=0.0)
    max_entries: int = Field(default=0, ge=0)  # 0 = unbounded


class AppConfig(BaseModel):
    """Main application configuration."""

    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    verbose: bool = False

    @classmethod
    def from_toml(cls, path: Path) -> "AppConfig":
        """Load config from a TOML file."""
        try:
            import tomllib  # type: ignore[import-not-found]
        except ModuleNotFoundError:
            import tomli as tomllib  # type: ignore[import-not-found]
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)

    def to_toml(self, exclude_defaults: bool = True) -> str:
        """Serialize config to TOML format."""
        data = self.model_dump(mode="json", exclude_defaults=exclude_defaults)
        return _dict_to_toml(data)


def _toml_value(v: object) -> str:
    """Format a Python value as a TOML literal."""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    if isinstance(v, str):
        escaped = v.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(v, list):
        items = ", ".join(_toml_value(i) for i in v)
        return f"[{items}]"
    return f'"{v}"'


def _dict_to_toml(data: dict) -> str:
    """Convert a dict with one level of tables to a TOML string."""
    lines: list[str] = []
    for k, v in data.items():
        if not isinstance(v, dict):
            lines.append(f"{k} = {_toml_value(v)}")
    for k, v in data.items():
        if isinstance(v, dict):
            if lines:
                lines.append("")
            lines.append(f"[{k}]")
            for sk, sv in v.items():
                lines.append(f"{sk} = {_toml_value(sv)}")
    return "\n".join(lines) + "\n"
