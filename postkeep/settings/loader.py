"""Helpers for loading configuration from TOML and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

try:  # pragma: no cover - Python 3.11+ includes tomllib
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older versions
    import tomli as tomllib  # type: ignore[no-redef]

from ..errors import ConfigError

DEFAULT_CONFIG_NAME = "config.toml"
CONFIG_ENV_VAR = "POSTKEEP_CONFIG"
DEFAULT_TOKEN_ENV_VAR = "DEFAULT_TELEGRAPH_ACCOUNT_TOKEN"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


@dataclass(slots=True)
class HttpSettings:
    timeout: float = 30.0
    max_attempts: int = 3
    backoff_factor: float = 1.5
    transport: str = "requests"
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(slots=True)
class TelegraphSettings:
    access_token: str | None = None
    short_name: str = "postkeep"
    author_name: str | None = None
    author_url: str | None = None
    token_env: str = DEFAULT_TOKEN_ENV_VAR


@dataclass(slots=True)
class S3Settings:
    """Target of the object-storage upload fallback (an S3 access point)."""

    access_point: str
    account_id: str
    bucket: str
    region: str = "us-west-2"


@dataclass(slots=True)
class TwitterSettings:
    bearer_token: str | None = None
    max_depth: int = 3
    query_parameters: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class PathSettings:
    state_dir: Path

    @property
    def cache_dir(self) -> Path:
        return self.state_dir / "results"


@dataclass(slots=True)
class AppConfig:
    http: HttpSettings
    telegraph: TelegraphSettings
    paths: PathSettings
    s3: S3Settings | None = None
    twitter: TwitterSettings = field(default_factory=TwitterSettings)
    backup: dict[str, Any] = field(default_factory=dict)
    structured_logs: bool = False
    verbose: bool = False


def _config_path(explicit: str | os.PathLike[str] | None, env: Mapping[str, str]) -> tuple[Path, bool]:
    if explicit:
        candidate, required = Path(explicit), True
    elif env.get(CONFIG_ENV_VAR):
        candidate, required = Path(env[CONFIG_ENV_VAR]), True
    else:
        candidate, required = Path(DEFAULT_CONFIG_NAME), False
    if not candidate.is_absolute():
        candidate = Path.cwd() / candidate
    return candidate, required


def _load_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {path}")
        return {}
    with path.open("rb") as fp:
        return tomllib.load(fp)


def _to_path(value: str | None, *, fallback: Path) -> Path:
    if not value:
        return fallback
    candidate = Path(value)
    return candidate if candidate.is_absolute() else Path.cwd() / candidate


def _build_s3(section: Mapping[str, Any]) -> S3Settings | None:
    if not section:
        return None
    missing = [key for key in ("access_point", "account_id", "bucket") if not section.get(key)]
    if missing:
        raise ConfigError(f"storage.s3 is missing {', '.join(missing)}")
    return S3Settings(
        access_point=str(section["access_point"]),
        account_id=str(section["account_id"]),
        bucket=str(section["bucket"]),
        region=str(section.get("region", "us-west-2")),
    )


def load_config(
    config_path: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    env = env if env is not None else os.environ
    path, required = _config_path(config_path, env)
    data = _load_toml(path, required=required)

    http_section = data.get("http", {})
    telegraph_section = data.get("telegraph", {})
    storage_section = data.get("storage", {})
    sources_section = data.get("sources", {})
    paths_section = data.get("paths", {})
    logging_section = data.get("logging", {})

    http_settings = HttpSettings(
        timeout=float(http_section.get("timeout", 30)),
        max_attempts=int(http_section.get("max_attempts", 3)),
        backoff_factor=float(http_section.get("backoff_factor", 1.5)),
        transport=str(http_section.get("transport", "requests")).lower(),
        user_agent=str(http_section.get("user_agent", DEFAULT_USER_AGENT)),
    )

    token_env = str(telegraph_section.get("token_env", DEFAULT_TOKEN_ENV_VAR))
    telegraph = TelegraphSettings(
        access_token=telegraph_section.get("access_token") or env.get(token_env),
        short_name=str(telegraph_section.get("short_name", "postkeep")),
        author_name=telegraph_section.get("author_name"),
        author_url=telegraph_section.get("author_url"),
        token_env=token_env,
    )

    twitter_section = sources_section.get("twitter", {})
    twitter = TwitterSettings(
        bearer_token=twitter_section.get("bearer_token") or env.get("TWITTER_BEARER_TOKEN"),
        max_depth=int(twitter_section.get("max_depth", 3)),
        query_parameters={
            str(k): str(v) for k, v in twitter_section.get("query_parameters", {}).items()
        },
    )

    state_dir = _to_path(paths_section.get("state_dir"), fallback=Path.cwd() / "data" / "state")

    return AppConfig(
        http=http_settings,
        telegraph=telegraph,
        paths=PathSettings(state_dir=state_dir),
        s3=_build_s3(storage_section.get("s3", {})),
        twitter=twitter,
        backup=dict(data.get("backup", {})),
        structured_logs=bool(logging_section.get("structured", False)),
        verbose=bool(logging_section.get("verbose", False)),
    )
