"""Crawler configuration: timeout, default headers, connection limit.

Values may be taken from the environment with SpiderConfig.from_env().
"""

import os
from dataclasses import dataclass, field

import httpx

DEFAULT_TIMEOUT = 100.0
# httpx's own pool default
DEFAULT_CONNECTION_LIMIT = 100

ENV_PREFIX = "SITESPIDER_"


def _env_bool(value: str) -> bool:
    return value.strip().lower() not in ("0", "false", "no", "off")


@dataclass
class SpiderConfig:
    """
    Settings applied to the transport when a run starts.

    connection_limit bounds both the HTTP connection pool and the worker
    pool, so it is the only cap on concurrent in-flight fetches.
    """

    timeout: float = DEFAULT_TIMEOUT
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    connection_limit: int = DEFAULT_CONNECTION_LIMIT
    verify: bool = True
    retries: int = 0

    def __post_init__(self) -> None:
        # Case-insensitive keys whatever mapping the caller passed
        self.headers = httpx.Headers(self.headers)
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.connection_limit < 1:
            raise ValueError(f"connection_limit must be >= 1, got {self.connection_limit}")
        if self.retries < 0:
            raise ValueError(f"retries must be >= 0, got {self.retries}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "SpiderConfig":
        """Build from SITESPIDER_* variables; unset ones keep their defaults."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}
        if env.get(ENV_PREFIX + "TIMEOUT"):
            kwargs["timeout"] = float(env[ENV_PREFIX + "TIMEOUT"])
        if env.get(ENV_PREFIX + "CONNECTION_LIMIT"):
            kwargs["connection_limit"] = int(env[ENV_PREFIX + "CONNECTION_LIMIT"])
        if env.get(ENV_PREFIX + "VERIFY"):
            kwargs["verify"] = _env_bool(env[ENV_PREFIX + "VERIFY"])
        if env.get(ENV_PREFIX + "RETRIES"):
            kwargs["retries"] = int(env[ENV_PREFIX + "RETRIES"])
        if env.get(ENV_PREFIX + "USER_AGENT"):
            kwargs["headers"] = {"User-Agent": env[ENV_PREFIX + "USER_AGENT"]}
        return cls(**kwargs)
