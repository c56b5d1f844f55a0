"""
SDK configuration: RPC endpoint, retry/timeouts and transaction defaults.

- Loads sane defaults and supports overrides via environment variables (SUI_*).
- Provides helpers for building HTTP headers and validating endpoints.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .version import user_agent as _default_user_agent

_DEFAULT_RPC = "http://127.0.0.1:9000"
_DEFAULT_GAS_COIN_TYPE = "0x2::sui::SUI"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


@dataclass(slots=True)
class SDKConfig:
    # Core
    rpc_url: str = field(default_factory=lambda: _DEFAULT_RPC)
    # HTTP behavior
    request_timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.25
    backoff_max: float = 4.0
    # Submission / confirmation
    submit_timeout: float = 30.0
    confirmation_timeout: float = 60.0
    poll_interval: float = 0.5
    poll_max_interval: float = 5.0
    confirmation_retries: int = 1
    max_stale_retries: int = 1
    # Transaction defaults
    default_gas_budget: int = 10_000_000
    gas_coin_type: str = _DEFAULT_GAS_COIN_TYPE
    # Headers / identity
    user_agent: str = field(default_factory=_default_user_agent)

    def __post_init__(self) -> None:
        _ensure_scheme(self.rpc_url, ("http", "https"))
        for name in ("request_timeout", "submit_timeout", "confirmation_timeout", "poll_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.poll_max_interval < self.poll_interval:
            raise ValueError("poll_max_interval must be >= poll_interval")
        for name in ("max_retries", "confirmation_retries", "max_stale_retries"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.default_gas_budget <= 0:
            raise ValueError("default_gas_budget must be > 0")

    @classmethod
    def from_env(cls, prefix: str = "SUI_") -> "SDKConfig":
        """
        Create config from environment variables:

        SUI_RPC_URL             (http/https)
        SUI_TIMEOUT             (float seconds, per HTTP request)
        SUI_MAX_RETRIES         (int, idempotent RPC retries)
        SUI_BACKOFF             (float seconds, first backoff step)
        SUI_BACKOFF_MAX         (float seconds, backoff cap)
        SUI_SUBMIT_TIMEOUT      (float seconds)
        SUI_CONFIRM_TIMEOUT     (float seconds, per confirmation window)
        SUI_POLL_INTERVAL       (float seconds, first effects poll interval)
        SUI_POLL_MAX_INTERVAL   (float seconds)
        SUI_CONFIRM_RETRIES     (int, extra confirmation windows)
        SUI_STALE_RETRIES       (int, refresh cycles after stale rejections)
        SUI_GAS_BUDGET          (int, default gas budget)
        SUI_GAS_COIN_TYPE       (str, e.g. 0x2::sui::SUI)
        SUI_USER_AGENT          (str)
        """
        rpc = _env(f"{prefix}RPC_URL", _DEFAULT_RPC)
        _ensure_scheme(rpc, ("http", "https"))

        return cls(
            rpc_url=rpc or _DEFAULT_RPC,
            request_timeout=float(_env(f"{prefix}TIMEOUT", "10.0")),
            max_retries=int(_env(f"{prefix}MAX_RETRIES", "3")),
            backoff_base=float(_env(f"{prefix}BACKOFF", "0.25")),
            backoff_max=float(_env(f"{prefix}BACKOFF_MAX", "4.0")),
            submit_timeout=float(_env(f"{prefix}SUBMIT_TIMEOUT", "30.0")),
            confirmation_timeout=float(_env(f"{prefix}CONFIRM_TIMEOUT", "60.0")),
            poll_interval=float(_env(f"{prefix}POLL_INTERVAL", "0.5")),
            poll_max_interval=float(_env(f"{prefix}POLL_MAX_INTERVAL", "5.0")),
            confirmation_retries=int(_env(f"{prefix}CONFIRM_RETRIES", "1")),
            max_stale_retries=int(_env(f"{prefix}STALE_RETRIES", "1")),
            default_gas_budget=int(_env(f"{prefix}GAS_BUDGET", "10000000")),
            gas_coin_type=_env(f"{prefix}GAS_COIN_TYPE", _DEFAULT_GAS_COIN_TYPE)
            or _DEFAULT_GAS_COIN_TYPE,
            user_agent=_env(f"{prefix}USER_AGENT", None) or _default_user_agent(),
        )

    @classmethod
    def with_overrides(
        cls, base: Optional["SDKConfig"] = None, **overrides: Any
    ) -> "SDKConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data})
        return cls(**data)

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rpc_url": self.rpc_url,
            "request_timeout": float(self.request_timeout),
            "max_retries": int(self.max_retries),
            "backoff_base": float(self.backoff_base),
            "backoff_max": float(self.backoff_max),
            "submit_timeout": float(self.submit_timeout),
            "confirmation_timeout": float(self.confirmation_timeout),
            "poll_interval": float(self.poll_interval),
            "poll_max_interval": float(self.poll_max_interval),
            "confirmation_retries": int(self.confirmation_retries),
            "max_stale_retries": int(self.max_stale_retries),
            "default_gas_budget": int(self.default_gas_budget),
            "gas_coin_type": self.gas_coin_type,
            "user_agent": self.user_agent,
        }


__all__ = ["SDKConfig"]
