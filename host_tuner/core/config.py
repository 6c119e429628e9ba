"""
Run configuration for host-tuner.

Defaults match a stock Linux VPS; every field can be overridden through a
HOST_TUNER_* environment variable and then again by CLI flags.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping

from host_tuner.core.errors import ConfigError
from host_tuner.core.models import Profile

SYSCTL_CONF = "/etc/sysctl.conf"
UNIT_DIR = "/etc/systemd/system"
UNIT_NAME = "host-tuner.service"
SYSFS_ROOT = "/sys"
PROCFS_ROOT = "/proc"
PING_HOST = "clob.polymarket.com"
PING_COUNT = 5
PING_TIMEOUT_S = 2

TOOL_NAME = "host-tuner"
TOOL_VERSION = "0.1.0"


@dataclass(frozen=True)
class TunerConfig:
    profile: Profile = Profile.STANDARD
    sysctl_conf: str = SYSCTL_CONF
    unit_dir: str = UNIT_DIR
    unit_name: str = UNIT_NAME
    sysfs_root: str = SYSFS_ROOT
    procfs_root: str = PROCFS_ROOT
    ping_host: str = PING_HOST
    ping_count: int = PING_COUNT
    ping_timeout_s: int = PING_TIMEOUT_S

    @property
    def unit_path(self) -> str:
        return os.path.join(self.unit_dir, self.unit_name)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TunerConfig:
        env = os.environ if environ is None else environ
        base = cls()
        return cls(
            profile=parse_profile(env.get("HOST_TUNER_PROFILE", base.profile.value)),
            sysctl_conf=env.get("HOST_TUNER_SYSCTL_CONF", base.sysctl_conf),
            unit_dir=env.get("HOST_TUNER_UNIT_DIR", base.unit_dir),
            sysfs_root=env.get("HOST_TUNER_SYSFS_ROOT", base.sysfs_root),
            procfs_root=env.get("HOST_TUNER_PROCFS_ROOT", base.procfs_root),
            ping_host=env.get("HOST_TUNER_PING_HOST", base.ping_host),
            ping_count=_positive_int(env, "HOST_TUNER_PING_COUNT", base.ping_count),
            ping_timeout_s=_positive_int(env, "HOST_TUNER_PING_TIMEOUT", base.ping_timeout_s),
        )

    def with_profile(self, profile: str | Profile | None) -> TunerConfig:
        if profile is None:
            return self
        return replace(self, profile=parse_profile(profile))


def parse_profile(value: str | Profile) -> Profile:
    if isinstance(value, Profile):
        return value
    try:
        return Profile(value.strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in Profile)
        raise ConfigError(f"unknown profile {value!r} (expected one of: {choices})") from None


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value
