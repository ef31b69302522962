r"""
Run profiles and environment configuration.

Profiles size the stress driver and bound every wait the harness performs:
    - quick: 100 increments, short handshake timeouts (CI smoke runs)
    - standard: 1000 increments (the reference lost-update experiment)
    - soak: 10000 increments, generous timeouts

    from isolation_bench.config import PROFILES, get_profile

    profile = get_profile("quick")
    print(f"Iterations: {profile.iterations}")
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from isolation_bench.types import RunProfile

# Look for .env in current dir, then next to the project
env_file = Path(".env")
if not env_file.exists():
    env_file = Path(__file__).parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file)

__all__ = [
    "PROFILES",
    "DEFAULT_PROFILE",
    "MIN_WORKERS",
    "default_workers",
    "get_profile",
    "get_env",
    "ENV_PREFIX",
]

ENV_PREFIX = "ISOLATION_BENCH_"

MIN_WORKERS = 8

PROFILES: dict[str, RunProfile] = {
    "quick": RunProfile(
        name="quick",
        iterations=100,
        retry_budget=3,
        stress_retry_budget=500,
        handshake_timeout=2.0,
        scenario_timeout=15.0,
        stress_timeout=60.0,
    ),
    "standard": RunProfile(
        name="standard",
        iterations=1000,
        retry_budget=3,
        stress_retry_budget=1000,
        handshake_timeout=5.0,
        scenario_timeout=30.0,
        stress_timeout=300.0,
    ),
    "soak": RunProfile(
        name="soak",
        iterations=10_000,
        retry_budget=5,
        stress_retry_budget=10_000,
        handshake_timeout=10.0,
        scenario_timeout=60.0,
        stress_timeout=1800.0,
    ),
}

DEFAULT_PROFILE = "standard"


def get_profile(name: str) -> RunProfile:
    """Get run profile by name.

    Args:
        name: Profile name (quick, standard, soak).

    Returns:
        RunProfile for the requested name.

    Raises:
        ValueError: If profile name is not recognized.
    """
    if name not in PROFILES:
        valid = ", ".join(PROFILES.keys())
        msg = f"Unknown profile '{name}'. Valid profiles: {valid}"
        raise ValueError(msg)
    return PROFILES[name]


def default_workers() -> int:
    """Stress pool size: one worker per CPU, never fewer than MIN_WORKERS."""
    return max(MIN_WORKERS, os.cpu_count() or 1)


def get_env(key: str, *, default: str | None = None) -> str | None:
    """Get environment variable with ISOLATION_BENCH_ prefix.

    Args:
        key: Variable name without prefix (e.g., "MYSQL_HOST").
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(f"{ENV_PREFIX}{key}", default)
