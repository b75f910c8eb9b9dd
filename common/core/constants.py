from enum import Enum


class Environment(str, Enum):
    """Deployment profile; only LOCAL exposes API docs and relaxes the secrets check."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


GIGABYTE = 1024 * 1024 * 1024
SECONDS_PER_DAY = 24 * 60 * 60
