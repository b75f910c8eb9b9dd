from functools import lru_cache

from common.core.otel_axiom_exporter import get_logger

from .interface import DistributedLockInterface
from .redis_lock import RedisLock

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_lock_provider() -> DistributedLockInterface:
    """Redis lock shared by the API process and the sweep worker; built on first use."""
    provider = RedisLock()
    logger.info("Initialized Redis lock provider")
    return provider
