# shopcart/services/lock_service.py
import uuid
from contextlib import contextmanager

import redis
from redis.exceptions import RedisError
from tenacity import retry, retry_if_result, stop_after_delay, wait_exponential

from shopcart.domain.errors import CartLockedError
from shopcart.utils.retry import redis_retry
from shopcart.utils.settings import REDIS_URL, CART_LOCK_TTL_SECONDS, CART_LOCK_WAIT_SECONDS
from shopcart.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nie da sie wcisnac miedzy GET a DEL
#wiec lock zwalnia tylko ten kto go zalozyl (token)


class LockService:
    """
    -sekcja krytyczna per wlasciciel koszyka (user albo sesja)
    -czekanie na lock ograniczone czasem (tenacity), domyslnie TTL locka,
     wiec drugi klient doczeka do konca sekcji pierwszego
    -zwalnianie locka atomowo przez lua
    """

    def __init__(self, url: str | None = None, wait_seconds: float | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.wait_seconds = CART_LOCK_WAIT_SECONDS if wait_seconds is None else wait_seconds

    @redis_retry()
    def acquire_lock(self, key: str, token: str, ttl: int) -> bool:
        logger.info(f"Acquire lock {key}")
        #SET cart:user:1:lock "<token>" NX EX 30
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_lock(self, key: str, token: str) -> bool:
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    def _wait_for_lock(self, key: str, token: str, ttl: int) -> bool:
        waiter = retry(
            retry=retry_if_result(lambda acquired: not acquired),
            stop=stop_after_delay(min(self.wait_seconds, ttl)),
            wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
            retry_error_callback=lambda state: False,
        )
        return waiter(self.acquire_lock)(key, token, ttl)

    @contextmanager
    def owner_lock(self, key: str, ttl: int = CART_LOCK_TTL_SECONDS):
        token = uuid.uuid4().hex
        if not self._wait_for_lock(key, token, ttl):
            logger.warning(f"Nie udalo sie zalozyc locka {key}")
            raise CartLockedError(key)
        try:
            yield token
        finally:
            try:
                self.release_lock(key, token)
            except RedisError as e:
                # lock i tak wygasnie po TTL
                logger.warning(f"Nie udalo sie zwolnic locka {key}: {e}")
