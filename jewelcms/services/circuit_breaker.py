"""
Redis-backed circuit breakers for outbound notification channels.

States per channel:
  - closed    → deliveries go out
  - open      → too many consecutive failures; deliveries raise CircuitOpenError
  - half_open → cooldown elapsed; the next delivery is a probe

State lives in Redis so every gunicorn worker sees the same view. If Redis is
unreachable the breaker reports closed and lets deliveries through.
"""
import logging
import time

import redis

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised when a delivery is attempted through an open breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is open; channel unavailable")


class CircuitBreaker:
    """
    Usage:
        breaker = CircuitBreaker('slack', redis_client, failure_threshold=3, cooldown=120)
        breaker.call(requests.post, url, json=payload, timeout=10)
    """

    def __init__(self, name, redis_client, failure_threshold=3, cooldown=300):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.cooldown = cooldown  # seconds open before a probe is allowed

    def _key(self, suffix):
        return f'breaker:{self.name}:{suffix}'

    # ── State ─────────────────────────────────────────────────────────

    @property
    def state(self):
        try:
            current = self.redis.get(self._key('state')) or CLOSED
            if current == OPEN and self._seconds_since_failure() > self.cooldown:
                self.redis.set(self._key('state'), HALF_OPEN)
                return HALF_OPEN
            return current
        except redis.RedisError:
            return CLOSED

    @property
    def failure_count(self):
        try:
            return int(self.redis.get(self._key('failures')) or 0)
        except redis.RedisError:
            return 0

    def _seconds_since_failure(self):
        last = self.redis.get(self._key('opened_at'))
        return time.time() - float(last) if last else float('inf')

    def health(self):
        """Snapshot for GET /api/health."""
        try:
            counters = self.redis.hgetall(self._key('stats'))
        except redis.RedisError:
            counters = {}
        return {
            'name': self.name,
            'state': self.state,
            'failure_count': self.failure_count,
            'failure_threshold': self.failure_threshold,
            'cooldown': self.cooldown,
            'total_success': int(counters.get('success', 0)),
            'total_failure': int(counters.get('failure', 0)),
            'last_error': counters.get('last_error', ''),
        }

    # ── Calls ─────────────────────────────────────────────────────────

    def call(self, func, *args, **kwargs):
        """Run func unless the breaker is open; record the outcome."""
        if self.state == OPEN:
            retry_after = max(0.0, self.cooldown - self._seconds_since_failure())
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    def _record_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('stats'), 'success', 1)
            pipe.execute()
        except redis.RedisError:
            logger.debug("Redis unavailable; success for '%s' not recorded", self.name)

    def _record_failure(self, error):
        try:
            failures = self.redis.incr(self._key('failures'))
            pipe = self.redis.pipeline()
            pipe.hincrby(self._key('stats'), 'failure', 1)
            pipe.hset(self._key('stats'), 'last_error', str(error)[:200])
            if failures >= self.failure_threshold:
                pipe.set(self._key('state'), OPEN)
                pipe.set(self._key('opened_at'), str(time.time()))
            pipe.execute()
        except redis.RedisError:
            logger.debug("Redis unavailable; failure for '%s' not recorded", self.name)
            return

        if failures >= self.failure_threshold:
            logger.warning("Circuit '%s' opened after %d failures: %s", self.name, failures, error)
        else:
            logger.info("Circuit '%s' failure %d/%d: %s", self.name, failures, self.failure_threshold, error)

    def reset(self):
        """Force the breaker closed (admin action)."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('opened_at'))
            pipe.execute()
            logger.info("Circuit '%s' manually reset", self.name)
        except redis.RedisError as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)


# ── Registry ──────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name):
    """Registered breaker by channel name, or None."""
    return _registry.get(name)


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register one breaker per notification channel."""
    _registry.update({
        'slack': CircuitBreaker('slack', redis_client, failure_threshold=3, cooldown=120),
        'twilio': CircuitBreaker('twilio', redis_client, failure_threshold=3, cooldown=300),
    })
    return dict(_registry)
