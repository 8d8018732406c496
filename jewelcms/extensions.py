"""
Shared client instances.

redis.from_url() does not connect until the first command, so importing this
module is safe even when Redis is down (tests, local dev).
"""
import redis

from jewelcms.config import REDIS_URL

redis_client = redis.from_url(REDIS_URL, decode_responses=True, socket_connect_timeout=1)
