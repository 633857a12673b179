import json
import time
from typing import Optional

import redis

from PairedWallet.pw_shared import config, errors
from PairedWallet.pw_shared.types import EventLogEntry


def create_event_log_client() -> redis.Redis:
    r = redis.Redis(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        db=config.REDIS_LOG_DB,
        decode_responses=False,
        socket_connect_timeout=config.REDIS_SOCKET_TIMEOUT,
        socket_timeout=config.REDIS_SOCKET_TIMEOUT,
    )
    try:
        r.ping()
    except redis.exceptions.RedisError as e:
        raise errors.EventLogUnavailableError(f"Cannot reach Redis at {config.REDIS_HOST}:{config.REDIS_PORT}: {e}")
    return r


class EventLog:
    """Structured failure log kept in a capped Redis list, newest first."""

    def __init__(self, client: redis.Redis, role: str):
        self.db: redis.Redis = client
        self.role = role

    def write_log(self, code: str, message: str) -> EventLogEntry:
        entry = EventLogEntry(
            code=code,
            message=message,
            role=self.role,
            ts=int(time.time() * 1000),
        )
        blob = json.dumps({
            "code": entry.code,
            "message": entry.message,
            "role": entry.role,
            "ts": entry.ts,
        })

        try:
            pipe = self.db.pipeline(transaction=True)
            pipe.lpush(config.EVENT_LOG_KEY, blob)
            pipe.ltrim(config.EVENT_LOG_KEY, 0, config.EVENT_LOG_MAX_ENTRIES - 1)
            pipe.execute()
        except redis.exceptions.RedisError as e:
            raise errors.EventLogUnavailableError(f"write_log: {e}")

        return entry

    def recent(self, count: int = 20, code: Optional[str] = None) -> list[EventLogEntry]:
        """Newest ``count`` entries; with ``code``, the newest ``count`` carrying that code."""
        try:
            raw = self.db.lrange(config.EVENT_LOG_KEY, 0, -1 if code is not None else count - 1)
        except redis.exceptions.RedisError as e:
            raise errors.EventLogUnavailableError(f"recent: {e}")

        entries = []
        for blob in raw:
            data = json.loads(blob)
            if code is not None and data["code"] != code:
                continue
            entries.append(EventLogEntry(**data))
            if len(entries) == count:
                break
        return entries
