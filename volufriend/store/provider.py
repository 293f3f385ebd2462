import random
import threading
import time
from typing import Any, Dict, Optional


PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

_push_lock = threading.Lock()
_last_push_ms = 0
_last_rand = [0] * 12


def generate_push_key() -> str:
    """
    20-char key: 8 chars of millisecond timestamp + 12 random chars.
    Keys sort lexicographically in creation order, including keys minted
    within the same millisecond.
    """
    global _last_push_ms
    with _push_lock:
        now = int(time.time() * 1000)
        if now == _last_push_ms:
            # Increment the random tail so keys from the same millisecond stay ordered
            i = 11
            while i >= 0 and _last_rand[i] == 63:
                _last_rand[i] = 0
                i -= 1
            if i >= 0:
                _last_rand[i] += 1
        else:
            _last_push_ms = now
            for i in range(12):
                _last_rand[i] = random.randrange(64)

        ts_chars = []
        ts = now
        for _ in range(8):
            ts_chars.append(PUSH_CHARS[ts % 64])
            ts //= 64
        return "".join(reversed(ts_chars)) + "".join(PUSH_CHARS[n] for n in _last_rand)


class DocumentStore:
    """
    Key-addressable document tree with equality queries on record fields.
    Every method is a coroutine. There are no multi-key transactions;
    writes are last-writer-wins.
    """

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def set(self, collection: str, key: str, record: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def remove(self, collection: str, key: str) -> None:
        raise NotImplementedError

    async def query(self, collection: str, field: str, value: Any) -> Dict[str, Dict[str, Any]]:
        raise NotImplementedError

    async def query_range(
        self,
        collection: str,
        field: str,
        lower: Optional[str],
        upper: Optional[str],
        limit: Optional[int] = None,
    ) -> Dict[str, Dict[str, Any]]:
        raise NotImplementedError

    async def all(self, collection: str) -> Dict[str, Dict[str, Any]]:
        raise NotImplementedError

    def push(self, collection: str) -> str:
        return generate_push_key()

    async def add(self, collection: str, record: Dict[str, Any]) -> str:
        key = self.push(collection)
        await self.set(collection, key, record)
        return key

    def close(self) -> None:
        pass
