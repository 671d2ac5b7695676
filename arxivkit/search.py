# arxivkit/search.py
from collections.abc import AsyncIterator


async def take[T](n: int, aiter: AsyncIterator[T]) -> AsyncIterator[T]:
    """Take at most n items from an async iterator."""
    if n <= 0:
        return
    count = 0
    async for item in aiter:
        yield item
        count += 1
        if count >= n:
            break


async def collect[T](aiter: AsyncIterator[T]) -> list[T]:
    """Drain an async iterator into a list."""
    return [item async for item in aiter]
