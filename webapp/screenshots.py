"""Screenshot persistence.

Decoded screenshot bytes are written under a per-test directory with a
millisecond timestamp name. Disk writes run in worker threads; the number
of concurrent writes is capped so a burst of failing actions cannot
saturate the filesystem.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import secrets
import time
from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_MAX_WRITES = 2


def decode_screenshot(payload: str | bytes) -> bytes:
    """Decode the base64 PNG payload returned by the driver."""
    if isinstance(payload, bytes):
        payload = payload.decode('ascii')
    return base64.b64decode(payload)


class ScreenshotWriter:
    """Writes screenshot files and returns their paths.

    Args:
        max_writes: Upper bound on concurrent file writes.
    """

    def __init__(self, max_writes: int = DEFAULT_MAX_WRITES) -> None:
        if max_writes < 1:
            raise ValueError(f'max_writes must be >= 1, got {max_writes}')
        self._max_writes = max_writes
        self._semaphore: asyncio.Semaphore | None = None

    def _get_semaphore(self) -> asyncio.Semaphore:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_writes)
        return self._semaphore

    async def write(self, data: bytes, directory: str | Path, ext: str = 'png') -> str:
        """Write data to a new file in directory. Returns the file path.

        Errors propagate; callers treat screenshots as best-effort.
        """
        target_dir = Path(directory)
        name = f'{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}'
        path = target_dir / name

        async with self._get_semaphore():
            await asyncio.to_thread(_write_file, path, data)

        log.debug('Saved screenshot %s (%d bytes)', path, len(data))
        return str(path)


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
