from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

from ..db import (
    COMMENT_PREFIX,
    KeyLocks,
    ReadResult,
    append_line,
    ensure_dir,
    read_lines,
    write_lines,
    write_text,
)
from ..errors import BadRequest
from ..models import is_valid_key

# 라이선스별 허용 목록 텍스트 파일을 한 줄 단위로 읽고, 추가하고, 삭제하는 접근자입니다.
log = logging.getLogger("licensebot.allowlist")

LICENSE_HEADER = "# Approved Users List\n# Add one username per line\n"
GLOBAL_HEADER = (
    "# Approved Users List\n"
    "# Add one username per line\n"
    "# Lines starting with # are comments and will be ignored\n"
    "# Example:\n"
    "# YourUsername\n"
    "# AnotherUser"
)
GLOBAL_KEY = "__global__"
MAX_USERNAME_LENGTH = 100


def clean_username(username: Optional[str]) -> str:
    name = (username or "").strip()
    if not name:
        raise BadRequest("Username is required")
    if len(name) > MAX_USERNAME_LENGTH:
        raise BadRequest(f"Username must be at most {MAX_USERNAME_LENGTH} characters")
    # a newline would smuggle extra entries in, a leading # would never be read back
    if "\n" in name or "\r" in name or name.startswith(COMMENT_PREFIX):
        raise BadRequest("Invalid username")
    return name


class AllowList:
    """Line-oriented allow-list files, one per key.

    ``resolve`` maps a key to its file. Matching is exact (case-sensitive).
    """

    def __init__(self, resolve: Callable[[str], Path], locks: Optional[KeyLocks] = None):
        self._resolve = resolve
        self._locks = locks or KeyLocks()

    @classmethod
    def for_licenses(cls, licenses_dir: Path, locks: Optional[KeyLocks] = None) -> "AllowList":
        def resolve(key: str) -> Path:
            if not is_valid_key(key):
                raise BadRequest("Invalid license key")
            return licenses_dir / f"{key}.txt"

        return cls(resolve, locks)

    @property
    def locks(self) -> KeyLocks:
        return self._locks

    def path(self, key: str) -> Path:
        return self._resolve(key)

    async def read(self, key: str) -> ReadResult:
        return await read_lines(self.path(key))

    async def list(self, key: str) -> List[str]:
        return (await self.read(key)).data

    async def add(self, key: str, username: str) -> bool:
        path = self.path(key)
        name = clean_username(username)
        async with self._locks(key):
            users = (await read_lines(path)).data
            if name in users:
                return False
            try:
                await append_line(path, name)
            except OSError as e:
                log.error(f"Error adding {name} to {path.name}: {e}")
                return False
        log.info(f"[ALLOW] {key} + {name}")
        return True

    async def remove(self, key: str, username: str) -> bool:
        path = self.path(key)
        name = (username or "").strip()
        async with self._locks(key):
            users = (await read_lines(path)).data
            updated = [u for u in users if u != name]
            if len(updated) == len(users):
                return False
            try:
                await write_lines(path, updated)
            except OSError as e:
                log.error(f"Error removing {name} from {path.name}: {e}")
                return False
        log.info(f"[ALLOW] {key} - {name}")
        return True

    async def create(self, key: str, header: str = LICENSE_HEADER) -> None:
        """Write a fresh file holding only the header comments. Raises OSError."""
        path = self.path(key)
        async with self._locks(key):
            ensure_dir(path.parent)
            await write_text(path, header)


class ApprovedUsers:
    """The legacy global allow-list (``approved_users.txt``)."""

    def __init__(self, path: Path, locks: Optional[KeyLocks] = None):
        self.file = path
        self._list = AllowList(lambda _key: path, locks)

    async def initialize(self) -> bool:
        """Create the file with its comment header if missing. True when created."""
        if self.file.exists():
            return False
        await self._list.create(GLOBAL_KEY, GLOBAL_HEADER)
        log.info(f"Created {self.file.name} file")
        return True

    async def read(self) -> ReadResult:
        return await self._list.read(GLOBAL_KEY)

    async def list(self) -> List[str]:
        return await self._list.list(GLOBAL_KEY)

    async def add(self, username: str) -> bool:
        return await self._list.add(GLOBAL_KEY, username)

    async def remove(self, username: str) -> bool:
        return await self._list.remove(GLOBAL_KEY, username)
