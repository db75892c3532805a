import asyncio
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

# 라이선스 기록(JSON)과 허용 목록(텍스트) 파일을 읽고 쓰는 핵심 저장소 헬퍼 모듈입니다.
log = logging.getLogger("licensebot.db")

COMMENT_PREFIX = "#"


@dataclass
class ReadResult:
    """Outcome of a read that never raises.

    ``missing`` means the resource does not exist (not an error); ``error`` holds
    the exception when the read failed. Either way ``data`` is an empty value.
    """

    data: Any
    missing: bool = False
    error: Optional[BaseException] = None


def parse_lines(text: str) -> List[str]:
    """Trim lines, drop blanks and comment lines."""
    out = []
    for line in text.split("\n"):
        line = line.strip()
        if line and not line.startswith(COMMENT_PREFIX):
            out.append(line)
    return out


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _write_text(path: Path, text: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _append_text(path: Path, text: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        f.write(text)


def _replace_text(path: Path, text: str) -> None:
    # write-then-rename so readers never see a half-written record
    tmp = path.with_name(f"{path.name}.tmp")
    _write_text(tmp, text)
    os.replace(tmp, path)


async def read_lines(path: Path) -> ReadResult:
    try:
        text = await asyncio.to_thread(_read_text, path)
    except FileNotFoundError:
        return ReadResult([], missing=True)
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Read failed for {path}: {e}")
        return ReadResult([], error=e)
    return ReadResult(parse_lines(text))


async def append_line(path: Path, line: str) -> None:
    await asyncio.to_thread(_append_text, path, f"\n{line}")


async def write_lines(path: Path, lines: List[str]) -> None:
    await asyncio.to_thread(_write_text, path, "\n".join(lines))


async def write_text(path: Path, text: str) -> None:
    await asyncio.to_thread(_write_text, path, text)


async def remove_file(path: Path) -> None:
    await asyncio.to_thread(os.remove, path)


async def load_json(path: Path) -> ReadResult:
    try:
        text = await asyncio.to_thread(_read_text, path)
    except FileNotFoundError:
        return ReadResult({}, missing=True)
    except (OSError, UnicodeDecodeError) as e:
        log.error(f"Error reading {path}: {e}")
        return ReadResult({}, error=e)
    try:
        data = json.loads(text)
    except ValueError as e:
        log.error(f"Error parsing {path}: {e}")
        return ReadResult({}, error=e)
    if not isinstance(data, dict):
        e = ValueError(f"expected a JSON object, got {type(data).__name__}")
        log.error(f"Error parsing {path}: {e}")
        return ReadResult({}, error=e)
    return ReadResult(data)


async def save_json(path: Path, data: Dict[str, Any]) -> bool:
    try:
        text = json.dumps(data, indent=2, ensure_ascii=False)
        await asyncio.to_thread(_replace_text, path, text)
        return True
    except (OSError, TypeError, ValueError) as e:
        log.error(f"Error saving {path}: {e}")
        return False


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


class KeyLocks:
    """In-process ``asyncio.Lock`` per resource key.

    Serializes read-modify-write sequences inside one process only; the bot and the
    API server are separate processes and can still overwrite each other.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def __call__(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def discard(self, key: str) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]
