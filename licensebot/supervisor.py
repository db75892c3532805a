"""
Process supervisor: runs the Discord bot and the check API side by side.

Each child is a separate interpreter process; they share nothing but the data
directory. Ctrl+C (or SIGTERM) stops both and the supervisor exits 0.
"""

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

# 봇과 API 서버를 각각 독립 프로세스로 띄우고 함께 종료시키는 실행 관리자입니다.
log = logging.getLogger("licensebot.supervisor")

ROOT = Path(__file__).resolve().parent.parent
TERMINATE_GRACE_SEC = 10.0
RESTART_DELAY_BASE = 5.0  # seconds, multiplied by the attempt number


@dataclass
class Child:
    name: str
    argv: Sequence[str]
    restarts: int = 0
    exit_codes: List[int] = field(default_factory=list)
    process: Optional[asyncio.subprocess.Process] = None


def default_children() -> List[Child]:
    return [
        Child("API server", [sys.executable, str(ROOT / "server.py")]),
        Child("Discord bot", [sys.executable, str(ROOT / "bot.py")]),
    ]


class Supervisor:
    def __init__(
        self,
        children: Optional[List[Child]] = None,
        restart_limit: int = 0,
        restart_delay: float = RESTART_DELAY_BASE,
        grace_sec: float = TERMINATE_GRACE_SEC,
    ):
        self.children = children if children is not None else default_children()
        self.restart_limit = max(0, int(restart_limit))
        self.restart_delay = restart_delay
        self.grace_sec = grace_sec
        self._stop = asyncio.Event()

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def _spawn(self, child: Child) -> None:
        log.info(f"Starting {child.name}...")
        child.process = await asyncio.create_subprocess_exec(*child.argv)

    async def _watch(self, child: Child) -> None:
        while True:
            await self._spawn(child)
            if self.stopping:
                await self._terminate(child)
            code = await child.process.wait()
            child.exit_codes.append(code)
            log.info(f"{child.name} exited with code {code}")
            if self.stopping or child.restarts >= self.restart_limit:
                return
            child.restarts += 1
            delay = self.restart_delay * child.restarts
            log.warning(f"Restarting {child.name} in {delay:.0f}s ({child.restarts}/{self.restart_limit})")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
                return
            except asyncio.TimeoutError:
                pass

    async def _terminate(self, child: Child) -> None:
        proc = child.process
        if proc is None or proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.grace_sec)
        except asyncio.TimeoutError:
            log.warning(f"{child.name} did not stop in {self.grace_sec:.0f}s, killing")
            try:
                proc.kill()
            except ProcessLookupError:
                return
            await proc.wait()

    def _install_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Windows: fall back to KeyboardInterrupt handling in start.py
                pass

    async def run(self, install_signals: bool = True) -> int:
        if install_signals:
            self._install_signals()
        watchers: Dict[str, asyncio.Task] = {
            c.name: asyncio.create_task(self._watch(c)) for c in self.children
        }
        stopper = asyncio.create_task(self._stop.wait())
        try:
            # returns once every child is done for good, or on stop()
            pending = set(watchers.values())
            while pending and not self.stopping:
                done, pending = await asyncio.wait(pending | {stopper}, return_when=asyncio.FIRST_COMPLETED)
                pending.discard(stopper)
        finally:
            if self.stopping:
                log.info("Shutting down...")
            await asyncio.gather(*(self._terminate(c) for c in self.children))
            for task in watchers.values():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            stopper.cancel()
        return 0
