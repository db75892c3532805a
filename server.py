# server.py: HTTP check API (user/license checks + admin list management).
# 이 모듈은 라이선스 확인 API 서버의 실행 진입점입니다.

import asyncio
import logging
import signal

from licensebot.config import Settings, load_settings
from licensebot.logs import setup_logging
from licensebot.web import start_web

log = logging.getLogger("licensebot.web")


async def serve(settings: Settings) -> None:
    runner = await start_web(settings)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            pass
    try:
        await stop.wait()
    finally:
        await runner.cleanup()
        log.info("API server stopped")


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_file)
    ok, msg = settings.validate_server()
    if not ok:
        log.warning(msg)
    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
