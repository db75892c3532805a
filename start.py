# start.py: launches the API server and the Discord bot as two processes.
# 이 모듈은 봇과 API 서버를 함께 띄우는 실행 진입점입니다.

import asyncio
import logging
import sys

from licensebot.config import load_settings
from licensebot.logs import setup_logging
from licensebot.supervisor import Supervisor

log = logging.getLogger("licensebot.supervisor")


def main() -> int:
    settings = load_settings()
    setup_logging(settings.log_file)
    log.info("Starting license bot system...")
    supervisor = Supervisor(restart_limit=settings.restart_limit)
    try:
        return asyncio.run(supervisor.run())
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
