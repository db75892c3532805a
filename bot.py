# bot.py: Discord front-end for license management.
# Slash commands: /createlicense /deletelicense (owner), /authorize /deauthorize /authorized /mylicense (license owners)
# 이 모듈은 디스코드 라이선스 봇의 실행 진입점입니다.

import logging

from licensebot.config import load_settings
from licensebot.discord_app import create_bot
from licensebot.logs import setup_logging

log = logging.getLogger("licensebot.bot")


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_file)
    ok, msg = settings.validate_bot()
    if not ok:
        log.error(msg)
        raise SystemExit(1)
    bot = create_bot(settings)
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
