import logging
from typing import Optional

# 모든 실행 진입점이 같은 로그 형식(콘솔 + 선택적 파일)을 쓰도록 설정합니다.

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
