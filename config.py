import logging
import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    POLL_API_BASE_URL = os.getenv("POLL_API_BASE_URL", "http://localhost:3000")
    WEB_APP_URL = os.getenv("WEB_APP_URL", "http://localhost:3000")
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))
    CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))  # 초
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level: str | None = None) -> logging.Logger:
    """콘솔 로그 핸들러를 한 번만 붙입니다."""
    root = logging.getLogger()
    root.setLevel(level or Config.LOG_LEVEL)

    if not any(getattr(h, "_when2best", False) for h in root.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        console_handler._when2best = True
        root.addHandler(console_handler)

    return root
