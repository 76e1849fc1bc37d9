import logging
import sys
from typing import Optional

# settings 讀取失敗時 (例如 .env 格式錯誤) 仍要能輸出錯誤，這裡退回預設值
try:
    from app.config.settings import settings
    LOG_LEVEL = settings.LOG_LEVEL.upper() if settings else "INFO"
    LOG_FILE = settings.LOG_FILE if settings else None
except Exception:
    LOG_LEVEL = "INFO"
    LOG_FILE = None

FORMATTER = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

def setup_logging(name: str = "trade_journal", log_file: Optional[str] = LOG_FILE) -> logging.Logger:
    """
    日誌一律寫到 stderr，stdout 留給 CLI 的判斷結果與統計輸出。
    有設定 LOG_FILE 時另外附加到檔案。
    """
    logger = logging.getLogger(name)

    # 防止重複添加 Handler
    if logger.handlers:
        return logger

    level = getattr(logging, LOG_LEVEL, logging.INFO)
    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(FORMATTER)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(FORMATTER)
        logger.addHandler(file_handler)

    return logger

def set_verbose(logger: logging.Logger):
    """CLI --verbose: 顯示判斷引擎的 DEBUG 訊息"""
    logger.setLevel(logging.DEBUG)

# 預設 Logger
logger = setup_logging()
