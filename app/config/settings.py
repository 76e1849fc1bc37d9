import sys
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    """
    應用程式全域設定。
    自動從環境變數 (.env) 讀取並驗證型別。
    """
    # 交易紀錄檔 (JSON)
    JOURNAL_PATH: str = "trade_records.json"

    # Notion 設定 (Optional，用於同步紀錄)
    NOTION_TOKEN: Optional[str] = None
    NOTION_DB_ID: Optional[str] = None

    # Discord 設定 (Optional，用於推播判斷結果)
    DISCORD_WEBHOOK_URL: Optional[str] = None

    # Environment
    DRY_RUN: bool = False

    # 應用程式行為
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,  # 區分大小寫，環境變數一律全大寫
        extra="ignore",
    )

# Singleton Instance
try:
    settings = Settings()
except Exception as e:
    # 這裡只做基本 print，因為 logging 模組可能依賴 settings，避免循環
    print(f"CRITICAL: Failed to load configuration. Invalid env vars? {e}", file=sys.stderr)
    settings = None
