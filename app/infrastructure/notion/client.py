from typing import List, Optional
from notion_client import Client
from app.config.settings import settings
from app.config.logging import logger
from app.core.exceptions import ConfigurationError, DataDestinationError
from app.core.models import TradeRecord
from .mapper import NotionMapper

class NotionClient:
    """
    Notion API 封裝客戶端。
    以 RecordID 欄位對應本地紀錄，已存在的頁面更新、不存在則新增。
    """

    def __init__(self, client: Optional[Client] = None, database_id: Optional[str] = None):
        if client is None:
            if not settings or not settings.NOTION_TOKEN:
                raise ConfigurationError("NOTION_TOKEN is not set")
            client = Client(auth=settings.NOTION_TOKEN)
        self.client = client
        self.db_id = database_id or (settings.NOTION_DB_ID if settings else None)
        if not self.db_id:
            raise ConfigurationError("NOTION_DB_ID is not set")

    def find_page_id(self, record_id: str) -> Optional[str]:
        """用 RecordID 找出對應的 Notion 頁面"""
        try:
            response = self.client.databases.query(
                database_id=self.db_id,
                filter={"property": "RecordID", "rich_text": {"equals": record_id}},
                page_size=1
            )
        except Exception as e:
            logger.error(f"Failed to query Notion for record {record_id}: {e}")
            raise DataDestinationError(f"Notion query error: {e}")

        results = response.get("results", [])
        return results[0].get("id") if results else None

    def save_record(self, record: TradeRecord) -> str:
        """將單筆紀錄寫入 Notion，回傳頁面 ID"""
        page_id = self.find_page_id(record.id)
        properties = NotionMapper.record_to_props(record)
        try:
            if page_id:
                self.client.pages.update(page_id=page_id, properties=properties)
                logger.info(f"Updated record {record.id} in Notion.")
            else:
                page = self.client.pages.create(
                    parent={"database_id": self.db_id},
                    properties=properties
                )
                page_id = page.get("id")
                logger.info(f"Successfully saved record {record.id} to Notion.")
        except Exception as e:
            logger.error(f"Failed to save record to Notion: {e}")
            raise DataDestinationError(f"Notion save error: {e}")
        return page_id

    def sync_records(self, records: List[TradeRecord]) -> int:
        """逐筆同步，單筆失敗不中斷其他紀錄"""
        synced = 0
        for record in records:
            try:
                self.save_record(record)
                synced += 1
            except DataDestinationError as e:
                logger.warning(f"Skipped record {record.id}: {e}")
        logger.info(f"Notion sync completed: {synced}/{len(records)} records.")
        return synced
