class AppError(Exception):
    """日誌程式所有自定義錯誤的基類，CLI 只攔截這一層"""
    pass

class ConfigurationError(AppError):
    """缺少 Notion 等外部服務的設定"""
    pass

class DataSourceError(AppError):
    """紀錄檔或匯入檔讀不到、JSON 損毀、欄位值不合法"""
    pass

class DataDestinationError(AppError):
    """紀錄檔寫入或 Notion 同步失敗"""
    pass

class BusinessLogicError(AppError):
    """日誌流程上不允許的操作"""
    pass

class EntryValidationError(BusinessLogicError):
    """進場必填欄位缺漏，訊息直接顯示給使用者"""
    pass

class RecordNotFoundError(BusinessLogicError):
    def __init__(self, record_id: str):
        super().__init__(f"Record not found: {record_id}")
        self.record_id = record_id
