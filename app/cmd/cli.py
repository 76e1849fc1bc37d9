import argparse
import json
import sys
from datetime import date
from app.config.settings import settings
from app.config.logging import logger, set_verbose
from app.core.exceptions import AppError, BusinessLogicError, DataSourceError
from app.core.models import TradeEntry
from app.infrastructure.discord_client import DiscordWebhookClient
from app.infrastructure.journal.mapper import JournalMapper, parse_datetime, safe_num
from app.infrastructure.journal.store import JsonRecordStore
from app.infrastructure.notion.client import NotionClient
from app.services.analytics import AnalyticsService, RecordFilter
from app.services.journal import ExitInput, JournalService
from app.services.report_formatter import ReportFormatter, format_yen


def load_entry(path: str) -> TradeEntry:
    """從 JSON 檔讀取進場資訊 (欄位名稱與匯出檔相同)"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return JournalMapper.entry_from_dict(raw)
    except (OSError, json.JSONDecodeError, ValueError) as e:
        raise DataSourceError(f"Failed to load entry from {path}: {e}")


def notify(message: str):
    if settings and settings.DRY_RUN:
        logger.info(f"[DRY RUN] Message:\n{message}")
        return
    DiscordWebhookClient().send_message(message)


def cmd_judge(service: JournalService, args):
    entry = load_entry(args.file)
    judgment = service.judge(entry)
    message = ReportFormatter.format_judgment(judgment, entry.symbol)
    print(message)
    if args.notify:
        notify(message)


def cmd_entry(service: JournalService, args):
    entry = load_entry(args.file)
    record, judgment = service.record_entry(entry, record_id=args.id)
    judgment_text = ReportFormatter.format_judgment(judgment, entry.symbol)
    print(f"保存しました。 id:{record.id}")
    print(judgment_text)
    if args.notify:
        notify(judgment_text)


def cmd_exit(service: JournalService, args):
    try:
        datetime_exit = parse_datetime(args.datetime)
    except ValueError as e:
        raise BusinessLogicError(f"Invalid exit datetime: {e}")

    exit_input = ExitInput(
        datetime_exit=datetime_exit,
        exit_price=safe_num(args.price),
        high_during_trade=safe_num(args.high),
        low_during_trade=safe_num(args.low),
        result_memo=args.memo or "",
    )
    record = service.record_exit(args.id, exit_input)
    print(ReportFormatter.format_record_line(record))


def cmd_preview(service: JournalService, args):
    """出場前の損益試算 (紀錄不變)"""
    profit = service.preview_profit(args.id, safe_num(args.price))
    print(f"試算損益：{format_yen(profit)}")


def cmd_delete(service: JournalService, args):
    service.delete_record(args.id)
    print(f"削除しました。 id:{args.id}")


def cmd_list(service: JournalService, args):
    print(ReportFormatter.format_record_list(service.list_records()))


def cmd_stats(service: JournalService, args):
    record_filter = RecordFilter(
        symbol=args.symbol or "",
        timeframe=args.timeframe or "",
        trade_type=args.trade_type or "",
        direction=args.direction or "",
        result=args.result or "",
        start=args.start,
        end=args.end,
    )
    records = AnalyticsService.apply_filters(service.list_records(), record_filter)
    # 統計需要時間順序 (舊 → 新)
    stats = AnalyticsService.calculate_stats(list(reversed(records)))
    print(ReportFormatter.format_stats(stats))
    if args.series:
        print()
        print(ReportFormatter.format_series(
            AnalyticsService.cumulative_series(records),
            AnalyticsService.direction_breakdown(records),
            AnalyticsService.timeframe_win_rates(records),
        ))


def cmd_export_json(service: JournalService, args):
    service.store.export_json(args.path)


def cmd_import_json(service: JournalService, args):
    added, updated = service.store.import_json(args.path)
    print(f"インポート完了：追加 {added} 件 / 更新 {updated} 件")


def cmd_export_csv(service: JournalService, args):
    service.store.export_csv(args.path)


def cmd_sync_notion(service: JournalService, args):
    records = service.list_records()
    if settings and settings.DRY_RUN:
        logger.info(f"[DRY RUN] Would sync {len(records)} records to Notion.")
        return
    NotionClient().sync_records(records)


COMMANDS = {
    "judge": cmd_judge,
    "entry": cmd_entry,
    "exit": cmd_exit,
    "preview": cmd_preview,
    "delete": cmd_delete,
    "list": cmd_list,
    "stats": cmd_stats,
    "export-json": cmd_export_json,
    "import-json": cmd_import_json,
    "export-csv": cmd_export_csv,
    "sync-notion": cmd_sync_notion,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trade Journal CLI")
    parser.add_argument("--journal", help="Path to the journal JSON file")
    parser.add_argument("--verbose", action="store_true", help="Show debug logs")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Command: judge (只判斷，不儲存)
    judge_parser = subparsers.add_parser("judge", help="Judge a planned trade without saving")
    judge_parser.add_argument("file", help="Entry JSON file")
    judge_parser.add_argument("--notify", action="store_true", help="Send the result to Discord")

    # Command: entry (判斷並儲存)
    entry_parser = subparsers.add_parser("entry", help="Judge and save a planned trade")
    entry_parser.add_argument("file", help="Entry JSON file")
    entry_parser.add_argument("--id", help="Overwrite an existing record")
    entry_parser.add_argument("--notify", action="store_true", help="Send the result to Discord")

    # Command: exit (紀錄出場)
    exit_parser = subparsers.add_parser("exit", help="Record the outcome of a trade")
    exit_parser.add_argument("id", help="Record ID")
    exit_parser.add_argument("--datetime", help="Exit time (ISO 8601)")
    exit_parser.add_argument("--price", help="Exit price")
    exit_parser.add_argument("--high", help="Highest price during the trade")
    exit_parser.add_argument("--low", help="Lowest price during the trade")
    exit_parser.add_argument("--memo", help="Result memo")

    preview_parser = subparsers.add_parser("preview", help="Preview the profit for an exit price without saving")
    preview_parser.add_argument("id", help="Record ID")
    preview_parser.add_argument("price", help="Exit price")

    delete_parser = subparsers.add_parser("delete", help="Delete a record")
    delete_parser.add_argument("id", help="Record ID")

    subparsers.add_parser("list", help="List all records")

    stats_parser = subparsers.add_parser("stats", help="Show statistics")
    stats_parser.add_argument("--symbol")
    stats_parser.add_argument("--timeframe")
    stats_parser.add_argument("--trade-type")
    stats_parser.add_argument("--direction", choices=["long", "short", "flat"])
    stats_parser.add_argument("--result", choices=["open", "closed"])
    stats_parser.add_argument("--start", type=date.fromisoformat, help="Entry date from (YYYY-MM-DD)")
    stats_parser.add_argument("--end", type=date.fromisoformat, help="Entry date to (YYYY-MM-DD)")
    stats_parser.add_argument("--series", action="store_true", help="Also show cumulative, direction and timeframe series")

    for name, help_text in (
        ("export-json", "Export records as JSON"),
        ("import-json", "Merge records from a JSON export"),
        ("export-csv", "Export records as CSV"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("path")

    subparsers.add_parser("sync-notion", help="Push all records to Notion")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)
    if args.verbose:
        set_verbose(logger)

    journal_path = args.journal or (settings.JOURNAL_PATH if settings else "trade_records.json")
    service = JournalService(JsonRecordStore(journal_path))

    try:
        COMMANDS[args.command](service, args)
    except AppError as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
