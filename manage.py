#!/usr/bin/env python3
"""
Order Sync — Management Tool

Single entry point for running and inspecting the order-file sync.
Usage: python manage.py <command> [options]
"""

import asyncio
import json
import logging
import os
import sys
from datetime import datetime


# ═══════════════════════════════════════════════════════════
#  Logging Setup
# ═══════════════════════════════════════════════════════════

class ColorFormatter(logging.Formatter):
    """Console formatter with ANSI colors and level symbols."""

    COLORS = {
        "INFO": "\033[96m",        # Cyan
        "SUCCESS": "\033[92m",     # Green
        "WARNING": "\033[93m",     # Yellow
        "ERROR": "\033[91m",       # Red
        "CRITICAL": "\033[91m\033[1m",  # Bold Red
        "DEBUG": "\033[94m",       # Blue
        "HEADER": "\033[95m",      # Magenta
        "BOLD": "\033[1m",
        "RESET": "\033[0m",
    }

    SYMBOLS = {
        "INFO": "→",
        "SUCCESS": "✓",
        "WARNING": "⚠",
        "ERROR": "✗",
        "CRITICAL": "☠",
        "DEBUG": "•",
        "STEP": "▶",
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.platform != "win32"

    def _colorize(self, text: str, color_name: str) -> str:
        if not self.use_colors:
            return text
        color = self.COLORS.get(color_name, "")
        return f"{color}{text}{self.COLORS['RESET']}" if color else text

    def format(self, record: logging.LogRecord) -> str:
        msg = str(record.msg)

        if "[SUCCESS]" in msg:
            symbol, color = self.SYMBOLS["SUCCESS"], "SUCCESS"
        elif "[WARNING]" in msg:
            symbol, color = self.SYMBOLS["WARNING"], "WARNING"
        elif "[ERROR]" in msg:
            symbol, color = self.SYMBOLS["ERROR"], "ERROR"
        elif "[STEP]" in msg:
            symbol, color = self.SYMBOLS["STEP"], "INFO"
        else:
            symbol, color = self.SYMBOLS.get(record.levelname, ""), record.levelname

        if symbol and not msg.startswith(("===", " ")):
            record.msg = f"{symbol} {msg}"

        if self.use_colors:
            if msg.startswith("==="):
                record.msg = self._colorize(str(record.msg), "HEADER")
            else:
                record.msg = self._colorize(str(record.msg), color)

        return super().format(record)


# --- Bootstrap logger --------------------------------------------------------
_log_dir = "logs"
os.makedirs(_log_dir, exist_ok=True)
_log_file = os.path.join(_log_dir, f"manage-{datetime.now():%Y%m%d}.log")

_file_handler = logging.FileHandler(_log_file, encoding="utf-8")
_file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))

_console_handler = logging.StreamHandler()
_console_handler.setFormatter(ColorFormatter())

logger = logging.getLogger("manage")
logger.setLevel(logging.INFO)
logger.addHandler(_file_handler)
logger.addHandler(_console_handler)
# structlog output from the service goes through the root logger
logger.propagate = False


# ═══════════════════════════════════════════════════════════
#  Sync Manager
# ═══════════════════════════════════════════════════════════

class SyncManager:
    """Runs sync cycles and inspects the ledger outside the API process."""

    def __init__(self):
        from ordersync.core.config import settings
        from ordersync.core.logging import setup_logging

        self.settings = settings
        setup_logging(settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    def _service(self):
        from ordersync.service import build_service

        return build_service(self.settings)

    # ─── Sync ─────────────────────────────────────────────
    def sync(self) -> bool:
        """Run one sync cycle and print its report."""
        logger.info("\n=== Sync Cycle ===")

        async def run():
            service = self._service()
            try:
                return await service.orchestrator.run_cycle()
            finally:
                await service.aclose()

        report = asyncio.run(run())

        logger.info(f"  Listed:     {report.listed}")
        logger.info(f"  Admitted:   {report.admitted}")
        logger.info(f"  Retired:    {report.retired}")
        logger.info(f"  Untouched:  {report.untouched}")
        logger.info(f"  Deleted:    {report.deleted} ({report.deletion_errors} delete errors)")
        for reason, count in sorted(report.rejected.items()):
            logger.info(f"  Rejected {reason}: {count}")
        for outcome in report.files:
            if outcome.error:
                logger.warning(f"[WARNING] {outcome.file_name}: {outcome.error_code or ''} {outcome.error}")

        if report.success:
            logger.info("[SUCCESS] Sync cycle completed")
        else:
            logger.error(f"[ERROR] Sync cycle failed: {report.error}")
        return report.success

    # ─── Processes ────────────────────────────────────────
    def serve(self, host: str = "0.0.0.0", port: int = 8000, reload: bool = False) -> None:
        """Run the API (and the auto-sync scheduler) under uvicorn."""
        import uvicorn

        logger.info(f"\n=== Serving API on {host}:{port} ===")
        uvicorn.run("ordersync.main:app", host=host, port=port, reload=reload)

    def worker(self, concurrency: int = 1) -> None:
        """Run the Celery worker that processes dispatched order files."""
        from ordersync.tasks import celery_app

        logger.info("\n=== Celery Worker ===")
        logger.info(f"[STEP] Consuming queues: orders, default (concurrency={concurrency})")
        celery_app.worker_main([
            "worker",
            "--loglevel=INFO",
            "-Q", "orders,default",
            f"--concurrency={concurrency}",
        ])

    # ─── Inspection ───────────────────────────────────────
    def status(self) -> None:
        """Show configuration and ledger size."""
        from ordersync.core.credentials import SftpCredentials
        from ordersync.ingestion.kv_store import SqlKeyValueStore
        from ordersync.ingestion.ledger import ProcessedFileLedger

        s = self.settings
        creds = SftpCredentials.from_settings(s)

        logger.info("\n=== Configuration ===")
        if s.USE_LOCAL_DIRECTORY:
            logger.info(f"  Channel:          local directory {s.LOCAL_DIRECTORY_PATH}")
        else:
            logger.info(f"  Channel:          sftp {json.dumps(creds.describe())}")
            if not creds.is_loaded():
                logger.warning(f"[WARNING] SFTP credentials missing: {', '.join(creds.missing_fields())}")
        logger.info(f"  Commerce API:     {s.COMMERCE_API_BASE_URL}")
        logger.info(f"  Dispatch:         {s.DISPATCH_MODE} (timeout {s.DISPATCH_TIMEOUT_S}s)")
        logger.info(f"  File deletion:    {s.FILE_DELETION}")
        logger.info(f"  Skip processed:   {s.SKIP_PROCESSED_FILES}")
        logger.info(f"  Cutoff:           {s.CUTOFF_DATETIME.isoformat()}")
        logger.info(f"  Interval:         {s.SYNC_INTERVAL_MINUTES} min")

        store = SqlKeyValueStore(s.LEDGER_DATABASE_URL)
        try:
            ledger = ProcessedFileLedger(store)
            logger.info("\n=== Ledger ===")
            logger.info(f"  Processed files:  {ledger.count()}")
        finally:
            store.close()

    def ledger(self) -> None:
        """List every processed filename."""
        from ordersync.ingestion.kv_store import SqlKeyValueStore
        from ordersync.ingestion.ledger import ProcessedFileLedger

        store = SqlKeyValueStore(self.settings.LEDGER_DATABASE_URL)
        try:
            names = ProcessedFileLedger(store).names()
        finally:
            store.close()

        logger.info(f"\n=== Processed Files ({len(names)}) ===")
        for name in names:
            logger.info(f"  • {name}")

    def clear_ledger(self) -> None:
        """Forget every processed file (they will be picked up again)."""
        from ordersync.ingestion.kv_store import SqlKeyValueStore
        from ordersync.ingestion.ledger import ProcessedFileLedger

        logger.warning("\n[WARNING] ⚠ ⚠ ⚠  DANGER ZONE  ⚠ ⚠ ⚠")
        logger.warning("Every file still on the server will be processed again on the next sync!")
        confirm = input("\nType 'yes' to confirm: ")
        if confirm.strip().lower() != "yes":
            logger.info("[SUCCESS] Operation cancelled")
            return

        store = SqlKeyValueStore(self.settings.LEDGER_DATABASE_URL)
        try:
            removed = ProcessedFileLedger(store).clear()
        finally:
            store.close()
        logger.warning(f"[SUCCESS] Ledger cleared ({removed} entries removed)")


# ═══════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════

USAGE = f"""
{ColorFormatter.COLORS['HEADER']}Order Sync — Management{ColorFormatter.COLORS['RESET']}
{'═' * 50}

{ColorFormatter.COLORS['BOLD']}Usage:{ColorFormatter.COLORS['RESET']} python manage.py <command> [options]

{ColorFormatter.COLORS['BOLD']}Commands:{ColorFormatter.COLORS['RESET']}
    {ColorFormatter.COLORS['INFO']}sync{ColorFormatter.COLORS['RESET']}            Run one sync cycle now
    {ColorFormatter.COLORS['INFO']}serve{ColorFormatter.COLORS['RESET']}           Run the API + scheduler (--port=N, --reload)
    {ColorFormatter.COLORS['INFO']}worker{ColorFormatter.COLORS['RESET']}          Run the Celery worker (--concurrency=N)
    {ColorFormatter.COLORS['INFO']}status{ColorFormatter.COLORS['RESET']}          Show configuration and ledger size
    {ColorFormatter.COLORS['INFO']}ledger{ColorFormatter.COLORS['RESET']}          List processed files
    {ColorFormatter.COLORS['WARNING']}clear-ledger{ColorFormatter.COLORS['RESET']}    Forget all processed files (⚠ reprocesses everything)

{ColorFormatter.COLORS['BOLD']}Examples:{ColorFormatter.COLORS['RESET']}
    python manage.py sync
    python manage.py serve --port=8080
    python manage.py worker --concurrency=2
"""


def _option(opts, name, default):
    for o in opts:
        if o.startswith(f"--{name}="):
            return o.split("=", 1)[1]
    return default


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(USAGE)
        sys.exit(0)

    command = sys.argv[1]
    opts = sys.argv[2:]

    try:
        mgr = SyncManager()
        if command == "sync":
            if not mgr.sync():
                sys.exit(1)
        elif command == "serve":
            mgr.serve(
                host=_option(opts, "host", "0.0.0.0"),
                port=int(_option(opts, "port", "8000")),
                reload="--reload" in opts,
            )
        elif command == "worker":
            mgr.worker(concurrency=int(_option(opts, "concurrency", "1")))
        elif command == "status":
            mgr.status()
        elif command == "ledger":
            mgr.ledger()
        elif command == "clear-ledger":
            mgr.clear_ledger()
        else:
            logger.error(f"Unknown command: {command}")
            print(USAGE)
            sys.exit(1)
    except Exception as exc:
        logger.error(f"Operation failed: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
