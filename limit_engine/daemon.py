"""Scheduler daemon: hosts the execution scheduler as a long-running process.

The scheduler runs cycles on its own thread; this process owns the PID file,
signal handling and the state file that `status` reads.

Usage:
    python -m limit_engine run --config ops/configs/default.yaml
    python -m limit_engine run --interval 15
    python -m limit_engine run --stop
"""

import json
import logging
import os
import signal
import sys
import time
from datetime import UTC, datetime
from pathlib import Path

from limit_engine.config.schema import EngineConfig, ExecutionMode
from limit_engine.factory import build_scheduler
from limit_engine.scheduler import ExecutionScheduler

logger = logging.getLogger(__name__)

PID_DIR = Path("data")
PID_FILE = PID_DIR / "scheduler.pid"
STATE_FILE = PID_DIR / "scheduler_state.json"
LOG_DIR = Path("logs")
MAX_LOG_FILES = 30  # Keep last 30 run logs
STOP_TIMEOUT = 60


class SchedulerDaemon:
    """Runs the execution scheduler until SIGTERM/SIGINT."""

    def __init__(
        self,
        config: EngineConfig,
        db_path: str = "data/engine.db",
        interval: int | None = None,
        live: bool = False,
        scheduler: ExecutionScheduler | None = None,
    ):
        updates = {}
        if interval is not None:
            updates["scheduler"] = config.scheduler.model_copy(
                update={"interval_seconds": interval}
            )
        if live:
            updates["execution"] = config.execution.model_copy(
                update={"mode": ExecutionMode.LIVE}
            )
        self.config = config.model_copy(update=updates) if updates else config
        self.db_path = db_path
        self.scheduler = scheduler or build_scheduler(self.config, db_path)
        self._running = False
        self._started_at: str | None = None
        self._file_handler: logging.FileHandler | None = None

    def start(self) -> None:
        self._check_not_already_running()
        self._write_pid()
        self._setup_signals()
        self._attach_log_file()
        self._running = True
        self._started_at = datetime.now(UTC).isoformat()

        mode_label = self.config.execution.mode.value.upper()
        interval = self.config.scheduler.interval_seconds
        logger.info(
            "Daemon started (mode=%s interval=%ds pid=%d)",
            mode_label, interval, os.getpid(),
        )
        print(f"🔄 Limit order scheduler started (pid {os.getpid()}, {mode_label}, every {interval}s)")
        print(f"   Logs: {LOG_DIR}/")
        print("   Stop: python -m limit_engine run --stop")

        self.scheduler.start()
        try:
            self._loop()
        except KeyboardInterrupt:
            logger.info("Daemon interrupted by keyboard")
        finally:
            self.scheduler.stop(timeout=STOP_TIMEOUT)
            self._cleanup()

    def _loop(self) -> None:
        # Wake every second so signals are handled promptly.
        while self._running:
            self._save_state()
            time.sleep(1)
            if not self.scheduler.is_running:
                logger.error("Scheduler thread exited unexpectedly")
                self._running = False

    def _attach_log_file(self) -> None:
        """Mirror this run's log records into logs/scheduler_<timestamp>.log."""
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        handler = logging.FileHandler(LOG_DIR / f"scheduler_{timestamp}.log")
        handler.setLevel(logging.INFO)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logging.getLogger().addHandler(handler)
        self._file_handler = handler
        self._rotate_logs()

    def _detach_log_file(self) -> None:
        if self._file_handler is None:
            return
        logging.getLogger().removeHandler(self._file_handler)
        self._file_handler.close()
        self._file_handler = None

    def _rotate_logs(self) -> None:
        """Keep only the most recent log files."""
        logs = sorted(LOG_DIR.glob("scheduler_*.log"))
        if len(logs) > MAX_LOG_FILES:
            for old in logs[: len(logs) - MAX_LOG_FILES]:
                old.unlink(missing_ok=True)

    def _setup_signals(self) -> None:
        def _stop(signum: int, frame: object) -> None:
            sig_name = signal.Signals(signum).name
            logger.info("Received %s, shutting down gracefully...", sig_name)
            print(f"\n⏹️  Received {sig_name}, finishing current cycle...")
            self._running = False

        signal.signal(signal.SIGTERM, _stop)
        signal.signal(signal.SIGINT, _stop)

    def _check_not_already_running(self) -> None:
        if not PID_FILE.exists():
            return
        try:
            pid = int(PID_FILE.read_text().strip())
            os.kill(pid, 0)
        except (ProcessLookupError, ValueError):
            PID_FILE.unlink(missing_ok=True)
            return
        except PermissionError:
            print("❌ Scheduler may be running, can't verify.")
            sys.exit(1)
        print(f"❌ Scheduler already running (pid {pid}). Stop it first:")
        print("   python -m limit_engine run --stop")
        sys.exit(1)

    def _write_pid(self) -> None:
        PID_DIR.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text(str(os.getpid()))

    def _save_state(self) -> None:
        last = self.scheduler.last_summary
        state = {
            "pid": os.getpid(),
            "started_at": self._started_at,
            "interval": self.config.scheduler.interval_seconds,
            "mode": self.config.execution.mode.value,
            "last_cycle_id": last.cycle_id if last else None,
            "last_cycle_status": last.status if last else None,
            "last_orders_checked": last.orders_checked if last else 0,
            "last_orders_filled": last.orders_filled if last else 0,
            "last_update": datetime.now(UTC).isoformat(),
        }
        PID_DIR.mkdir(parents=True, exist_ok=True)
        STATE_FILE.write_text(json.dumps(state, indent=2))

    def _cleanup(self) -> None:
        PID_FILE.unlink(missing_ok=True)
        self._save_state()
        logger.info("Daemon stopped")
        self._detach_log_file()
        print("⏹️  Limit order scheduler stopped")


def stop_daemon() -> int:
    """Stop a running daemon by sending SIGTERM."""
    if not PID_FILE.exists():
        print("No scheduler running (no PID file found)")
        return 1

    try:
        pid = int(PID_FILE.read_text().strip())
    except ValueError:
        print("Corrupt PID file, removing")
        PID_FILE.unlink(missing_ok=True)
        return 1

    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        print(f"Scheduler not running (stale pid {pid}), cleaning up")
        PID_FILE.unlink(missing_ok=True)
        STATE_FILE.unlink(missing_ok=True)
        return 0

    print(f"Stopping scheduler (pid {pid})...")
    os.kill(pid, signal.SIGTERM)

    for _ in range(STOP_TIMEOUT):
        time.sleep(1)
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            print("✅ Scheduler stopped")
            PID_FILE.unlink(missing_ok=True)
            return 0

    print(f"⚠️  Scheduler didn't stop in {STOP_TIMEOUT}s, sending SIGKILL")
    os.kill(pid, signal.SIGKILL)
    PID_FILE.unlink(missing_ok=True)
    return 0


def daemon_status() -> int:
    """Print daemon status from the state file."""
    if not STATE_FILE.exists():
        print("No scheduler state found")
        return 1

    state = json.loads(STATE_FILE.read_text())
    pid = state.get("pid", "?")

    running = False
    try:
        os.kill(int(pid), 0)
        running = True
    except (ProcessLookupError, ValueError, TypeError):
        pass

    icon = "🟢" if running else "🔴"
    print(f"{icon} Scheduler {'running' if running else 'stopped'}")
    print(f"  PID: {pid}")
    print(f"  Mode: {str(state.get('mode', 'unknown')).upper()}")
    print(f"  Interval: {state.get('interval', '?')}s")
    print(f"  Started: {state.get('started_at', '?')}")
    print(f"  Last cycle: {state.get('last_cycle_id') or 'none'} ({state.get('last_cycle_status') or '-'})")
    print(f"  Last cycle orders: {state.get('last_orders_checked', 0)} checked, "
          f"{state.get('last_orders_filled', 0)} filled")
    print(f"  Last update: {state.get('last_update', '?')}")
    return 0
