"""CLI entry point for the limit order engine."""

import argparse
import logging

from limit_engine.config.loader import get_config_value, load_config, set_config_value
from limit_engine.config.schema import ExecutionMode
from limit_engine.factory import build_order_service, build_scheduler
from limit_engine.models.errors import InsufficientBalanceError, IntakeError
from limit_engine.models.order import OrderDirection, OrderStatus
from limit_engine.reporting.formatters import (
    format_cycle_summary_json,
    format_order_confirmation,
    format_order_list,
)
from limit_engine.storage import state_repo
from limit_engine.storage.database import connect, run_migrations

DEFAULT_CONFIG = "ops/configs/default.yaml"
DEFAULT_DB = "data/engine.db"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="limit_engine",
        description="Limit order execution engine",
    )
    parser.add_argument(
        "--config", default=DEFAULT_CONFIG, help="Config YAML path"
    )
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite DB path")

    sub = parser.add_subparsers(dest="command")

    # run (daemon)
    run_p = sub.add_parser("run", help="Run the scheduler as a daemon")
    run_p.add_argument("--live", action="store_true", help="Enable live execution")
    run_p.add_argument("--interval", type=int, help="Seconds between cycles")
    run_p.add_argument("--stop", action="store_true", help="Stop a running daemon")
    run_p.add_argument("--status", action="store_true", help="Show daemon status")

    # cycle
    cycle_p = sub.add_parser("cycle", help="Run one scheduler cycle")
    cycle_p.add_argument("--live", action="store_true", help="Enable live execution")

    # status
    sub.add_parser("status", help="Show pause flag, active orders and last cycle")

    # orders
    orders_p = sub.add_parser("orders", help="Order operations")
    orders_sub = orders_p.add_subparsers(dest="orders_command")
    create_p = orders_sub.add_parser("create", help="Create a limit order")
    create_p.add_argument("--user", type=int, required=True)
    create_p.add_argument("direction", choices=["buy", "sell"])
    create_p.add_argument("token", help="Token mint address")
    create_p.add_argument("text", help="'<price> <volume>' or '<price> <pct>%%'")
    create_p.add_argument("--symbol", default="", help="Token symbol for display")
    list_p = orders_sub.add_parser("list", help="List active orders")
    list_p.add_argument("--user", type=int, required=True)
    hist_p = orders_sub.add_parser("history", help="List all orders")
    hist_p.add_argument("--user", type=int, required=True)
    hist_p.add_argument("--status", choices=[s.value for s in OrderStatus])
    cancel_p = orders_sub.add_parser("cancel", help="Cancel one order")
    cancel_p.add_argument("--user", type=int, required=True)
    cancel_p.add_argument("order_id", type=int)
    cancel_all_p = orders_sub.add_parser("cancel-all", help="Cancel all active orders")
    cancel_all_p.add_argument("--user", type=int, required=True)

    # wallet
    wallet_p = sub.add_parser("wallet", help="Wallet operations")
    wallet_sub = wallet_p.add_subparsers(dest="wallet_command")
    link_p = wallet_sub.add_parser("link", help="Link a public wallet address to a user")
    link_p.add_argument("--user", type=int, required=True)
    link_p.add_argument("address")

    # config show / config set
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    set_p = config_sub.add_parser("set", help="Set a config value")
    set_p.add_argument("keyvalue", help="key=value to set")

    # pause / resume
    sub.add_parser("pause", help="Pause order execution")
    sub.add_parser("resume", help="Resume order execution")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    if args.command == "run":
        return _cmd_run(config, args)
    elif args.command == "cycle":
        return _cmd_cycle(config, args)
    elif args.command == "status":
        return _cmd_status(args)
    elif args.command == "orders":
        return _cmd_orders(config, args)
    elif args.command == "wallet":
        return _cmd_wallet(config, args)
    elif args.command == "config":
        return _cmd_config(config, args)
    elif args.command == "pause":
        return _cmd_pause(args)
    elif args.command == "resume":
        return _cmd_resume(args)
    else:
        parser.print_help()
        return 1


def _with_live(config, live: bool):
    if not live:
        return config
    return config.model_copy(
        update={"execution": config.execution.model_copy(update={"mode": ExecutionMode.LIVE})}
    )


def _cmd_run(config, args) -> int:
    from limit_engine.daemon import SchedulerDaemon, daemon_status, stop_daemon

    if args.stop:
        return stop_daemon()
    if args.status:
        return daemon_status()
    daemon = SchedulerDaemon(config, args.db, interval=args.interval, live=args.live)
    daemon.start()
    return 0


def _cmd_cycle(config, args) -> int:
    config = _with_live(config, args.live)
    if config.execution.mode == ExecutionMode.LIVE:
        print("WARNING: Running in LIVE mode")
    summary = build_scheduler(config, args.db).run_cycle()
    print(format_cycle_summary_json(summary))
    return 0 if not summary.errors else 1


def _cmd_status(args) -> int:
    conn = connect(args.db)
    run_migrations(conn)
    active = conn.execute(
        "SELECT COUNT(*) FROM limit_orders WHERE status = ?",
        (OrderStatus.ACTIVE.value,),
    ).fetchone()[0]
    paused = state_repo.is_paused(conn)
    last = state_repo.get_latest_cycle(conn)
    conn.close()

    print(f"Paused: {paused} | Active orders: {active}")
    if last is None:
        print("Last cycle: never")
    else:
        print(
            f"Last cycle: {last['started_at']} {last['status']} "
            f"({last['orders_checked']} checked, {last['orders_filled']} filled, "
            f"{last['orders_failed']} failed)"
        )
    return 0


def _cmd_orders(config, args) -> int:
    service = build_order_service(config, args.db)
    cmd = args.orders_command

    if cmd == "create":
        direction = OrderDirection(args.direction.upper())
        try:
            order = service.create_order(
                args.user, direction, args.token, args.text, args.symbol,
            )
        except InsufficientBalanceError as e:
            print(f"Error: {e} (required {e.required:.6f}, available {e.available:.6f})")
            return 1
        except IntakeError as e:
            print(f"Error: {e}")
            return 1
        pct = None
        if direction == OrderDirection.SELL:
            pct = service.percentage_of_balance(order.amount, order.token_address, args.user)
        print(f"Created order #{order.id}")
        print(format_order_confirmation(
            direction, order.token_symbol, order.limit_price, order.amount,
            order.total_value, pct,
        ))
        return 0
    elif cmd == "list":
        print(format_order_list(service.list_orders(args.user)))
        return 0
    elif cmd == "history":
        status = OrderStatus(args.status) if args.status else None
        orders = service.order_history(args.user, status)
        if not orders:
            print("No orders found")
        for o in orders:
            print(
                f"#{o.id} {o.direction} {o.amount:.6f} {o.token_symbol} "
                f"@ {o.limit_price:.9f} {o.status} {o.tx_reference or ''}".rstrip()
            )
        return 0
    elif cmd == "cancel":
        if service.cancel_order(args.order_id, args.user):
            print(f"Order #{args.order_id} cancelled")
            return 0
        print(f"Order #{args.order_id} not found or no longer active")
        return 1
    elif cmd == "cancel-all":
        count = service.cancel_all_orders(args.user)
        print(f"Cancelled {count} orders")
        return 0
    else:
        print("Use: orders create | list | history | cancel | cancel-all")
        return 1


def _cmd_wallet(config, args) -> int:
    if args.wallet_command != "link":
        print("Use: wallet link --user ID ADDRESS")
        return 1
    build_order_service(config, args.db).link_wallet(args.user, args.address)
    print(f"Linked wallet {args.address} to user {args.user}")
    return 0


def _cmd_config(config, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "set":
        kv = args.keyvalue
        if "=" not in kv:
            print("Error: use key=value format")
            return 1
        key, value = kv.split("=", 1)
        try:
            new_config = set_config_value(config, key.strip(), value.strip())
            print(f"Set {key} = {get_config_value(new_config, key.strip())}")
            return 0
        except (KeyError, ValueError) as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config set key=value")
        return 1


def _cmd_pause(args) -> int:
    conn = connect(args.db)
    run_migrations(conn)
    state_repo.set_system_state(conn, "paused", "true")
    state_repo.log_operator_command(conn, "pause", result="paused")
    print("Order execution paused")
    conn.close()
    return 0


def _cmd_resume(args) -> int:
    conn = connect(args.db)
    run_migrations(conn)
    state_repo.set_system_state(conn, "paused", "false")
    state_repo.log_operator_command(conn, "resume", result="resumed")
    print("Order execution resumed")
    conn.close()
    return 0
