"""Message and summary formatters."""

import json

from limit_engine.models.order import LimitOrder, OrderDirection
from limit_engine.models.reporting import CycleSummary

BASE_UNIT = "SOL"


def _tx_link(tx_reference: str | None, explorer_tx_url: str) -> str:
    if not tx_reference:
        return "unknown"
    return f'<a href="{explorer_tx_url}{tx_reference}">{tx_reference}</a>'


def format_fill_message(
    order: LimitOrder,
    market_price: float,
    tx_reference: str | None,
    explorer_tx_url: str = "https://explorer.solana.com/tx/",
) -> str:
    return "\n".join([
        "✅ <b>Limit Order Executed</b>",
        "",
        f"Your limit {order.direction} order #{order.id} has been filled:",
        f"• {order.amount:.6f} {order.token_symbol} at {order.limit_price:.9f} {BASE_UNIT}",
        f"• Market price: {market_price:.9f} {BASE_UNIT}",
        f"• Total: {order.amount * market_price:.6f} {BASE_UNIT}",
        f"• Transaction: {_tx_link(tx_reference, explorer_tx_url)}",
    ])


def format_retry_message(
    order: LimitOrder, market_price: float, error: str, attempt: int, max_attempts: int
) -> str:
    return "\n".join([
        "⚠️ <b>Limit Order Attempt Failed</b>",
        "",
        f"Your limit {order.direction} order #{order.id} could not be executed "
        f"(attempt {attempt} of {max_attempts}):",
        f"• {order.amount:.6f} {order.token_symbol} at {order.limit_price:.9f} {BASE_UNIT}",
        f"• Market price: {market_price:.9f} {BASE_UNIT}",
        f"• Error: {error}",
        "",
        "The order stays active and will be retried on the next check.",
    ])


def format_failure_message(order: LimitOrder, market_price: float, error: str) -> str:
    return "\n".join([
        "❌ <b>Limit Order Failed</b>",
        "",
        f"Your limit {order.direction} order #{order.id} could not be executed:",
        f"• {order.amount:.6f} {order.token_symbol} at {order.limit_price:.9f} {BASE_UNIT}",
        f"• Market price: {market_price:.9f} {BASE_UNIT}",
        f"• Error: {error}",
        "",
        "The order has been marked as failed. Please check your wallet and "
        "create a new order.",
    ])


def price_distance(order: LimitOrder) -> str:
    """How far the last observed price is from the limit, e.g. ' (2.50% above)'."""
    if order.last_observed_price is None:
        return ""
    diff = (order.last_observed_price / order.limit_price) * 100.0 - 100.0
    if order.direction == OrderDirection.BUY:
        where = "above" if diff < 0 else "below"
    else:
        where = "below" if diff < 0 else "above"
    return f" ({abs(diff):.2f}% {where})"


def format_order_list(orders: list[LimitOrder]) -> str:
    if not orders:
        return "You have no active limit orders."

    lines = ["<b>Your Active Limit Orders</b>"]
    for direction, title in ((OrderDirection.BUY, "Buy"), (OrderDirection.SELL, "Sell")):
        group = [o for o in orders if o.direction == direction]
        if not group:
            continue
        lines.append("")
        lines.append(f"<b>{title} Orders:</b>")
        for o in group:
            lines.append(
                f"• <b>#{o.id}</b>: {o.amount:.6f} {o.token_symbol} at "
                f"{o.limit_price:.9f} {BASE_UNIT}{price_distance(o)}"
            )
    return "\n".join(lines)


def format_order_confirmation(
    direction: OrderDirection,
    token_symbol: str,
    price: float,
    amount: float,
    total: float,
    balance_pct: float | None = None,
) -> str:
    lines = [
        f"Limit {direction}: {amount:.6f} {token_symbol} at {price:.9f} {BASE_UNIT}",
        f"Total: {total:.6f} {BASE_UNIT}",
    ]
    if balance_pct is not None:
        lines.append(f"That is {balance_pct:.2f}% of your {token_symbol} balance.")
    return "\n".join(lines)


def format_cycle_summary_text(s: CycleSummary) -> str:
    """Plain text summary for logging."""
    lines = [
        f"=== Cycle {s.status} ({s.mode}) | {s.cycle_id[:8]} ===",
        f"Orders: {s.orders_checked} active across {s.instruments_checked} "
        f"instruments ({s.instruments_skipped} skipped)",
        f"Triggered: {s.orders_triggered} | Filled: {s.orders_filled} | "
        f"Retried: {s.orders_retried} | Failed: {s.orders_failed}",
    ]
    if s.errors:
        lines.append(f"Errors: {len(s.errors)}")
    lines.append(f"Duration: {s.duration_seconds:.1f}s")
    return "\n".join(lines)


def format_cycle_summary_json(s: CycleSummary) -> str:
    data = {
        "cycle_id": s.cycle_id,
        "mode": s.mode,
        "status": s.status,
        "orders_checked": s.orders_checked,
        "instruments_checked": s.instruments_checked,
        "instruments_skipped": s.instruments_skipped,
        "prices_updated": s.prices_updated,
        "orders_triggered": s.orders_triggered,
        "orders_filled": s.orders_filled,
        "orders_retried": s.orders_retried,
        "orders_failed": s.orders_failed,
        "duration_seconds": s.duration_seconds,
        "errors": s.errors,
    }
    return json.dumps(data, indent=2)
