"""Idempotency keys for execution attempts."""

import hashlib


def generate_idempotency_key(order_id: int, attempt: int) -> str:
    """Deterministic key for one attempt of one order.

    Re-running the same attempt after an unrecorded outcome yields the same
    key, so the swap service can de-duplicate it.
    """
    raw = f"limit-order|{order_id}|{attempt}"
    return hashlib.sha256(raw.encode()).hexdigest()[:32]
