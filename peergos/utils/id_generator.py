from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone


def generate_id(prefix: str) -> str:
    ts = int(time.time() * 1000)
    rand = secrets.token_hex(3)
    return f"{prefix}-{ts}-{rand}".upper()


def generate_entry_id(kind: str) -> str:
    """Id for a revenue/expense entry, e.g. ``REV-1718000000000-A1B2C3``."""
    return generate_id("REV" if kind == "revenue" else "EXP")


def generate_reference_number(tax_type: str | None = None, now: datetime | None = None) -> str:
    """FTA submission reference.

    ``FTA-<ts>-<hex>`` for a combined filing, ``FTA-VAT-<year>-<hex>`` when a
    tax type is given.
    """
    if not tax_type:
        return generate_id("FTA")
    year = (now or datetime.now(timezone.utc)).year
    return f"FTA-{tax_type}-{year}-{secrets.token_hex(3)}".upper()
