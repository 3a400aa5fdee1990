"""
Brokerage Hub — Legacy Submarket Decode
=========================================
Property `submarket` values in the mirror are inconsistently encoded: plain
text (`City`), a JSON array serialised into the text column (`["City Core"]`),
or text wrapped in extra quotes by earlier serialisation bugs.

Everything that reads a submarket goes through `decode_legacy_submarket`, so
once upstream data is clean the decoder reduces to trimming and can be
removed without touching callers.

Usage:
    from scripts.lib.submarkets import aggregate_submarkets

    aggregate_submarkets([
        {"submarket": '["City"]', "count": 3},
        {"submarket": "City", "count": 2},
    ])
    # [{"submarket": "City", "count": 5}]
"""
from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import call_rpc, select_column

logger = setup_logger("submarkets")

_OUTER_QUOTE = re.compile(r'^"|"\Z')


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant: {name}")


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def _as_text(value: Any) -> str:
    """String form of a decoded JSON element, as the dashboard has always rendered it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, list):
        return ",".join("" if v is None else _as_text(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def _expand(raw: Any) -> List[str]:
    if isinstance(raw, list):
        return [_as_text(v).strip() for v in raw]

    trimmed = str(raw).strip()
    if not (trimmed.startswith("[") and trimmed.endswith("]")):
        return [trimmed]

    try:
        parsed = json.loads(trimmed, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return [trimmed]

    if not isinstance(parsed, list):
        return [trimmed]
    return [_as_text(v).strip() for v in parsed]


def _strip_wrapping(value: str) -> str:
    clean = _OUTER_QUOTE.sub("", value).strip()
    if clean.startswith('["') and clean.endswith('"]'):
        clean = clean[2:-2].strip()
    elif clean.startswith("[") and clean.endswith("]"):
        clean = clean[1:-1].strip()
    return clean


def decode_legacy_submarket(raw: Any) -> List[str]:
    """
    Decode one stored submarket value into its cleaned names.

    1. Trim. A value shaped like a JSON array is parsed; a parsed array yields
       one candidate per element, anything else is kept as a single literal.
    2. Each candidate loses one layer of surrounding double quotes, then one
       layer of `["..."]` or `[...]` wrapping.
    3. Empty results are dropped.

    Malformed input degrades to literal pass-through; this never raises.
    """
    if raw is None:
        return []
    cleaned = (_strip_wrapping(value) for value in _expand(raw))
    return [value for value in cleaned if value]


def has_residual_quote(value: str) -> bool:
    """True when a cleaned value still carries a double quote (nested escaping)."""
    return '"' in value


def aggregate_submarkets(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Merge raw submarket rows into cleaned `{submarket, count}` entries.

    A row counts once (or its `count`, when present) towards every name it
    decodes into. Output is ordered by count descending; ties keep the order
    in which names were first seen.
    """
    totals: Dict[str, int] = {}
    flagged = set()

    for row in rows:
        count = row.get("count")
        count = 1 if count is None else int(count)
        for name in decode_legacy_submarket(row.get("submarket")):
            if has_residual_quote(name) and name not in flagged:
                flagged.add(name)
                logger.warning(
                    "Submarket %r still contains a quote after cleaning (raw: %r)",
                    name, row.get("submarket"),
                )
            totals[name] = totals.get(name, 0) + count

    stats = [{"submarket": name, "count": total} for name, total in totals.items()]
    return sorted(stats, key=lambda s: s["count"], reverse=True)


def display_submarket(raw: Any) -> Optional[str]:
    """Single display string for a stored submarket, or None when empty."""
    names = decode_legacy_submarket(raw)
    return ", ".join(names) if names else None


def encode_submarket(value: Any) -> Optional[str]:
    """
    Mirror-column form of the CRM's Submarkets field.

    A single name is stored as plain text. Several names are stored as a
    JSON array, which `decode_legacy_submarket` expands again.
    """
    if value is None:
        return None
    if isinstance(value, list):
        names = [n for n in (_as_text(v).strip() for v in value if v is not None) if n]
        if not names:
            return None
        return names[0] if len(names) == 1 else json.dumps(names)
    return str(value).strip() or None


def load_submarket_stats(db) -> List[Dict[str, Any]]:
    """
    Cleaned submarket counts for the whole mirror.

    Prefers the `get_submarket_stats` database function (raw value counts,
    decoded here); on error or an empty result every property's submarket
    is read and counted once.
    """
    try:
        rows = call_rpc("get_submarket_stats", client=db)
    except Exception as e:
        logger.warning("RPC get_submarket_stats failed, aggregating properties instead: %s", e)
        rows = None

    if not rows:
        rows = select_column("properties", "submarket", client=db)
    return aggregate_submarkets(rows)
