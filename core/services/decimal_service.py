from __future__ import annotations

from decimal import Decimal, localcontext


def to_decimal(raw: int, decimals: int) -> float:
    """
    Convert a fixed-point on-chain integer into a float.

    Division happens in `Decimal` with enough precision for uint256 values, so
    18-decimal amounts above 2**64 keep their significant digits before the
    final narrowing to float.

    Args:
        raw: Raw integer amount (e.g. wei).
        decimals: Number of decimal places of the token (>= 0).
    """
    if decimals == 0:
        return float(int(raw))

    with localcontext() as ctx:
        ctx.prec = 96
        return float(Decimal(int(raw)) / (Decimal(10) ** int(decimals)))
