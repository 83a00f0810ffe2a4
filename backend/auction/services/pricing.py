"""Currency display and bid increment helpers.

Amounts are integers in minor units, where 10^5 is one lakh and 10^7 one crore.
"""

LAKH = 10 ** 5
CRORE = 10 ** 7

INCREMENT_THRESHOLD = 2 * CRORE
SMALL_INCREMENT = 25 * LAKH
LARGE_INCREMENT = CRORE


def format_amount(amount: int) -> str:
    """Render an amount with a Cr/L suffix, e.g. 50000000 -> '₹5.0Cr'."""
    if amount >= CRORE:
        return f"₹{amount / CRORE:.1f}Cr"
    if amount >= LAKH:
        return f"₹{amount / LAKH:.1f}L"
    return f"₹{amount}"


def bid_increment(current_amount: int) -> int:
    """Minimum raise over ``current_amount``: 25L below 2Cr, 1Cr from there on."""
    if current_amount < INCREMENT_THRESHOLD:
        return SMALL_INCREMENT
    return LARGE_INCREMENT
