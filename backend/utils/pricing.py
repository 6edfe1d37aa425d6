from decimal import Decimal, ROUND_HALF_UP

DEFAULT_TAX_RATE = 20.0


def round_money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def line_amounts(unit_price: float, quantity: int, tax_rate) -> tuple:
    """Unrounded (total excl. tax, tax amount, total incl. tax) for one line."""
    rate = DEFAULT_TAX_RATE if tax_rate is None else tax_rate
    total_ht = unit_price * quantity
    tax = total_ht * rate / 100
    return total_ht, tax, total_ht + tax


def summarize(lines) -> dict:
    """Cart totals from (quantity, unit_price, tax_rate) triples; sums are rounded once at the end."""
    subtotal = 0.0
    tax_total = 0.0
    item_count = 0
    total_quantity = 0
    for quantity, unit_price, tax_rate in lines:
        total_ht, tax, _ = line_amounts(unit_price, quantity, tax_rate)
        subtotal += total_ht
        tax_total += tax
        item_count += 1
        total_quantity += quantity
    return {
        "item_count": item_count,
        "total_quantity": total_quantity,
        "subtotal_ht": round_money(subtotal),
        "total_tva": round_money(tax_total),
        "total_ttc": round_money(subtotal + tax_total),
    }
