"""Line-item and bill total calculation."""
from decimal import ROUND_HALF_UP, Decimal

TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def compute_line(quantity: Decimal, unit_price: Decimal, discount_amount: Decimal = Decimal("0")) -> dict:
    gross = _money(Decimal(quantity) * Decimal(unit_price))
    discount = _money(discount_amount)
    return {
        "gross_amount": gross,
        "discount_amount": discount,
        "net_amount": gross - discount,
    }


def compute_bill_totals(
    items: list,
    vat_applicable: bool = False,
    vat_percentage: Decimal = Decimal("0"),
    tds_applicable: bool = False,
    tds_percentage: Decimal = Decimal("0"),
    other_charges: Decimal = Decimal("0"),
    deduction_amount: Decimal = Decimal("0"),
) -> dict:
    """Compute per-line amounts and the bill's payable total.

    VAT is added to and TDS withheld from the line subtotal; other charges are
    added and deductions subtracted after tax.

    Args:
        items: Objects with quantity, unit_price and discount_amount.

    Returns:
        Dict with lines (list of per-line dicts, in input order), subtotal,
        vat_amount, tds_amount and total_payable_amount.
    """
    lines = [compute_line(i.quantity, i.unit_price, i.discount_amount) for i in items]
    subtotal = sum((line["net_amount"] for line in lines), Decimal("0"))

    vat_amount = _money(subtotal * Decimal(vat_percentage) / HUNDRED) if vat_applicable else Decimal("0.00")
    tds_amount = _money(subtotal * Decimal(tds_percentage) / HUNDRED) if tds_applicable else Decimal("0.00")

    total = subtotal + vat_amount + _money(other_charges) - tds_amount - _money(deduction_amount)

    return {
        "lines": lines,
        "subtotal": _money(subtotal),
        "vat_amount": vat_amount,
        "tds_amount": tds_amount,
        "total_payable_amount": _money(total),
    }
