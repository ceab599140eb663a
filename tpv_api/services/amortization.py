"""Monthly payment calculation for financed sales.

Financeit charges an admin fee of 1.49% of the price (capped at $149) that is
rolled into the financed amount before amortizing.
"""

from decimal import Decimal, ROUND_HALF_UP

ADMIN_FEE_RATE = 0.0149
ADMIN_FEE_CAP = 149.0

# Finance companies whose monthly payment we compute instead of asking the agent
CALCULATED_FINANCE_COMPANIES = frozenset({"Financeit Canada Inc."})


def calculate_monthly_payment(price: float, annual_rate: float, months: int) -> float:
    """Return the monthly payment, rounded half-up to cents.

    Args:
        price: Sale price including taxes
        annual_rate: Nominal annual rate as a percentage (9.99 means 9.99%)
        months: Amortization period in months
    """
    if price <= 0:
        raise ValueError("price must be positive")
    if annual_rate < 0:
        raise ValueError("annual_rate must not be negative")
    if months <= 0:
        raise ValueError("months must be positive")

    admin_fee = min(price * ADMIN_FEE_RATE, ADMIN_FEE_CAP)
    total = price + admin_fee

    if annual_rate == 0:
        monthly = total / months
    else:
        monthly_rate = annual_rate / 100 / 12
        growth = (1 + monthly_rate) ** months
        monthly = total * monthly_rate * growth / (growth - 1)

    return float(Decimal(str(monthly)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _parse_float(value) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def resolve_monthly_payment(
    payment_option: str | None,
    finance_company: str | None,
    sales_price,
    interest_rate,
    amortization,
    supplied=None,
) -> str:
    """Decide the monthly payment to store and send to the assistant.

    Non-finance sales carry no payment. For companies we calculate for, the
    payment is derived whenever price, rate and term all parse; otherwise the
    agent-supplied value (or blank) is kept.
    """
    if payment_option != "finance":
        return ""

    if finance_company in CALCULATED_FINANCE_COMPANIES:
        price = _parse_float(sales_price)
        rate = _parse_float(interest_rate)
        months = _parse_int(amortization)
        if price is not None and rate is not None and months is not None:
            try:
                return f"{calculate_monthly_payment(price, rate, months):.2f}"
            except ValueError:
                pass

    return "" if supplied is None else str(supplied)
