"""Service pricing by marital status (USD)."""
from decimal import Decimal

MARITAL_STATUS_LABELS = {
    "single": "Single",
    "married": "Married",
    "married_to_citizen": "Married to US Citizen / Legal Resident",
    "married_to_lpr": "Married to Legal Permanent Resident",
    "divorced": "Divorced",
    "widowed": "Widowed",
    "separated": "Legally Separated",
    "legally_separated": "Legally Separated",
}

GOVERNMENT_FEE = Decimal("1.00")
SINGLE_FEE = Decimal("299")
# Both spouses enter the lottery ("double chance" bundle)
MARRIED_FEE = Decimal("598")


def calculate_service_fee(marital_status: str) -> Decimal:
    return MARRIED_FEE if marital_status == "married" else SINGLE_FEE


def calculate_total_price(marital_status: str) -> Decimal:
    return calculate_service_fee(marital_status) + GOVERNMENT_FEE


def is_double_chance_bundle(marital_status: str) -> bool:
    return marital_status == "married"


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def format_marital_status(status: str | None) -> str:
    if not status:
        return "N/A"
    return MARITAL_STATUS_LABELS.get(status) or " ".join(w.capitalize() for w in status.split("_"))
