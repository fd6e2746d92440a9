from typing import Optional


def calculate_emi(principal: float, annual_rate_percent: float, tenure_months: int) -> float:
    """
    Monthly instalment for a reducing-balance loan.

    EMI = P * r * (1 + r)^n / ((1 + r)^n - 1), r being the monthly rate.
    A zero rate degrades to an even split of the principal.
    """
    if tenure_months <= 0:
        raise ValueError("Tenure must be at least one month")
    if principal <= 0:
        return 0.0
    monthly_rate = annual_rate_percent / 12 / 100
    if monthly_rate == 0:
        return round(principal / tenure_months, 2)
    growth = (1 + monthly_rate) ** tenure_months
    return round(principal * monthly_rate * growth / (growth - 1), 2)


def emi_summary(
    price: float,
    down_payment: Optional[float],
    annual_rate_percent: float,
    tenure_months: int,
) -> dict:
    principal = max(price - (down_payment or 0), 0)
    emi = calculate_emi(principal, annual_rate_percent, tenure_months)
    total_payable = round(emi * tenure_months, 2)
    return {
        "loanAmount": principal,
        "emi": emi,
        "tenureMonths": tenure_months,
        "interestRate": annual_rate_percent,
        "totalPayable": total_payable,
        "totalInterest": round(total_payable - principal, 2),
    }
