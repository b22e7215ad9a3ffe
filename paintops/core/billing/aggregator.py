from collections.abc import Iterable

from paintops.core.billing.money import ZERO, to_money
from paintops.core.billing.schemas import BaseBilling, BillingLine, BillingTotals


def aggregate(base: BaseBilling | None, lines: Iterable[BillingLine]) -> BillingTotals:
    """Sum base billing and resolved lines. Profit is always recomputed as bill - sub."""
    bill = to_money(base.bill_amount) if base else ZERO
    sub = to_money(base.sub_pay_amount) if base else ZERO
    extra_bill = ZERO
    extra_sub = ZERO

    for line in lines:
        bill += line.amount_bill
        sub += line.amount_sub
        if line.section == "extra":
            extra_bill += line.amount_bill
            extra_sub += line.amount_sub

    return BillingTotals(
        bill_total=to_money(bill),
        sub_pay_total=to_money(sub),
        profit_total=to_money(bill - sub),
        extra_bill_total=to_money(extra_bill),
        extra_sub_pay_total=to_money(extra_sub),
    )
