"""Rounding policy applied to each member's share of an expense."""

from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from ..models import ZERO, RoundingRule

HALF = Decimal("0.5")

# rule -> (decimal rounding mode, unit, offset added before rounding)
_RULES: dict[RoundingRule, tuple[str, int, Decimal]] = {
    RoundingRule.ROUND_10: (ROUND_FLOOR, 10, HALF),
    RoundingRule.ROUND_100: (ROUND_FLOOR, 100, HALF),
    RoundingRule.FLOOR_10: (ROUND_FLOOR, 10, ZERO),
    RoundingRule.FLOOR_100: (ROUND_FLOOR, 100, ZERO),
    RoundingRule.CEIL_10: (ROUND_CEILING, 10, ZERO),
    RoundingRule.CEIL_100: (ROUND_CEILING, 100, ZERO),
}


def apply_rounding(value: Decimal, rule: RoundingRule | str | None) -> Decimal:
    """
    Round an amount to a multiple of 10 or 100 according to a rounding rule.

    ROUND_* rounds to the nearest multiple with halves going toward positive
    infinity (``-25`` becomes ``-20``), FLOOR_* rounds toward negative
    infinity and CEIL_* toward positive infinity. NONE, as well as any
    unknown or malformed rule, returns the value unchanged.

    Args:
        value: Raw amount
        rule: Rounding rule (enum member or its string value)

    Returns:
        Rounded amount
    """
    params = _RULES.get(RoundingRule(rule))
    if params is None:
        return value

    rounding, unit, offset = params
    units = (value / unit + offset).quantize(Decimal("1"), rounding=rounding)
    return units * unit
