# easy_ops/core/units.py
from decimal import Decimal, InvalidOperation
import inflect

_inflect = inflect.engine()


def format_quantity(quantity) -> str:
    """Plain number without trailing zeros: 1.00 -> '1', 5.50 -> '5.5'"""
    try:
        value = Decimal(str(quantity))
    except (InvalidOperation, ValueError):
        return str(quantity)
    if not value.is_finite():
        return str(quantity)
    return f"{value.normalize():f}"


def format_quantity_with_unit(quantity, unit) -> str:
    """
    "1 lid", "5 lids", "0.5 lids".

    Units are stored singular but plural input is tolerated; only a magnitude
    of exactly one takes the singular form.
    """
    number = format_quantity(quantity)
    unit = (unit or "").strip()
    if not unit:
        return number

    singular = _inflect.singular_noun(unit)  # False when already singular
    try:
        is_one = abs(Decimal(number)) == 1
    except InvalidOperation:
        is_one = False

    if is_one:
        display = singular or unit
    else:
        display = unit if singular else _inflect.plural_noun(unit)
    return f"{number} {display}"
