"""
Costing engine.

Coût moyen pondéré (moyenne mobile pondérée par le stock) :

    new_avg = (stock * current_cost + qty * unit_cost) / (stock + qty)    si stock > 0
    new_avg = unit_cost                                                   sinon

    current_cost = average_cost ?? cost ?? unit_cost

Aucun arrondi ici : la valeur calculée est la valeur de référence,
l'arrondi à 2 décimales est réservé à l'affichage.
"""

from __future__ import annotations

from decimal import Decimal, localcontext

# assez de chiffres pour ne pas dériver sur des milliers de moyennes successives
_PRECISION = 28


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # float -> str pour éviter les artefacts binaires (0.1 -> 0.1000000000000000055...)
    return Decimal(str(value))


def resolve_current_cost(
    average_cost: Decimal | None,
    cost: Decimal | None,
    incoming_unit_cost: Decimal,
) -> Decimal:
    if average_cost is not None:
        return to_decimal(average_cost)
    if cost is not None:
        return to_decimal(cost)
    return to_decimal(incoming_unit_cost)


def weighted_average_cost(
    current_stock: int,
    current_cost: Decimal,
    incoming_quantity: int,
    incoming_unit_cost: Decimal,
) -> Decimal:
    """Return the stock-weighted average unit cost after a purchase."""
    incoming_unit_cost = to_decimal(incoming_unit_cost)
    if current_stock <= 0:
        return incoming_unit_cost

    current_cost = to_decimal(current_cost)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        total_value = current_stock * current_cost + incoming_quantity * incoming_unit_cost
        result = total_value / (current_stock + incoming_quantity)

    # une moyenne ne sort jamais de l'intervalle de ses entrées
    low, high = min(current_cost, incoming_unit_cost), max(current_cost, incoming_unit_cost)
    return min(max(result, low), high)


def display_cost(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value).quantize(Decimal("0.01"))
