"""
Weighted-average cost accounting for holdings.

Pure arithmetic; the ledger service decides when each rule applies.
"""
from typing import Tuple


def weighted_average_cost(
    old_quantity: float,
    old_average_cost: float,
    incoming_quantity: float,
    incoming_price: float
) -> float:
    """
    Quantity-weighted mean of the existing position and an incoming lot.

    Raises:
        ValueError: If the combined quantity is not positive
    """
    new_quantity = old_quantity + incoming_quantity
    if new_quantity <= 0:
        raise ValueError("combined quantity must be > 0 to compute an average cost")
    return (old_quantity * old_average_cost + incoming_quantity * incoming_price) / new_quantity


def apply_buy(
    quantity: float,
    average_cost: float,
    buy_quantity: float,
    buy_price: float
) -> Tuple[float, float]:
    """Return (quantity, average_cost) after buying into a position."""
    new_average_cost = weighted_average_cost(quantity, average_cost, buy_quantity, buy_price)
    return quantity + buy_quantity, new_average_cost


def apply_sell(
    quantity: float,
    average_cost: float,
    sell_quantity: float
) -> Tuple[float, float]:
    """
    Return (quantity, average_cost) after selling out of a position.

    Selling never changes the average cost.

    Raises:
        ValueError: If more is sold than is held
    """
    if sell_quantity > quantity:
        raise ValueError(f"cannot sell {sell_quantity}, only {quantity} held")
    return quantity - sell_quantity, average_cost
