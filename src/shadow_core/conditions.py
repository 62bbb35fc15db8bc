"""
Encrypted predicates shared by the Decision Evaluator and Trigger Evaluator.

Each function builds an ``ebool`` ciphertext and never reveals anything.
Public inputs (``now``) may be passed as plain ints; they are trivially
encrypted so the comparison runs on the same footing as secret operands.
"""

from __future__ import annotations

from shadow_core.contracts import Direction
from shadow_core.encrypted import FHE, Ciphertext


def as_time(fhe: FHE, now: int | Ciphertext) -> Ciphertext:
    if isinstance(now, Ciphertext):
        return now
    return fhe.as_euint64(now)


def price_condition(fhe: FHE, trigger: Ciphertext, current: Ciphertext, direction: Ciphertext) -> Ciphertext:
    """Buy fires at current <= trigger, sell at current >= trigger.

    Both sides are computed and the direction picks one with an encrypted
    select, so which branch applied is not observable.
    """
    buy_ok = fhe.lte(current, trigger)
    sell_ok = fhe.gte(current, trigger)
    is_buy = fhe.eq(direction, fhe.as_euint8(Direction.BUY))
    return fhe.select(is_buy, buy_ok, sell_ok)


def expired_condition(fhe: FHE, expiration: Ciphertext, now: int | Ciphertext) -> Ciphertext:
    """Expired once now has reached the expiration timestamp."""
    return fhe.lte(expiration, as_time(fhe, now))


def execution_condition(
    fhe: FHE,
    trigger: Ciphertext,
    current: Ciphertext,
    direction: Ciphertext,
    active: Ciphertext,
    expiration: Ciphertext,
    now: int | Ciphertext,
) -> Ciphertext:
    """active AND NOT expired AND price condition."""
    not_expired = fhe.not_(expired_condition(fhe, expiration, now))
    return fhe.all_of([active, not_expired, price_condition(fhe, trigger, current, direction)])


def min_fill_condition(fhe: FHE, proposed: Ciphertext, min_fill: Ciphertext, remaining: Ciphertext) -> Ciphertext:
    """proposed >= min_fill, or proposed completes the order."""
    return fhe.or_(fhe.gte(proposed, min_fill), fhe.gte(proposed, remaining))


def fully_filled_condition(fhe: FHE, filled: Ciphertext, size: Ciphertext) -> Ciphertext:
    return fhe.gte(filled, size)
