"""
Scenario files: a YAML timeline of order placements, cancels and price ticks.

    pool: ETH-USDC
    start: 1700000000          # unix seconds; every ``at`` is an offset from here
    counterparty: mm-desk
    events:
      - {at: 0,   type: place, ref: a1, owner: alice, direction: buy,
         trigger_price: 2000, size: 10, min_fill_size: 2, expires_in: 7200}
      - {at: 60,  type: tick, price: 1995, liquidity: 4}
      - {at: 120, type: cancel, ref: a1, caller: alice}

Plaintext values here are client-side inputs; the runner encrypts them
before they reach the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from shadow_core.contracts import Direction, OrderKind

EVENT_TYPES = ("place", "cancel", "emergency_cancel", "tick", "pause", "unpause")


@dataclass(frozen=True)
class PlaceEvent:
    at: int
    ref: str
    owner: str
    direction: Direction
    trigger_price: int
    size: int
    min_fill_size: int
    expires_in: int
    partial_fill_allowed: bool = True
    order_kind: OrderKind = OrderKind.LIMIT
    auto_renew: bool = False
    renewal_period: int = 0


@dataclass(frozen=True)
class CancelEvent:
    at: int
    ref: str
    caller: str
    emergency: bool = False


@dataclass(frozen=True)
class TickEvent:
    at: int
    price: int
    liquidity: int
    max_slippage_bps: int | None = None
    pre_settlement: bool = False


@dataclass(frozen=True)
class AdminEvent:
    at: int
    action: str  # pause | unpause
    caller: str


ScenarioEvent = PlaceEvent | CancelEvent | TickEvent | AdminEvent


@dataclass(frozen=True)
class Scenario:
    pool: str
    start: int
    counterparty: str
    events: list[ScenarioEvent] = field(default_factory=list)


def _require(raw: dict, key: str, idx: int):
    if key not in raw:
        raise ValueError(f"Scenario event #{idx} ({raw.get('type')}) is missing '{key}'")
    return raw[key]


def _parse_direction(value: str, idx: int) -> Direction:
    try:
        return Direction[str(value).upper()]
    except KeyError:
        raise ValueError(f"Scenario event #{idx}: unknown direction '{value}'") from None


def _parse_kind(value: str, idx: int) -> OrderKind:
    try:
        return OrderKind[str(value).upper()]
    except KeyError:
        raise ValueError(f"Scenario event #{idx}: unknown order kind '{value}'") from None


def _parse_event(raw: dict, idx: int) -> ScenarioEvent:
    if not isinstance(raw, dict):
        raise ValueError(f"Scenario event #{idx} must be a mapping")
    etype = raw.get("type")
    if etype not in EVENT_TYPES:
        raise ValueError(f"Scenario event #{idx}: unknown type '{etype}'. Supported: {list(EVENT_TYPES)}")
    at = int(raw.get("at", 0))
    if at < 0:
        raise ValueError(f"Scenario event #{idx}: 'at' must be >= 0")

    if etype == "place":
        return PlaceEvent(
            at=at,
            ref=str(_require(raw, "ref", idx)),
            owner=str(_require(raw, "owner", idx)),
            direction=_parse_direction(_require(raw, "direction", idx), idx),
            trigger_price=int(_require(raw, "trigger_price", idx)),
            size=int(_require(raw, "size", idx)),
            min_fill_size=int(raw.get("min_fill_size", 0)),
            expires_in=int(_require(raw, "expires_in", idx)),
            partial_fill_allowed=bool(raw.get("partial_fill_allowed", True)),
            order_kind=_parse_kind(raw.get("kind", "limit"), idx),
            auto_renew=bool(raw.get("auto_renew", False)),
            renewal_period=int(raw.get("renewal_period", 0)),
        )
    if etype in ("cancel", "emergency_cancel"):
        return CancelEvent(
            at=at,
            ref=str(_require(raw, "ref", idx)),
            caller=str(_require(raw, "caller", idx)),
            emergency=etype == "emergency_cancel",
        )
    if etype == "tick":
        bps = raw.get("max_slippage_bps")
        return TickEvent(
            at=at,
            price=int(_require(raw, "price", idx)),
            liquidity=int(_require(raw, "liquidity", idx)),
            max_slippage_bps=None if bps is None else int(bps),
            pre_settlement=bool(raw.get("pre_settlement", False)),
        )
    return AdminEvent(at=at, action=etype, caller=str(_require(raw, "caller", idx)))


def load_scenario(path: str | Path) -> Scenario:
    """Load a scenario file. Events are ordered by ``at`` (file order breaks ties)."""
    scenario_path = Path(path)
    if not scenario_path.exists():
        raise FileNotFoundError(f"Scenario file not found: {scenario_path}")

    with open(scenario_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Scenario file must be a YAML mapping, got {type(raw).__name__}")

    raw_events = raw.get("events") or []
    if not isinstance(raw_events, list):
        raise ValueError("Scenario 'events' must be a list")
    events = [_parse_event(e, i) for i, e in enumerate(raw_events)]
    events.sort(key=lambda e: e.at)

    refs = [e.ref for e in events if isinstance(e, PlaceEvent)]
    if len(refs) != len(set(refs)):
        raise ValueError("Scenario order refs must be unique")

    return Scenario(
        pool=str(raw.get("pool", "ETH-USDC")),
        start=int(raw.get("start", 0)),
        counterparty=str(raw.get("counterparty", "counterparty")),
        events=events,
    )
