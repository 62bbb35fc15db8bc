"""
Human-readable simulation output for the terminal.

Only public or already-revealed values are printed: order refs and ids,
lifecycle status, revealed fill amounts and fees. Every CLI command uses
these formatters. Journal receives the same data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shadow_core.contracts import TickFill
    from simulation.runner import SimulationResult


def _fmt_amount(amount: int) -> str:
    if amount >= 1_000_000:
        return f"{amount / 1_000_000:.2f}M"
    if amount >= 10_000:
        return f"{amount / 1_000:.0f}K"
    return str(amount)


def format_fill(now: int, ref: str, fill: TickFill) -> str:
    """One revealed fill line."""
    tag = "" if fill.committed else "  [preview]"
    state = "open" if fill.still_active else "done"
    return f"  t={now}  {ref:<10} filled {_fmt_amount(fill.fill_amount):>8}  fee {fill.fee:>6}  ({state}){tag}"


def format_order_table(result: SimulationResult) -> str:
    """Final order table: status and fill progress per scenario order."""
    if not result.orders:
        return "  No orders placed."
    lines = [f"  {'ref':<10} {'order id':<20} {'owner':<12} {'status':<17} {'filled':>14} {'fills':>5}"]
    for o in result.orders:
        progress = f"{_fmt_amount(o.filled)}/{_fmt_amount(o.size)}"
        lines.append(
            f"  {o.ref:<10} {o.order_id:<20} {o.owner:<12} {o.status.value:<17} {progress:>14} {o.fills:>5}"
        )
    return "\n".join(lines)


def format_simulation_summary(result: SimulationResult) -> str:
    """Full simulation report: fills in time order, final orders, problems."""
    lines = [f"=== Simulation: pool {result.pool} ==="]
    lines.append(f"Ticks        : {result.ticks}")
    lines.append(f"Fills        : {sum(1 for _, _, f in result.fills if f.committed)} committed, "
                 f"{sum(1 for _, _, f in result.fills if not f.committed)} preview")
    lines.append(f"Total filled : {_fmt_amount(result.total_filled)}")
    lines.append(f"Total fees   : {result.total_fees}")

    if result.fills:
        lines.append("")
        for now, ref, fill in result.fills:
            lines.append(format_fill(now, ref, fill))

    lines.append("")
    lines.append(format_order_table(result))

    if result.rejected:
        lines.append("")
        lines.append(f"  Rejected at placement: {', '.join(result.rejected)}")
    if result.errors:
        lines.append("")
        for err in result.errors:
            lines.append(f"  ERROR {err}")

    lines.append("===")
    return "\n".join(lines)
