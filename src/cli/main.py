"""
CLI entry point: shadow simulate | health.

Every command loads config from --config (default config.yaml), prints
human-readable output (revealed amounts only), and logs to the journal.
"""

import logging
import sys

import click
from dotenv import load_dotenv

from config import load_config

load_dotenv()

logger = logging.getLogger("shadow")


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _load_engine_config(cfg):
    from config.engine_config import load_engine_config

    return load_engine_config(cfg.engine_config_path or None, pool=cfg.pool)


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """shadow: confidential limit-order engine over encrypted order parameters."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- shadow simulate ----------


@cli.command()
@click.option("--scenario", "scenario_path", required=True, help="Path to a YAML scenario file.")
@click.pass_context
def simulate(ctx: click.Context, scenario_path: str) -> None:
    """Replay a scenario of orders and price ticks on the local runtime.

    Orders are encrypted client-side, evaluated by the engine, and only the
    revealed fill amounts are printed.
    """
    cfg = load_config(ctx.obj["config_path"])
    from cli.output import format_simulation_summary
    from cli.structured_log import StructuredEventLogger
    from journal import JournalWriter
    from runtime import get_runtime
    from simulation import load_scenario, run_simulation

    scenario = load_scenario(scenario_path)
    engine_cfg = _load_engine_config(cfg)
    runtime = get_runtime(cfg.runtime.backend)

    journal = JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout)
    events = StructuredEventLogger(
        scenario.pool,
        enabled=cfg.alerting.structured_logs,
        webhook_url=cfg.alerting.webhook_url,
    )

    def on_event(event_type: str, payload: dict) -> None:
        if event_type == "order_placed":
            journal.order_placed(
                payload["order_id"], payload["owner"], payload["pool_id"], payload["created_at"],
                expiration_hint=payload.get("expiration_hint"),
            )
            events.order_placed(payload["order_id"], payload["owner"])
        elif event_type == "order_filled":
            journal.fill(payload["order_id"], payload["fill_amount"], payload["fee"], payload["fill_index"], payload["completed"])
            events.order_filled(payload["order_id"], payload["fill_amount"], payload["fee"], payload["completed"])
        elif event_type == "order_cancelled":
            journal.cancel(payload["order_id"], payload["reason"])
            events.order_cancelled(payload["order_id"], payload["reason"])
        elif event_type == "order_expired":
            journal.expire(payload["order_id"])
            events.order_expired(payload["order_id"])
        elif event_type == "order_rejected":
            events.order_rejected(f"validation failed for {payload['owner']}")
        elif event_type == "tick_complete":
            journal.tick(payload["pool_id"], payload["now"], payload["evaluated"], payload["fills"], payload["committed"])
            events.tick_complete(payload["now"], payload["evaluated"], payload["fills"])
        elif event_type == "error":
            events.error(f"order {payload['order_id']} faulted", payload["message"])

    click.echo(f"Running scenario {scenario_path}: {len(scenario.events)} events on pool {scenario.pool} ...")
    result = run_simulation(
        scenario,
        engine_cfg,
        runtime=runtime,
        engine_address=cfg.runtime.engine_address,
        admin=cfg.runtime.admin_address or None,
        event_callback=on_event,
    )
    events.shutdown(result.ticks)
    click.echo(format_simulation_summary(result))
    click.echo(f"Journal: {journal.path}")


# ---------- shadow health ----------


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check system health: config, engine config, runtime backend.

    Exit code 0 = healthy, 1 = unhealthy. Designed for Docker HEALTHCHECK.
    """
    checks: list[tuple[str, bool, str]] = []

    try:
        cfg = load_config(ctx.obj["config_path"])
        checks.append(("config", True, f"loaded (pool={cfg.pool})"))
    except Exception as e:
        checks.append(("config", False, str(e)))
        _print_health(checks)
        raise SystemExit(1)

    try:
        engine_cfg = _load_engine_config(cfg)
        checks.append((
            "engine_config",
            True,
            f"validated (pool={cfg.pool}, fee={engine_cfg.fees.execution_fee_bps}bps, "
            f"bucket={engine_cfg.expiration.bucket_seconds}s)",
        ))
    except Exception as e:
        checks.append(("engine_config", False, str(e)))

    try:
        from runtime import get_runtime
        get_runtime(cfg.runtime.backend)
        checks.append(("runtime", True, f"backend={cfg.runtime.backend}"))
    except Exception as e:
        checks.append(("runtime", False, str(e)))

    if cfg.runtime.admin_address:
        checks.append(("admin", True, cfg.runtime.admin_address))
    else:
        checks.append(("admin", True, "not set (pause/emergency cancel disabled)"))

    _print_health(checks)
    healthy = all(ok for _, ok, _ in checks)
    raise SystemExit(0 if healthy else 1)


def _print_health(checks: list[tuple[str, bool, str]]) -> None:
    for name, ok, detail in checks:
        status = "OK" if ok else "FAIL"
        click.echo(f"  [{status}] {name}: {detail}")
    healthy = all(ok for _, ok, _ in checks)
    click.echo(f"\nHealth: {'HEALTHY' if healthy else 'UNHEALTHY'}")


if __name__ == "__main__":
    cli()
