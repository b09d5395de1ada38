"""
CLI entry point: perp ingest | backtest | scan | health.

Every command loads config from --config (default config.yaml),
prints human-readable output with the oracle's rationale, and logs to journal.
"""

import logging
import sys
import time

import click
from dotenv import load_dotenv

from config import load_config

load_dotenv()

logger = logging.getLogger("perp")


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _build_oracle(cfg, kind: str | None):
    from oracle import HttpOracle
    from replay_core.oracle import HoldOracle, IndicatorOracle

    kind = (kind or cfg.oracle.kind).lower()
    if kind == "indicator":
        return IndicatorOracle()
    if kind == "hold":
        return HoldOracle()
    if kind == "http":
        return HttpOracle(cfg.oracle.url, api_key=cfg.oracle.api_key, timeout=cfg.oracle.timeout_seconds)
    raise click.BadParameter(f"unknown oracle kind {kind!r} (indicator, hold, http)", param_hint="--oracle")


def _load_sim(cfg):
    from config.sim_config import load_sim_config

    return load_sim_config(cfg.simulation.config_path or None, symbol=cfg.symbol)


def _parse_date(value: str | None) -> int | None:
    if not value:
        return None
    from data.csv_loader import parse_timestamp

    return parse_timestamp(value)


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """perp-replay: replay perpetual-futures bars through a decision oracle and simulate trades."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- perp ingest ----------


@cli.command()
@click.option("--csv", "csv_path", required=True, type=click.Path(dir_okay=False), help="CSV with timestamp,open,high,low,close[,volume].")
@click.option("--interval", "interval_override", default=None, help="Interval label to store under (default: config interval).")
@click.pass_context
def ingest(ctx: click.Context, csv_path: str, interval_override: str | None) -> None:
    """Import OHLCV bars from CSV into the local bar store.

    Use --interval with the auxiliary interval (e.g. 15m) to import context bars.
    """
    cfg = load_config(ctx.obj["config_path"])
    from data.bar_store import BarStore
    from data.csv_loader import load_csv_bars

    interval = interval_override or cfg.interval
    try:
        bars = load_csv_bars(csv_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Import failed: {e}")
        raise SystemExit(1)

    if not bars:
        click.echo("No bars in file.")
        return

    store = BarStore(cfg.data.bar_store_path)
    store.write_bars(cfg.symbol, interval, bars)
    click.echo(f"Stored {len(bars)} {interval} bars for {cfg.symbol} in {cfg.data.bar_store_path}")
    click.echo(f"  Range: {bars[0].time.isoformat()} -> {bars[-1].time.isoformat()}")
    click.echo(f"  Total {interval} bars in store: {store.count_bars(cfg.symbol, interval)}")


# ---------- perp backtest ----------


@cli.command()
@click.option("--start", "start_str", default=None, help="Start date filter (ISO).")
@click.option("--end", "end_str", default=None, help="End date filter (ISO).")
@click.option("--oracle", "oracle_kind", default=None, help="Oracle override: indicator | hold | http.")
@click.option("--no-wait", is_flag=True, default=False, help="Skip the wall-clock spacing between oracle calls.")
@click.pass_context
def backtest(ctx: click.Context, start_str: str | None, end_str: str | None, oracle_kind: str | None, no_wait: bool) -> None:
    """Replay stored bars through the oracle and print the run summary."""
    cfg = load_config(ctx.obj["config_path"])
    from backtest import run_replay
    from cli.output import format_replay_summary
    from cli.structured_log import StructuredEventLogger
    from config.sim_config import SimConfigError
    from data import BarSeries, BarStore, parse_interval_seconds
    from journal import JournalWriter
    from replay_core.errors import InsufficientDataError

    try:
        sim = _load_sim(cfg)
    except SimConfigError as e:
        click.echo(f"Invalid simulation config: {e}")
        raise SystemExit(1)
    oracle = _build_oracle(cfg, oracle_kind)

    store = BarStore(cfg.data.bar_store_path)
    bars = store.get_bars(cfg.symbol, cfg.interval, since=_parse_date(start_str), until=_parse_date(end_str))
    if not bars:
        click.echo("No bars in store. Run 'perp ingest' first.")
        return

    aux_series = None
    if cfg.aux_interval:
        aux_bars = store.get_bars(cfg.symbol, cfg.aux_interval)
        if aux_bars:
            aux_series = BarSeries(aux_bars)
            click.echo(f"Loaded {len(aux_bars)} {cfg.aux_interval} bars as oracle context.")
        else:
            click.echo(f"No {cfg.aux_interval} bars found. Run 'perp ingest --interval {cfg.aux_interval}' for context bars.")

    journal = JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout)
    events = StructuredEventLogger(
        cfg.symbol,
        enabled=cfg.alerting.structured_logs,
        webhook_url=cfg.alerting.webhook_url,
    )

    def on_event(event_type: str, payload: dict) -> None:
        if event_type == "oracle_call":
            op = payload["opinion"]
            journal.oracle_call(payload["call"], op.direction.value, op.confidence, op.metadata, bar_index=payload["bar_index"])
            events.oracle_call(payload["call"], op.direction.value, op.confidence)
        elif event_type == "entry":
            p = payload["position"]
            journal.entry(cfg.symbol, p.direction.value, p.entry_price, p.size, p.stop_loss_price, p.take_profit_price, p.rationale)
            events.trade_opened(p.direction.value, p.entry_price, p.size, p.stop_loss_price, p.take_profit_price)
        elif event_type == "exit":
            p = payload["position"]
            journal.trade(cfg.symbol, p.direction.value, p.entry_price, p.exit_price, p.size, p.realized_pnl, p.exit_reason.value, p.rationale)
            events.trade_closed(p.direction.value, p.exit_price, p.realized_pnl, p.exit_reason.value)
        elif event_type == "skip":
            journal.skip(payload["reason"], bar_index=payload["bar_index"])
        elif event_type == "budget_exhausted":
            journal.budget_exhausted(payload["calls"], bar_index=payload["bar_index"])
            events.budget_exhausted(payload["calls"])

    series = BarSeries(bars)
    click.echo(f"Running replay: {cfg.symbol} {cfg.interval}, {len(bars)} bars ...")
    events.run_start(len(bars), sim.replay.warmup_period, sim.replay.max_api_calls)
    try:
        result = run_replay(
            series,
            oracle,
            sim,
            aux_series=aux_series,
            interval_seconds=parse_interval_seconds(cfg.interval),
            sleep=(lambda _s: None) if no_wait else time.sleep,
            journal_callback=on_event,
        )
    except InsufficientDataError as e:
        events.error("insufficient data", str(e))
        click.echo(f"Cannot run replay: {e}")
        raise SystemExit(1)

    events.run_complete(result.stop_reason.value, result.summary.total_trades, result.final_balance)
    click.echo(format_replay_summary(result, cfg.symbol, cfg.interval))


# ---------- perp scan ----------


@cli.command()
@click.option("--oracle", "oracle_kind", default=None, help="Oracle override: indicator | hold | http.")
@click.pass_context
def scan(ctx: click.Context, oracle_kind: str | None) -> None:
    """One-shot decision on the latest bar: opinion, trade parameters and the order batch it implies."""
    cfg = load_config(ctx.obj["config_path"])
    from backtest import plan_trade
    from cli.output import format_scan
    from data.bar_store import BarStore
    from execution import build_bracket, to_batch_payload
    from replay_core.indicators import indicator_snapshot
    from replay_core.oracle import MarketWindow, consult
    from replay_core.sizing import build_sizer

    sim = _load_sim(cfg)
    oracle = _build_oracle(cfg, oracle_kind)

    store = BarStore(cfg.data.bar_store_path)
    bars = store.get_last_bars(cfg.symbol, cfg.interval, sim.replay.data_window_size)
    if len(bars) < 2:
        click.echo("Not enough bars in store. Run 'perp ingest' first.")
        return

    window = tuple(bars)
    current = window[-1]
    aux = ()
    if cfg.aux_interval:
        aux = tuple(store.get_bars(
            cfg.symbol, cfg.aux_interval,
            since=current.timestamp - sim.replay.aux_lookback_seconds, until=current.timestamp,
        ))
    indicators = indicator_snapshot(window)
    opinion = consult(oracle, MarketWindow(bars=window, aux_bars=aux, indicators=indicators))

    params, reason, payload = None, "", None
    if not opinion.is_actionable:
        reason = "oracle says HOLD"
    elif opinion.confidence < sim.decision.minimum_confidence_threshold:
        reason = f"confidence {opinion.confidence:.1f} below threshold {sim.decision.minimum_confidence_threshold:.1f}"
    else:
        params, reason = plan_trade(opinion, window, sim.account.initial_balance, sim, build_sizer(sim.sizing))
        if params is not None:
            payload = to_batch_payload(build_bracket(cfg.symbol, opinion.direction, params))

    click.echo(format_scan(cfg.symbol, cfg.interval, current, indicators, opinion, params, reason, payload))


# ---------- perp health ----------


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check system health: config, simulation config, DB access, bar data.

    Exit code 0 = healthy, 1 = unhealthy.
    """
    checks: list[tuple[str, bool, str]] = []

    try:
        cfg = load_config(ctx.obj["config_path"])
        checks.append(("config", True, f"loaded ({cfg.symbol} {cfg.interval}, oracle={cfg.oracle.kind})"))
    except Exception as e:
        checks.append(("config", False, str(e)))
        _print_health(checks)
        raise SystemExit(1)

    try:
        sim = _load_sim(cfg)
        checks.append(("sim_config", True, f"validated (v{sim.version}, {sim.sizing.policy} sizing)"))
    except Exception as e:
        checks.append(("sim_config", False, str(e)))

    try:
        from data.bar_store import BarStore
        store = BarStore(cfg.data.bar_store_path)
        bar_count = store.count_bars(cfg.symbol, cfg.interval)
        if bar_count > 0:
            checks.append(("bars", True, f"{bar_count} {cfg.interval} bars"))
        else:
            checks.append(("bars", False, f"no {cfg.interval} bars for {cfg.symbol}"))
    except Exception as e:
        checks.append(("bars", False, str(e)))

    if cfg.oracle.kind == "http" and not cfg.oracle.url:
        checks.append(("oracle", False, "oracle.kind is http but oracle.url is empty"))

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
