"""CLI entry point for tickcast.

Commands:
  - replay: Run an engine over ticks from a CSV file and report accuracy
  - watch: Poll a live symbol via yfinance and print forecasts as they resolve
  - serve: Run the HTTP/WebSocket API
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from tickcast.config import load_config


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _print_summary(engine, report) -> None:
    stats = engine.get_stats()
    state = engine.get_state()
    print(f"\n{engine.symbol}: {engine.get_tick_count()} ticks buffered")
    print(f"  Predictions resolved: {stats.total_predictions}")
    print(f"  Accuracy: {stats.accuracy:.1f}% (recent {stats.recent_accuracy:.1f}%)")
    print(f"  Streak: {stats.current_streak} (best {stats.best_streak})")
    print(f"  Confidence multiplier: {state.confidence_multiplier:.3f}")
    print(f"  Adaptive horizon: {state.adaptive_horizon_ms}ms")
    print(f"  Momentum bias: {state.momentum_bias:+.3f}")
    print(f"  Composite accuracy: {state.multi_level.composite_accuracy:.1f}")
    for direction, ds in stats.per_direction.items():
        print(f"    {direction.value:5s} {ds.correct}/{ds.total} ({ds.accuracy:.1f}%)")
    print(f"  ECE={report.ece:.3f} Brier={report.brier:.3f}")
    for rec in report.recommendations:
        print(f"    -> {rec}")


def cmd_replay(args: argparse.Namespace) -> None:
    """Replay a CSV of ticks through a fresh engine."""
    from tickcast.engine.core import TickPredictionEngine
    from tickcast.feeds.replay import ReplayTickFeed
    from tickcast.learning.calibration import CalibrationEngine

    config = load_config()
    feed = ReplayTickFeed(args.csv, symbol=args.symbol)
    engine = TickPredictionEngine(config.engine, symbol=feed.symbol)
    logging.info("Replaying %d ticks from %s", len(feed), args.csv)

    made = 0
    for i, tick in enumerate(feed, 1):
        engine.process_tick(tick)
        if args.predict_every > 0 and i % args.predict_every == 0:
            if engine.generate_prediction(args.horizon_ms) is not None:
                made += 1

    logging.info(
        "Made %d predictions, %d still pending", made, len(engine.get_pending_predictions()),
    )

    report = CalibrationEngine().generate_report(
        engine.get_recent_predictions(config.engine.resolved_history),
        symbol=engine.symbol,
        multi_level=engine.get_state().multi_level,
    )

    if args.json:
        print(json.dumps({
            "stats": engine.get_stats().to_dict(),
            "state": engine.get_state().to_dict(),
            "calibration": report.to_dict(),
        }, indent=2))
    else:
        _print_summary(engine, report)


def cmd_watch(args: argparse.Namespace) -> None:
    """Stream live ticks for a symbol and log resolutions."""
    from tickcast.engine.registry import EngineRegistry
    from tickcast.feeds.stream import TickStream
    from tickcast.feeds.yfinance_feed import YFinanceTickFeed
    from tickcast.learning.calibration import CalibrationEngine

    config = load_config()
    registry = EngineRegistry(config.engine)
    stream = TickStream(
        YFinanceTickFeed(args.symbol),
        registry,
        poll_interval=args.interval,
        predict_every=args.predict_every,
        max_pending=config.max_pending,
    )
    stream.add_listener(
        lambda tick: logging.debug("%s %.4f vol=%.0f", stream.symbol, tick.price, tick.volume)
    )

    async def _run() -> None:
        task = stream.start()
        try:
            if args.duration > 0:
                await asyncio.sleep(args.duration)
            else:
                await task
        finally:
            await stream.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        print("Interrupted.")

    with registry.locked(stream.symbol) as engine:
        report = CalibrationEngine().generate_report(
            engine.get_recent_predictions(config.engine.resolved_history),
            symbol=engine.symbol,
            multi_level=engine.get_state().multi_level,
        )
        _print_summary(engine, report)


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the API server."""
    import uvicorn

    from tickcast.api.app import create_app

    uvicorn.run(create_app(use_lifespan=True), host=args.host, port=args.port)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="tickcast",
        description="Adaptive short-horizon tick prediction engine",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subs = parser.add_subparsers(dest="command", required=True)

    # replay
    p_replay = subs.add_parser("replay", help="Replay ticks from a CSV file")
    p_replay.add_argument("csv", help="CSV with price,timestamp[,volume,bid,ask] columns")
    p_replay.add_argument("--symbol", default="REPLAY", help="Symbol label for the engine")
    p_replay.add_argument("--predict-every", type=int, default=5,
                          help="Generate a prediction every N ticks (0 disables)")
    p_replay.add_argument("--horizon-ms", type=int, default=None,
                          help="Fixed horizon (default: adaptive)")
    p_replay.add_argument("--json", action="store_true", help="Print JSON instead of text")

    # watch
    p_watch = subs.add_parser("watch", help="Poll a live symbol via yfinance")
    p_watch.add_argument("symbol", help="Ticker symbol, e.g. SPY")
    p_watch.add_argument("--interval", type=float, default=1.5, help="Poll interval in seconds")
    p_watch.add_argument("--predict-every", type=int, default=5,
                         help="Generate a prediction every N ticks (0 disables)")
    p_watch.add_argument("--duration", type=float, default=0,
                         help="Stop after N seconds (0 runs until interrupted)")

    # serve
    p_serve = subs.add_parser("serve", help="Run the HTTP/WebSocket API")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    commands = {
        "replay": cmd_replay,
        "watch": cmd_watch,
        "serve": cmd_serve,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
