"""Opening Retest — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
paper and live modes.
"""

import argparse
import asyncio
import logging
import signal

from fastapi import FastAPI

from retest.api.routers import router

app = FastAPI(title="Opening Retest Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("retest")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


def warn_if_live(mode: str) -> bool:
    """Log a prominent warning when running in live mode.

    Returns ``True`` if *mode* is ``"live"``.
    """
    if mode == "live":
        logger.warning(
            "LIVE TRADING MODE — Real money at risk! Starting in 5 seconds..."
        )
        return True
    return False


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse command-line arguments and start the engine."""
    from retest.broker.oanda_client import OandaClient
    from retest.config import load_config
    from retest.engine import TradingEngine

    parser = argparse.ArgumentParser(description="Opening Retest trading bot")
    parser.add_argument(
        "--mode",
        choices=["paper", "live"],
        default="paper",
        help="Trading mode (paper uses the OANDA practice environment)",
    )
    parser.add_argument(
        "--engine-only",
        action="store_true",
        help="Run the trading engine without the API server",
    )
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.mode == "live" and config.oanda_environment != "live":
        raise SystemExit("--mode live requires OANDA_ENVIRONMENT=live")

    broker = OandaClient(config)
    engine = TradingEngine(config=config, broker=broker)
    engine.initialize(mode=args.mode)

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        engine.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.engine_only:
        asyncio.run(_run_engine_only(engine, args.mode))
    else:
        asyncio.run(_run_with_api(engine, args.mode, port=config.health_port))


async def _run_with_api(engine, mode: str, port: int = 8080) -> None:
    """Start the API server and the trading engine concurrently."""
    import uvicorn

    logger.info("Starting Opening Retest in %s mode on %s.", mode, engine.symbol)

    uvi_config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
    server = uvicorn.Server(uvi_config)

    if warn_if_live(mode):
        await asyncio.sleep(5)

    logger.info("Status API available at http://localhost:%d/status", port)
    results = await asyncio.gather(
        server.serve(),
        engine.run(),
        return_exceptions=True,
    )
    logger.info("Opening Retest stopped. Results: %s", results[1:])


async def _run_engine_only(engine, mode: str) -> None:
    """Run the trading engine without starting the API server."""
    logger.info("Starting Opening Retest engine (no API) in %s mode on %s.",
                mode, engine.symbol)
    if warn_if_live(mode):
        await asyncio.sleep(5)
    await engine.run()
    logger.info("Opening Retest engine stopped.")


if __name__ == "__main__":
    _run_cli()
