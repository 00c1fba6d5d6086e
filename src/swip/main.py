"""Application entrypoint — start the API server or run one-off commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import uvicorn

from swip.config import Settings, get_settings
from swip.logger import setup_logging


async def _simulate(settings: Settings, args: argparse.Namespace) -> dict:
    """Run one session against a simulated source and return its summary."""
    from swip.sdk import SwipSdkManager
    from swip.sources import SimulatedSource

    config = settings.to_sdk_config().model_copy(
        update={
            "processing_interval_seconds": args.interval,
            "enable_local_storage": False,
        }
    )
    if args.threshold is not None:
        config.emotion = config.emotion.model_copy(
            update={"confidence_threshold": args.threshold}
        )

    sdk = SwipSdkManager(config, source=SimulatedSource(seed=args.seed))
    await sdk.initialize()
    await sdk.start_session(args.app_id, {"mode": "simulate"})
    await asyncio.sleep(args.seconds)
    results = await sdk.stop_session()
    await sdk.shutdown()
    return results.summary()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="swip",
        description="On-device emotion inference and wellness-impact scoring.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── serve ─────────────────────────────────────────────────
    serve_parser = sub.add_parser("serve", help="Start the API server.")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    # ── init-db ───────────────────────────────────────────────
    sub.add_parser("init-db", help="Create database tables.")

    # ── simulate ──────────────────────────────────────────────
    sim_parser = sub.add_parser("simulate", help="Run a session on synthetic data.")
    sim_parser.add_argument("--seconds", type=float, default=5.0)
    sim_parser.add_argument("--interval", type=float, default=0.05)
    sim_parser.add_argument("--seed", type=int, default=None)
    sim_parser.add_argument("--threshold", type=float, default=None)
    sim_parser.add_argument("--app-id", default="simulator")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level if settings.enable_logging else "ERROR")

    if args.command == "serve":
        uvicorn.run(
            "swip.api.server:app",
            host=args.host or settings.api_host,
            port=args.port or settings.api_port,
            reload=args.reload,
        )
    elif args.command == "init-db":
        from swip.storage.database import dispose_engine, init_db

        async def _init() -> None:
            await init_db()
            await dispose_engine()

        asyncio.run(_init())
        print("Database tables created.")
    elif args.command == "simulate":
        summary = asyncio.run(_simulate(settings, args))
        print(json.dumps(summary, indent=2))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
