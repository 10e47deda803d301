"""Command-line entrypoint for the claimant."""
from __future__ import annotations

import argparse
import asyncio
import sys

from rich.console import Console
from rich.traceback import install as install_rich_traceback

from vpnDns.claimant.client import ClaimantError, run_forever, run_once
from vpnDns.claims.signing import KeyMaterialError, SigningError
from vpnDns.config import ClaimantConfig
from vpnDns.logging_config import get_logger

console = Console()
logger = get_logger("claimant")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sign and submit this host's public IP.")
    parser.add_argument("--config", help="YAML config file (default: $VPNDNS_CONFIG)")
    parser.add_argument("--once", action="store_true", help="Submit a single claim and exit")
    parser.add_argument("--interval", type=int, help="Seconds between claims (overrides config)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    install_rich_traceback()
    args = parse_args(argv)
    config = ClaimantConfig.from_env(args.config)
    if args.interval is not None:
        config = config.model_copy(update={"interval_seconds": args.interval})

    try:
        if args.once:
            message = asyncio.run(run_once(config))
            colour = "green" if message == "success" else "red"
            console.print(f"[{colour}]Reconciler answered: {message}[/{colour}]")
            return 0 if message == "success" else 1
        asyncio.run(run_forever(config))
    except (ClaimantError, KeyMaterialError, SigningError) as exc:
        console.print(f"[red]Claim failed:[/red] {exc}")
        return 1
    except KeyboardInterrupt:
        logger.info("Claimant stopped", extra={"state": "stopped"})
    return 0


if __name__ == "__main__":
    sys.exit(main())
