"""Entry point for running a speed measurement."""

from __future__ import annotations

import argparse
import json

from speedprobe import bootstrap


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Measure latency, download and upload speed")
    parser.add_argument("--config", help="Path to config.yaml", default="config.yaml")
    parser.add_argument("--servers", type=int, default=None, help="Override number of best servers to use")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument(
        "--every", type=int, default=None, metavar="MINUTES", help="Repeat the measurement on an interval"
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    context = bootstrap(args.config)
    try:
        if args.every:
            context.scheduler.start(args.every)
            return

        result = context.measurements.run_speedtest(best_servers=args.servers)
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        else:
            print(f"Server:   {result.server or 'none available'}")
            if result.latency_ms is not None:
                print(f"Latency:  {result.latency_ms:.1f} ms")
            print(f"Download: {result.download:.2f}")
            print(f"Upload:   {result.upload:.2f}")
    finally:
        context.close()


if __name__ == "__main__":
    main()
