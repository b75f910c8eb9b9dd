import argparse
from datetime import datetime

from common.workers.launcher import WorkerLauncher
from packages.billing.workers.billing_sweep_worker import BillingSweepWorker


def setup_cli():
    """Setup CLI arguments and return parsed args with factory parameters."""
    parser = argparse.ArgumentParser(description="Nightly Billing Sweep")
    parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="Run the sweep as if it were this UTC time (ISO 8601, default: now)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    factory_args = ()
    factory_kwargs = {"as_of": args.as_of}

    return args, factory_args, factory_kwargs


def main():
    """Main entry point with command-line argument support."""

    WorkerLauncher().run_with_cli(
        worker_factory=BillingSweepWorker,
        worker_name="Billing Sweep Worker",
        cli_setup_func=setup_cli,
    )


if __name__ == "__main__":
    main()
