"""
Launcher for one-shot workers started by a scheduler.

A worker exposes ``start()`` (does the job) and ``stop()`` (releases its
connections). The launcher sets up telemetry and logging, runs ``start()``
once, always calls ``stop()``, and turns the outcome into a process exit code
so the scheduler can see failed runs.
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Callable, Optional

from common.core.otel_axiom_exporter import _initialize_telemetry, get_logger

EXIT_OK = 0
EXIT_FAILED = 1
# Conventional code for a run interrupted by a signal
EXIT_INTERRUPTED = 130


class WorkerLauncher:
    """Runs a worker to completion and exits with its status."""

    def __init__(self):
        self.logger = get_logger(__name__)
        self.worker_instance: Optional[Any] = None

    def _setup_logging(self, log_level: Optional[str]):
        logging.basicConfig(
            level=getattr(logging, log_level or "INFO"),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )

    def _install_signal_handlers(self, task: asyncio.Task) -> None:
        """SIGINT/SIGTERM cancel the running job; stop() still runs."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._on_signal, signum, task)
            except NotImplementedError:
                # Event loops without signal support (Windows)
                pass

    def _on_signal(self, signum: int, task: asyncio.Task) -> None:
        self.logger.info(f"Received signal {signum}, cancelling the running job")
        if self.worker_instance:
            self.worker_instance.running = False
        task.cancel()

    async def _run_once(self, worker_instance: Any, worker_name: str) -> int:
        self.worker_instance = worker_instance
        job = asyncio.create_task(worker_instance.start(), name=worker_name)
        self._install_signal_handlers(job)

        exit_code = EXIT_OK
        try:
            self.logger.info(f"Starting {worker_name}...")
            await job
            self.logger.info(f"{worker_name} finished")
        except asyncio.CancelledError:
            self.logger.warning(f"{worker_name} was interrupted")
            exit_code = EXIT_INTERRUPTED
        except Exception as e:
            self.logger.error(f"{worker_name} failed: {e}", exc_info=True)
            exit_code = EXIT_FAILED
        finally:
            try:
                await worker_instance.stop()
            except Exception as cleanup_error:
                self.logger.error(f"Error during cleanup: {cleanup_error}")
        return exit_code

    def run(
        self,
        worker_factory: Callable,
        worker_name: str,
        setup_logging: bool = True,
        factory_args: tuple = (),
        factory_kwargs: Optional[dict] = None,
        log_level: Optional[str] = None,
    ):
        """
        Build the worker, run it once and exit the process.

        Args:
            worker_factory: Callable that creates the worker instance
            worker_name: Human readable name for logging
            setup_logging: Whether to configure root logging
            factory_args: Positional args for the factory
            factory_kwargs: Keyword args for the factory
            log_level: Root log level name (DEBUG, INFO, ...)
        """
        _initialize_telemetry()
        if setup_logging:
            self._setup_logging(log_level)

        worker_instance = worker_factory(*factory_args, **(factory_kwargs or {}))
        sys.exit(asyncio.run(self._run_once(worker_instance, worker_name)))

    def run_with_cli(
        self,
        worker_factory: Callable,
        worker_name: str,
        setup_logging: bool = True,
        cli_setup_func: Optional[Callable] = None,
    ):
        """
        Same as ``run``, with factory arguments taken from the command line.

        ``cli_setup_func`` parses argv and returns ``(args, factory_args,
        factory_kwargs)``; ``args.log_level`` is honoured when present.
        """
        args, factory_args, factory_kwargs = (
            cli_setup_func() if cli_setup_func else (None, (), {})
        )
        self.run(
            worker_factory=worker_factory,
            worker_name=worker_name,
            setup_logging=setup_logging,
            factory_args=factory_args,
            factory_kwargs=factory_kwargs,
            log_level=getattr(args, "log_level", None),
        )
