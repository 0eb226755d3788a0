"""CLI entrypoint for the Service awaiter."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from kubernetes.client.rest import ApiException
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from service_await import __version__
from service_await.config import Settings, get_settings
from service_await.observation import ServiceCollector
from service_await.readiness import (
    AwaitConfig,
    AwaitError,
    CancellationSignal,
    LoggingDiagnostics,
    await_service_init,
    read_service_init,
)
from service_await.readiness.state import DIAGNOSTICS_LOGGER


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Wait until a Kubernetes Service and its Endpoints are ready.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("name", help="Name of the Service to wait for")
    parser.add_argument(
        "--namespace",
        "-n",
        default=None,
        help="Namespace of the Service (default: from env or 'default')",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Check readiness once against the current state instead of waiting",
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubernetes context to use",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def build_config(
    name: str,
    collector: ServiceCollector,
    settings: Settings,
    cancellation: CancellationSignal | None = None,
) -> AwaitConfig:
    """Use the live Service as the declared inputs and wire the collector in."""
    inputs = collector.get_service(name)
    return AwaitConfig(
        inputs=inputs,
        client=collector,
        diagnostics=LoggingDiagnostics(),
        warnings=collector.recent_warnings,
        warning_limit=settings.warning_event_limit,
        cancellation=cancellation or CancellationSignal(),
    )


def run(config: AwaitConfig, check: bool) -> None:
    """Run one await; SIGINT cancels a live wait."""
    if check:
        read_service_init(config)
        return

    def on_sigint(signum, frame) -> None:
        # cancel() takes locks the interrupted main thread may be holding.
        threading.Thread(target=config.cancellation.cancel, name="sigint-cancel", daemon=True).start()

    previous = signal.signal(signal.SIGINT, on_sigint)
    try:
        await_service_init(config)
    finally:
        signal.signal(signal.SIGINT, previous)


def print_ready(name: str, console: Console | None = None) -> None:
    c = console or Console()
    c.print(Panel(f"Service '{name}' is ready.", title="Service Await", border_style="green"))


def print_not_ready(error: AwaitError, console: Console | None = None) -> None:
    c = console or Console()
    c.print(Panel(str(error), title="Service Await", border_style="red"))


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for service-await CLI."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logger = logging.getLogger("service_await")
    if not args.verbose:
        logger.setLevel(logging.WARNING)
        logging.getLogger(DIAGNOSTICS_LOGGER).setLevel(logging.INFO)

    console = Console()
    try:
        settings = get_settings()
        if args.kubeconfig:
            settings.kubeconfig = args.kubeconfig
        collector = ServiceCollector(
            namespace=args.namespace or settings.namespace,
            kubeconfig=str(settings.kubeconfig) if settings.kubeconfig else None,
            context=args.context or settings.context,
        )
        config = build_config(args.name, collector, settings)
        run(config, check=args.check)
    except AwaitError as e:
        print_not_ready(e, console)
        return 1
    except ApiException as e:
        if e.status == 404:
            print(f"Error: Service '{args.name}' not found", file=sys.stderr)
        else:
            logging.exception("Kubernetes API request failed")
            print(f"Error: {e.reason}", file=sys.stderr)
        return 2
    except Exception as e:
        logging.exception("Await failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2
    print_ready(args.name, console)
    return 0


if __name__ == "__main__":
    sys.exit(main())
