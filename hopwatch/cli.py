import sys
import threading
from typing import Optional

import click
from rich.console import Console
from rich.live import Live

from . import __version__
from .config import LossPolicy, ScannerConfig
from .exceptions import ResolutionError
from .log import setup_logging
from .output import ConsoleOutput, LiveView
from .scanner import Scanner, resolve_host


console = Console()


def follow_status(scanner: Scanner, view: LiveView):
    """Mirror scanner status transitions into the live view"""
    for status in scanner.statuses():
        view.set_status(status)


@click.command()
@click.argument('target')
@click.option('-i', '--interval', default=1.0, type=float,
              help='Seconds between monitoring cycles (default: 1)')
@click.option('-w', '--timeout', default=3.0, type=float,
              help='Timeout per probe in seconds (default: 3)')
@click.option('-m', '--max-hops', default=30, type=int,
              help='Maximum hops during discovery (default: 30)')
@click.option('--loss-policy', default=LossPolicy.REJECTION.value,
              type=click.Choice([p.value for p in LossPolicy], case_sensitive=False),
              help='rejection: only explicit ICMP rejections count as loss; '
                   'window: share of timeouts in the last samples (default: rejection)')
@click.option('-d', '--duration', type=float,
              help='Stop automatically after this many seconds')
@click.option('-v', '--verbose', count=True,
              help='Increase log verbosity (-v info, -vv probe debug)')
@click.version_option(version=__version__)
def main(target: str, interval: float, timeout: float, max_hops: int,
         loss_policy: str, duration: Optional[float], verbose: int):
    """
    hopwatch - Continuous network path monitor.

    Discover the route to TARGET (IP address or hostname), then probe
    every hop once per interval and show live latency and loss.
    Raw ICMP sockets need root (or CAP_NET_RAW).

    Examples:

        sudo hopwatch 8.8.8.8

        sudo hopwatch example.com --interval 2 --duration 60
    """
    setup_logging(verbose, console)
    output = ConsoleOutput(console)

    try:
        config = ScannerConfig(
            max_hops=max_hops,
            timeout=timeout,
            interval=interval,
            loss_policy=LossPolicy(loss_policy.lower()),
        ).validate()
    except ValueError as e:
        raise click.UsageError(str(e))

    try:
        resolved_ip = resolve_host(target)
    except ResolutionError as e:
        output.print_error(str(e))
        sys.exit(1)

    output.print_header(
        target=target,
        resolved_ip=resolved_ip,
        interval=config.interval,
        timeout=config.timeout,
        max_hops=config.max_hops,
        loss_policy=config.loss_policy.value,
    )

    view = LiveView(target)
    view.resolved = resolved_ip
    scanner = Scanner(target, config, resolver=lambda _: resolved_ip)

    status_thread = threading.Thread(
        target=follow_status, args=(scanner, view), name='hopwatch-status', daemon=True
    )
    status_thread.start()

    timer: Optional[threading.Timer] = None
    if duration:
        timer = threading.Timer(duration, scanner.stop)
        timer.daemon = True
        timer.start()

    scanner.start_in_background()
    try:
        with Live(view, console=console, refresh_per_second=4):
            for update in scanner.updates():
                view.apply(update)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/]")
    finally:
        if timer:
            timer.cancel()
        scanner.stop()
        scanner.join(timeout=config.timeout + 1)
        status_thread.join(timeout=1)

    if scanner.error:
        output.print_error(str(scanner.error))
        sys.exit(1)


if __name__ == '__main__':
    main()
