"""Solar Switch entry point and lifecycle orchestrator.

Startup sequence:
  config → logging → meter client → relays → gateway recovery →
  notifier → decision engine → control loop
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from pathlib import Path

from solar_switch import __version__
from solar_switch.config.manager import ConfigManager
from solar_switch.config.schema import AppConfig
from solar_switch.control.engine import DecisionEngine
from solar_switch.control.loop import ControlLoop
from solar_switch.errors import ActuationError, StartupError
from solar_switch.logging.structured import setup_logging
from solar_switch.meter.eagle import EagleMeterClient
from solar_switch.notify.mailer import SMTPMailer
from solar_switch.notify.notifier import Notifier
from solar_switch.resilience.gateway import GatewayRecovery
from solar_switch.resilience.health_check import HealthChecker
from solar_switch.switch.http_relay import HttpRelay

logger = logging.getLogger(__name__)


class Application:
    """Main application lifecycle manager.

    Wires all components together and manages startup/shutdown ordering.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self._running = False
        self._closeables: list = []  # clients with async .close()
        self._relays: dict[str, HttpRelay] = {}
        self._control_loop: ControlLoop | None = None

    @property
    def control_loop(self) -> ControlLoop | None:
        return self._control_loop

    def build(self) -> ControlLoop:
        """Construct all components. Safe to call once per Application."""
        config = self.config

        meter = EagleMeterClient(config.meter)
        self._closeables.append(meter)

        self._relays["load"] = HttpRelay(config.switch.primary)
        self._relays["gateway"] = HttpRelay(config.gateway.power_switch)
        if config.switch.auxiliary is not None:
            self._relays["auxiliary"] = HttpRelay(config.switch.auxiliary)
        self._closeables.extend(self._relays.values())

        recovery = GatewayRecovery(config.gateway, self._relays["gateway"])

        health = HealthChecker(
            config.resilience.max_consecutive_failures,
            config.resilience.component_limits,
        )
        for name in ("meter", "switch", "notifier"):
            health.register(name)

        mailer = SMTPMailer(config.notifications) if config.notifications.enabled else None
        notifier = Notifier(
            mailer,
            load_name=config.control.load_name,
            threshold_kw=config.control.threshold_kw,
            health=health,
        )

        engine = DecisionEngine(
            config=config,
            meter=meter,
            switch=self._relays["load"],
            recovery=recovery,
            notifier=notifier,
            health=health,
        )
        self._control_loop = ControlLoop(
            config=config,
            engine=engine,
            meter=meter,
            recovery=recovery,
            notifier=notifier,
        )
        return self._control_loop

    async def start(self) -> None:
        """Build components and run the control loop until stopped."""
        logger.info("Starting Solar Switch v%s", __version__)
        self._running = True
        loop = self._control_loop or self.build()
        logger.info(
            "Controlling '%s': load=%.2fkW threshold=%.2fkW low-cost window %02d:00-%02d:00 (%s)",
            self.config.control.load_name,
            self.config.control.load_kw,
            self.config.control.threshold_kw,
            self.config.rate_window.start_hour,
            self.config.rate_window.end_hour,
            self.config.rate_window.timezone,
        )
        await loop.run()

    async def stop(self) -> None:
        """Stop the loop and release HTTP clients."""
        if not self._running:
            return
        logger.info("Shutting down Solar Switch")
        self._running = False
        if self._control_loop:
            self._control_loop.stop()
        for client in self._closeables:
            try:
                await client.close()
            except Exception:
                logger.exception("Error closing %s", type(client).__name__)
        logger.info("Shutdown complete")

    async def command_relay(self, name: str, on: bool) -> bool:
        """Send a single on/off command to a named relay (load, auxiliary, gateway)."""
        if not self._relays:
            self.build()
        relay = self._relays.get(name)
        if relay is None:
            logger.error("No relay named '%s' is configured", name)
            return False
        try:
            return await relay.set_state(on) == on
        except ActuationError as e:
            logger.error("%s", e)
            return False
        finally:
            for client in self._closeables:
                await client.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Switch a high-current load on solar surplus or during the low-cost rate window.",
    )
    parser.add_argument("--config", default="config.yaml")
    parser.add_argument("--defaults", default="config.defaults.yaml")
    parser.add_argument(
        "--relay",
        choices=["load", "auxiliary", "gateway"],
        help="Send a single command to this relay and exit",
    )
    parser.add_argument("--state", choices=["on", "off"], help="State for --relay")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)
    if args.relay and not args.state:
        parser.error("--relay requires --state")
    return args


def main(argv: list[str] | None = None) -> None:
    """Entry point for the application."""
    args = parse_args(argv)

    config_manager = ConfigManager(Path(args.defaults), Path(args.config))
    config = config_manager.load()

    setup_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_file=config.logging.file,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
    )
    logger.debug("Effective configuration: %s", config_manager.to_json(redact=True))

    app = Application(config)

    if args.relay:
        ok = asyncio.run(app.command_relay(args.relay, args.state == "on"))
        sys.exit(0 if ok else 1)

    exit_code = 0
    signal_count = 0

    async def _run() -> None:
        nonlocal exit_code
        try:
            await app.start()
        except StartupError as e:
            logger.critical("%s", e)
            exit_code = 1
        finally:
            with contextlib.suppress(Exception):
                await app.stop()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def _request_stop() -> None:
        nonlocal signal_count
        signal_count += 1
        if signal_count >= 2:
            os._exit(130)
        if app.control_loop is not None:
            loop.call_soon_threadsafe(app.control_loop.stop)

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _request_stop)
    else:
        signal.signal(signal.SIGINT, lambda *_: _request_stop())

    try:
        loop.run_until_complete(_run())
    except KeyboardInterrupt:
        _request_stop()
    finally:
        pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            with contextlib.suppress(Exception):
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        loop.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
