import argparse
import logging
import os
import shlex
import sys

from nicegui import app as ng_app
from nicegui import ui

from meshtether.common.logging_config import TRACE, configure_logging
from meshtether.config import Config
from meshtether.constants import APP_NAME, LOG_LEVEL, LOG_LEVEL_NAMES
from meshtether.lifecycle import AppContext, initialize, shutdown
from meshtether.pages.alerts import NiceGuiAlertSink
from meshtether.pages.status import StatusPage

# Composition root: created on startup, released on shutdown
config = Config.from_env()
alert_sink = NiceGuiAlertSink()
context: AppContext | None = None


async def _app_startup() -> None:
    global context
    context = initialize(config, storage=ng_app.storage.general, sink=alert_sink)
    logging.info(
        "Mesh tether ready: worker=%s ip=%s",
        " ".join(config.worker_command),
        context.prefs.get("adhoc_ip"),
    )
    if config.auto_start:
        context.machine.request_start()


async def _app_shutdown() -> None:
    global context
    if context is not None:
        shutdown(context)
        context = None


ng_app.on_startup(_app_startup)
ng_app.on_shutdown(_app_shutdown)


@ui.page("/")
def index() -> None:
    if context is None:
        ui.label("Starting...")
        return
    ui.query(".nicegui-content").classes("p-0")
    alerts = ui.element("div")
    alert_sink.attach(alerts)
    ui.context.client.on_disconnect(lambda: alert_sink.detach(alerts))
    StatusPage(context).build()
    context.machine.cleanup_notifications()


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mesh Tether web shell")
    parser.add_argument("--host", default=config.host, help="Webserver bind host")
    parser.add_argument(
        "--port", type=int, default=config.port, help="Webserver bind port"
    )
    parser.add_argument(
        "--worker-cmd",
        help="Mesh worker command line (overrides MESHTETHER_WORKER_CMD)",
    )
    parser.add_argument(
        "--startup-timeout",
        type=float,
        help="Seconds to wait for the worker to report started (0 disables)",
    )
    parser.add_argument(
        "--auto-start",
        action="store_true",
        default=None,
        help="Start the mesh service once the shell is up",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=list(LOG_LEVEL_NAMES),
        help="Log level name (overrides -v/-q and MESHTETHER_LOG_LEVEL)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="More output: -v info, -vv debug, -vvv worker protocol trace",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only warnings and errors"
    )
    args, _ = parser.parse_known_args(argv)
    return args


# -v count -> level; anything past the end means TRACE
_VERBOSITY = (logging.INFO, logging.DEBUG, TRACE)


def _resolve_log_level(args: argparse.Namespace) -> int:
    if args.log_level:
        return LOG_LEVEL_NAMES[args.log_level]
    if args.verbose:
        return _VERBOSITY[min(args.verbose, len(_VERBOSITY)) - 1]
    if args.quiet:
        return logging.WARNING
    return LOG_LEVEL


def main(argv=None) -> None:
    args = _parse_args(argv)
    config.host = args.host
    config.port = int(args.port)
    if args.worker_cmd:
        config.worker_command = shlex.split(args.worker_cmd)
    if args.startup_timeout is not None:
        config.startup_timeout_s = max(0.0, args.startup_timeout)
    if args.auto_start:
        config.auto_start = True

    configure_logging(_resolve_log_level(args))
    logging.info(f"Webserver bind: host={config.host} port={config.port}")

    ui.run(
        title=f"{APP_NAME} Commander",
        host=config.host,
        port=config.port,
        reload=False,
        show=False,
        storage_secret=os.getenv("MESHTETHER_STORAGE_SECRET"),
        loop="uvloop" if sys.platform != "win32" else "asyncio",
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
