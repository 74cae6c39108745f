"""An example plugin showing settings, event triggers and reloads."""

from __future__ import annotations

import logging
import signal
import threading
import time
from typing import Any

from nginxwrapper.api import SIGNALS, PluginStartupContext, Settings
from nginxwrapper.events import GLOBAL_EVENTS, Message, Trigger

PLUGIN_NAME = "example"
SLEEP_SECONDS = 3

log = logging.getLogger("example")

_BANNER_EDGE = "!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!!"


def metadata(settings: Settings | None) -> dict[str, Any]:
    """Describe the plugin's name and default configuration."""
    return {
        "name": PLUGIN_NAME,
        "config_defaults": {
            "example_key_1": "one",
            "example_key_2": 2,
        },
    }


def start(context: PluginStartupContext) -> None:
    """Start the plugin; returns promptly and leaves background work to a thread."""
    log.debug("plugin [%s] starting", PLUGIN_NAME)

    settings = context.settings
    # Values set here are visible to the rest of the application.
    settings.set("example.example_key_2", 9)

    log.debug("Example key 1: %s", settings.get("example.example_key_1"))
    log.debug("Example key 2: %s", settings.get("example.example_key_2"))

    GLOBAL_EVENTS.nginx_reload.add_trigger(Trigger(PLUGIN_NAME + ".on-reload", on_reload))
    GLOBAL_EVENTS.nginx_exit.add_trigger(Trigger(PLUGIN_NAME + ".on-shutdown", on_shutdown))

    reload_signal = getattr(signal, "SIGUSR2", None)
    if reload_signal is None:
        return

    def reload_later() -> None:
        time.sleep(SLEEP_SECONDS)
        # SIGUSR2 reloads only nginx.
        SIGNALS.put(reload_signal)

    threading.Thread(target=reload_later, name="example-reload", daemon=True).start()


def _banner(line: str) -> None:
    print(_BANNER_EDGE)
    print("!!!!!!!!!!! EXAMPLE PLUGIN !!!!!!!!!!!")
    print(line)
    print(_BANNER_EDGE)


def on_reload(message: Message) -> None:
    _banner("!!!!!!!!!!! NGINX RELOADED !!!!!!!!!!!")


def on_shutdown(message: Message) -> None:
    _banner("!!!!!!!!!!!  NGINX EXITED  !!!!!!!!!!!")