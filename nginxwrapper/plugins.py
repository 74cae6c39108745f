"""Loading, validating and starting wrapper plugins."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any

from nginxwrapper.api import PluginStartupContext, Settings
from nginxwrapper.events import GLOBAL_EVENTS, Event, Message, RegisteredEvents, Trigger

_load_log = logging.getLogger("load-plugin")

EVENT_LOG_TRIGGER_NAME = "core.log-event-fired"


class PluginError(Exception):
    """A plugin could not be loaded or started."""


class PluginMetadataError(PluginError):
    """The metadata returned by a plugin is not usable."""

    def __init__(self, message: str = "", err: BaseException | None = None) -> None:
        super().__init__(message)
        self.err = err
        if err is not None:
            self.__cause__ = err


class PluginMetadataKeyMissing(PluginMetadataError):
    """The plugin metadata lacks a required key."""

    def __init__(self, key_missing: str, err: BaseException | None = None) -> None:
        self.key_missing = key_missing
        super().__init__(f"plugin metadata missing required key ({key_missing})", err)


class PluginMetadataMalformedType(PluginMetadataError):
    """A plugin metadata value has the wrong type."""

    def __init__(self, key_name: str, expected_type: type, err: BaseException | None = None) -> None:
        self.key_name = key_name
        self.expected_type = expected_type
        super().__init__(
            f"plugin metadata must use ({expected_type.__name__}) for ({key_name}) value)", err
        )


@dataclass(frozen=True)
class Plugin:
    """A plugin: a metadata function and a start function."""

    metadata: Callable[[Settings], Mapping[str, Any]]
    start: Callable[[PluginStartupContext], Any]
    source: str = "<embedded>"

    def __post_init__(self) -> None:
        if not callable(self.metadata):
            raise PluginError(f"unable to load plugin metadata from ({self.source})")
        if not callable(self.start):
            raise PluginError(f"unable to load plugin start function from ({self.source})")


def validate_plugin_metadata(metadata: Mapping[str, Any]) -> dict[str, Any]:
    """Check plugin metadata and return a copy with ``config_defaults`` filled in."""
    checked = dict(metadata)

    name = checked.get("name")
    if name is None:
        raise PluginMetadataKeyMissing("name")
    if not isinstance(name, str):
        raise PluginMetadataMalformedType("name", str)

    if checked.get("config_defaults") is None:
        checked["config_defaults"] = {}
    if not isinstance(checked["config_defaults"], Mapping):
        raise PluginMetadataMalformedType("config_defaults", dict)

    return checked


def is_plugin_enabled(plugin_name: str, settings: Settings) -> bool:
    """Tell whether the plugin is listed in ``enabled_plugins``."""
    return plugin_name in settings.get_string_slice("enabled_plugins")


def start_plugin(start_func: Callable[[PluginStartupContext], Any], plugin_name: str,
                 settings: Settings) -> None:
    """Run a plugin's start function; failures raise PluginError.

    The start function must return; long-running work belongs on its own thread.
    """
    context = PluginStartupContext(settings=settings)
    try:
        start_func(context)
    except Exception as exc:
        raise PluginError(f"error starting plugin ({plugin_name}): {exc}") from exc


def load_plugin(plugin: Plugin, start_plugins: bool, settings: Settings,
                plugin_defaults: MutableMapping[str, Mapping[str, Any]] | None = None) -> bool:
    """Register a plugin's defaults and optionally start it.

    Returns False when the plugin is not enabled, True once it is loaded.
    The plugin's defaults are recorded in ``plugin_defaults`` under its name.
    """
    metadata = validate_plugin_metadata(plugin.metadata(settings))
    plugin_name: str = metadata["name"]

    if not is_plugin_enabled(plugin_name, settings):
        _load_log.debug("plugin [%s] was detected but not enabled - not loading", plugin_name)
        return False

    config_defaults = dict(metadata["config_defaults"])
    if plugin_defaults is not None:
        plugin_defaults[plugin_name] = config_defaults

    for key, value in config_defaults.items():
        settings.set_default(f"{plugin_name}.{key}", value)

    if start_plugins:
        start_plugin(plugin.start, plugin_name, settings)
        _load_log.info("started plugin: [%s]", plugin_name)
    else:
        _load_log.info("loaded plugin: [%s]", plugin_name)
    return True


def add_event_log_trigger(registered_events: RegisteredEvents | None = None,
                          logger: logging.Logger | None = None) -> Trigger | None:
    """Log every fired event when debug logging is on.

    Returns the trigger added to all events, or None when debug is off.
    """
    events = registered_events if registered_events is not None else GLOBAL_EVENTS
    event_log = logger if logger is not None else logging.getLogger("event")

    if not event_log.isEnabledFor(logging.DEBUG):
        return None

    def log_fired(message: Message) -> None:
        if event_log.isEnabledFor(logging.DEBUG):
            event_log.debug("[%s] triggered: %s", message.event.id(), message.metadata)

    trigger = Trigger(name=EVENT_LOG_TRIGGER_NAME, function=log_fired)
    events.add_trigger_to_all_events(trigger)
    return trigger


def log_events(registered_events: RegisteredEvents | None = None,
               logger: logging.Logger | None = None) -> list[Event]:
    """Log each registered event at debug level; return the events logged."""
    events = registered_events if registered_events is not None else GLOBAL_EVENTS
    event_log = logger if logger is not None else logging.getLogger("events")

    if not event_log.isEnabledFor(logging.DEBUG):
        return []

    logged: list[Event] = []
    for event_name in events.event_names():
        event = events.find_event_by_name(event_name)
        if event is None:
            continue
        event_log.debug("Event registered: %s", event)
        logged.append(event)
    return logged