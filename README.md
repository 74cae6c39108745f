# nginxwrapper

A small library for running NGINX under supervision. It starts the `nginx`
binary and forwards the binary's output into Python logging. It also reads
that output to produce lifecycle events: start, worker start, reload, worker
exit and exit. Plugins can attach triggers to these events.

The package needs no third-party libraries.

## Modules

- `nginxwrapper.process`: `Config`, `ProcessMonitor`, `run_command` and
  `start`.
  - `start(bin_path, run_path, config_path, pm)` runs
    `nginx -p <run_path> -c <config_path>`. Its stdout and stderr are relayed
    on a background thread.
  - `ProcessMonitor` tracks running tasks with `increment`, `done` and `wait`.
  - `ProcessMonitor.reload(cause)` fires the `pre-reload` event and then sends
    `SIGHUP` to NGINX.
  - `ProcessMonitor.shutdown(cause)` sets the `stop` flag. NGINX is then sent
    `SIGTERM` if it has not already exited.
  - `ProcessMonitor.handle_signal(sig)` treats `SIGINT` and `SIGTERM` as a
    shutdown. A second one exits the process at once. It treats `SIGHUP` and
    `SIGUSR2` as a reload.
  - `ProcessMonitor.install_signal_handlers()` sends those signals through
    the shared queue `nginxwrapper.api.SIGNALS`. A daemon thread handles the
    queue. Call it from the main thread.
- `nginxwrapper.events`: `Event`, `Trigger`, `Message` and `RegisteredEvents`.
  - The module holds a shared instance, `GLOBAL_EVENTS`.
  - `RegisteredEvents.parse_for_triggerable_event(line)` reads NGINX log lines
    one at a time and fires the events that match them.
  - A trigger that fails makes the parser raise `EventTriggerError`.
  - `Event.trigger(metadata)` runs every trigger and returns the exceptions
    they raised.
  - Helpers: `parse_pid_and_tid`, `extract_pid_from_start_worker_process` and
    `reverse`. `parse_pid_and_tid` raises `NginxLogParseError` on a malformed
    line.
- `nginxwrapper.nginxlog`:
  - `nginx_log(line, logger, registered_events)` strips a leading `nginx: `.
    It logs `[warning]` lines as warnings, `[alert]` lines as errors, and
    everything else as info. It then passes the message to the event parser.
  - `follow_streams(streams, ...)` does the same for whole streams on a
    background thread.
- `nginxwrapper.version`:
  - `read_nginx_version(path)` runs `nginx -V` and returns an `NginxVersion`.
    It holds the full text, the version number, the detail, whether the
    build is NGINX Plus, the extra lines and the configure arguments.
  - `parse_version`, `parse_configure_args` and `format_configure_args` work
    on the text directly.
- `nginxwrapper.api`:
  - `Settings` is a case-insensitive key/value store. Keys are dotted.
    Explicit values win over the loaded configuration, and the configuration
    wins over defaults. It supports aliases, typed getters and `sub(key)`.
  - `PluginStartupContext` is passed to a plugin's start function.
- `nginxwrapper.plugins`:
  - `Plugin` pairs a metadata function with a start function.
  - `validate_plugin_metadata` checks metadata and raises
    `PluginMetadataKeyMissing` or `PluginMetadataMalformedType`.
  - `is_plugin_enabled` checks the `enabled_plugins` setting.
  - `load_plugin` registers a plugin's `config_defaults` under
    `<name>.<key>` and can start the plugin.
  - `start_plugin` runs a start function. A failure raises `PluginError`.
  - `add_event_log_trigger` and `log_events` log events at debug level.
- `nginxwrapper.example_plugin`: a working plugin with `metadata` and `start`.
  It registers `on_reload` and `on_shutdown` triggers. It queues a
  `SIGUSR2` reload three seconds after it starts.
- `nginxwrapper.logdriver`:
  - `LogDriver` writes `LogRecordData` records to a Python logger, gated by
    one global level or by per-logger levels.
  - `SlfLevel` and `LogrusLevel` are the two level scales.
    `convert_slf_level_to_logrus_level` and
    `convert_logrus_level_to_slf_level` convert between them. Unknown values
    pass through unchanged.
  - `time_from_microseconds` converts a timestamp in microseconds.
- `nginxwrapper.fs`: `copy_file`, `find_in_path`, `temp_directory_path`,
  `path_exists_and_is_file_or_directory` and `is_regular_file_or_directory`,
  plus permission-bit constants.
- `nginxwrapper.osenv`: `LINE_BREAK`, `SHARED_OBJECT_SUFFIX` and
  `shared_object_suffix(platform_name)`.

## Turning log lines into events

```python
from nginxwrapper.events import RegisteredEvents, Trigger

events = RegisteredEvents()
events.add_trigger_by_event_name("start", Trigger("on-start", lambda m: print("started", m.metadata)))

events.parse_for_triggerable_event("4975#4975: start worker processes")
events.parse_for_triggerable_event("4975#4975: start worker process 4976")
print(events.worker_count)  # 1
```

The helpers can also be used on their own:

```python
from nginxwrapper.events import extract_pid_from_start_worker_process, parse_pid_and_tid

extract_pid_from_start_worker_process("4975#4975: start worker process 4976")  # 4976
parse_pid_and_tid("21247#11546: epoll_wait() failed")                          # (21247, 11546)
```

## Reading the NGINX version

```python
from nginxwrapper.version import format_configure_args, parse_configure_args, parse_version

version = parse_version("nginx version: nginx/1.17.9 (nginx-plus-r21)")
print(version.version, version.is_plus)  # 1.17.9 True

args = parse_configure_args(" --prefix=/etc/nginx --with-threads")
print(format_configure_args(args))  # " --prefix=/etc/nginx --with-threads"
```

## Running NGINX

```python
from nginxwrapper.process import ProcessMonitor, start

pm = ProcessMonitor()
pm.install_signal_handlers()
start("/usr/sbin/nginx", "/tmp/nginx-run", "/etc/nginx/nginx.conf", pm)
pm.wait()
```

## Loading a plugin

```python
from nginxwrapper import example_plugin
from nginxwrapper.api import Settings
from nginxwrapper.plugins import Plugin, load_plugin

settings = Settings(config={"enabled_plugins": ["example"]})
plugin = Plugin(metadata=example_plugin.metadata, start=example_plugin.start)
load_plugin(plugin, start_plugins=False, settings=settings)
print(settings.get("example.example_key_1"))  # one
```

A plugin is loaded only when its name appears in `enabled_plugins`. Pass
`start_plugins=True` to run its start function as well. A start function
must return promptly. Long-running work belongs on its own thread.

## What it does not do

- There is no command-line program.
- Configuration is not read from files or environment variables. Fill a
  `Settings` object yourself.
- Plugins are not discovered on disk. Build a `Plugin` from Python callables
  and pass it to `load_plugin`.
- Log destinations and formatters are not configured for you. Use the
  standard `logging` module, or a `LogDriver` with the logger of your
  choice.

## Tests

The tests use pytest, which is listed under the `test` extra:

```
pip install -e .[test]
pytest
```