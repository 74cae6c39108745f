from nginxwrapper import example_plugin
from nginxwrapper.api import PluginStartupContext, Settings
from nginxwrapper.events import GLOBAL_EVENTS, Event, Message
from nginxwrapper.plugins import load_plugin, Plugin


def test_is_metadata_set():
    metadata = example_plugin.metadata(None)
    assert len(metadata) > 0
    assert metadata["name"] == example_plugin.PLUGIN_NAME == "example"


def test_metadata_defaults():
    defaults = example_plugin.metadata(Settings())["config_defaults"]
    assert defaults == {"example_key_1": "one", "example_key_2": 2}


def test_start_overrides_setting_and_adds_triggers():
    settings = Settings(defaults={"example.example_key_1": "one", "example.example_key_2": 2})
    example_plugin.start(PluginStartupContext(settings=settings))
    assert settings.get("example.example_key_2") == 9
    assert settings.get("example.example_key_1") == "one"
    assert "example.on-reload" in [t.name for t in GLOBAL_EVENTS.nginx_reload.on_trigger]
    assert "example.on-shutdown" in [t.name for t in GLOBAL_EVENTS.nginx_exit.on_trigger]


def test_loads_through_plugin_loader():
    settings = Settings(config={"enabled_plugins": ["example"]})
    registry = {}
    plugin = Plugin(metadata=example_plugin.metadata, start=example_plugin.start)
    assert load_plugin(plugin, False, settings, registry) is True
    assert registry["example"]["example_key_1"] == "one"
    assert settings.get("example.example_key_2") == 2


def test_on_reload_prints_banner(capsys):
    message = Message(event=Event("reload", "nginx"), metadata={})
    assert example_plugin.on_reload(message) is None
    out = capsys.readouterr().out
    assert "NGINX RELOADED" in out
    assert "EXAMPLE PLUGIN" in out


def test_on_shutdown_prints_banner(capsys):
    message = Message(event=Event("exit", "nginx"), metadata={})
    example_plugin.on_shutdown(message)
    out = capsys.readouterr().out
    assert "NGINX EXITED" in out
    assert len(out.splitlines()) == 4