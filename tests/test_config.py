import pytest

from inkobot.config import BotConfig, ConfigError, ConfigStore, PingSettings, UserEntry, default_config_path

from .conftest import ADMIN, USER


def test_save_and_load_round_trip(config_store):
    text = config_store.path.read_text(encoding="utf-8")
    assert text.startswith("---\n")
    assert text.endswith("...\n")

    loaded = ConfigStore(config_store.path).load()
    assert loaded.admin == ADMIN
    assert loaded.users == {USER: UserEntry(name="operator")}
    assert loaded.report_channel == -500


def test_defaults_from_minimal_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("bot_token: abc\nadmin: 7\n", encoding="utf-8")
    config = ConfigStore(path).config
    assert config.bot_token == "abc"
    assert config.search_per_page == 4
    assert config.ping == PingSettings()
    assert "192.168.59.0/24" in config.switch_networks


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Read failed"):
        ConfigStore(tmp_path / "absent.yml").load()


def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("admin: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Read failed"):
        ConfigStore(path).load()


def test_invalid_values(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("listen_port: not-a-port\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Parse failed"):
        ConfigStore(path).load()


def test_add_and_remove_user_persist(config_store):
    assert config_store.add_user(200, "bob")
    assert not config_store.add_user(200, "bob")
    assert 200 in ConfigStore(config_store.path).load().users
    assert config_store.remove_user(200)
    assert not config_store.remove_user(200)
    assert 200 not in ConfigStore(config_store.path).load().users


def test_session_users_include_admin():
    config = BotConfig(admin=1, users={2: UserEntry(name="bob")})
    assert config.session_users() == {2: "bob", 1: "admin"}
    config = BotConfig(admin=2, users={2: UserEntry(name="bob")})
    assert config.session_users() == {2: "bob"}


def test_config_path_from_environment(monkeypatch):
    monkeypatch.setenv("INKOBOT_CONFIG", "/etc/inkobot.yml")
    assert str(default_config_path()) == "/etc/inkobot.yml"
