"""Tests for configuration loading."""

import json

from wa_gateway.config import GatewayConfig


def test_defaults():
    config = GatewayConfig()
    assert config.client_id == "whatsapp-api-client"
    assert config.country_code == "972"
    assert config.max_message_length == 4096
    assert config.log_buffer_size == 1000
    assert config.webhook_url is None
    assert not config.process_group_messages


def test_session_dir_is_fixed_per_client_id(tmp_path):
    config = GatewayConfig(session_path=tmp_path, client_id="shop")
    assert config.session_dir == (tmp_path / "session-shop").resolve()
    assert config.session_dir == GatewayConfig(session_path=tmp_path, client_id="shop").session_dir
    assert config.database_path.name == "whatsapp.db"


def test_load_file_then_environment(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"client_id": "from-file", "country_code": "44", "webhook_timeout": 2}))

    config = GatewayConfig.load(path, environ={
        "WA_CLIENT_ID": "from-env",
        "MESSAGE_LOG_SIZE": "50",
        "PROCESS_GROUP_MESSAGES": "true",
        "WEBHOOK_URL": "",
    })

    assert config.client_id == "from-env"
    assert config.country_code == "44"
    assert config.webhook_timeout == 2.0
    assert config.log_buffer_size == 50
    assert config.process_group_messages
    assert config.webhook_url is None


def test_missing_or_broken_file_uses_defaults(tmp_path):
    assert GatewayConfig.load(tmp_path / "missing.json", environ={}) == GatewayConfig()
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert GatewayConfig.load(broken, environ={}).client_id == "whatsapp-api-client"


def test_save_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.json"
    GatewayConfig(client_id="saved", webhook_url="http://hook").save(path)
    loaded = GatewayConfig.load(path, environ={})
    assert loaded.client_id == "saved"
    assert loaded.webhook_url == "http://hook"
