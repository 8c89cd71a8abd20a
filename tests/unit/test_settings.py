"""
tests/unit/test_settings.py — Unit tests for config/settings.py.

These tests validate the Pydantic Settings schema and the environment
merge of load_settings() with no network dependencies.

Run: pytest tests/unit/test_settings.py -v
"""

import pytest
from pydantic import ValidationError

# conftest.py adds project root to sys.path
from config.settings import Settings, load_settings

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_connection_defaults(self):
        s = Settings()
        assert s.HOSTNAME == "localhost"
        assert s.PORT == 9600
        assert s.SECURE is False
        assert s.TIMEOUT == 30
        assert s.UNREACHABLE_STATE == 3

    def test_threshold_defaults(self):
        s = Settings()
        assert s.HEAP_USAGE_THRESHOLD_WARN == "70"
        assert s.HEAP_USAGE_THRESHOLD_CRIT == "80"
        assert s.FILE_DESCRIPTOR_THRESHOLD_WARN == "100"
        assert s.CPU_USAGE_THRESHOLD_CRIT == "100"
        assert s.INFLIGHT_EVENTS_WARN is None
        assert s.FLOW_CRIT is None

    def test_pipeline_default_is_all(self):
        assert Settings().PIPELINE == "/"

    def test_settings_ignores_os_environ(self, monkeypatch):
        monkeypatch.setenv("HOSTNAME", "from-env")
        monkeypatch.setenv("CHECK_LOGSTASH_HOSTNAME", "from-env")
        assert Settings().HOSTNAME == "localhost"


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


class TestBaseUrl:
    def test_plain_http(self):
        assert Settings(HOSTNAME="logstash", PORT=9601).base_url == "http://logstash:9601"

    def test_secure_uses_https(self):
        assert Settings(SECURE=True).base_url == "https://localhost:9600"

    def test_hostname_is_stripped(self):
        assert Settings(HOSTNAME="  logstash ").HOSTNAME == "logstash"

    def test_basic_auth_credentials(self):
        assert Settings(BASICAUTH="user:secret").basic_auth_credentials == ("user", "secret")
        assert Settings().basic_auth_credentials is None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_out_of_range(self, port):
        with pytest.raises(ValidationError, match="port must be between"):
            Settings(PORT=port)

    def test_empty_hostname_rejected(self):
        with pytest.raises(ValidationError, match="hostname must not be empty"):
            Settings(HOSTNAME="   ")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError, match="timeout"):
            Settings(TIMEOUT=0)

    @pytest.mark.parametrize("value", ["useronly", "a:b:c"])
    def test_basic_auth_needs_exactly_user_and_password(self, value):
        with pytest.raises(ValidationError, match="<user:password>"):
            Settings(BASICAUTH=value)

    def test_empty_basic_auth_means_none(self):
        assert Settings(BASICAUTH="").BASICAUTH is None

    @pytest.mark.parametrize("state,expected", [(0, 0), (1, 1), (2, 2), (3, 3), (-123, 3), (42, 3)])
    def test_unreachable_state_is_normalized(self, state, expected):
        assert Settings(UNREACHABLE_STATE=state).UNREACHABLE_STATE == expected

    def test_empty_strings_become_none(self):
        s = Settings(BEARER="", CA_FILE="", CERT_FILE="", KEY_FILE="")
        assert (s.BEARER, s.CA_FILE, s.CERT_FILE, s.KEY_FILE) == (None, None, None, None)


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_prefixed_environment_is_read(self):
        cfg = load_settings(
            environ={
                "CHECK_LOGSTASH_HOSTNAME": "logstash.example.com",
                "CHECK_LOGSTASH_PORT": "9601",
                "CHECK_LOGSTASH_SECURE": "true",
                "CHECK_LOGSTASH_BEARER": "token",
            }
        )
        assert cfg.HOSTNAME == "logstash.example.com"
        assert cfg.PORT == 9601
        assert cfg.SECURE is True
        assert cfg.BEARER == "token"

    def test_overrides_win_over_environment(self):
        cfg = load_settings({"PORT": 9700}, environ={"CHECK_LOGSTASH_PORT": "9601"})
        assert cfg.PORT == 9700

    def test_unprefixed_and_unknown_keys_are_ignored(self):
        cfg = load_settings(
            {"verbose": True, "command": "health"},
            environ={"HOSTNAME": "other", "CHECK_LOGSTASH_NOPE": "1"},
        )
        assert cfg.HOSTNAME == "localhost"

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("CHECK_LOGSTASH_BASICAUTH", "user:password")
        assert load_settings().basic_auth_credentials == ("user", "password")

    def test_invalid_environment_value_raises(self):
        with pytest.raises(ValidationError):
            load_settings(environ={"CHECK_LOGSTASH_PORT": "not-a-port"})
