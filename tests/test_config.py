import textwrap

import pytest

from eventflow.core.config import Config


@pytest.fixture
def config_file(tmp_path):
    def _write(content):
        path = tmp_path / "config.yaml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


class TestConfig:
    def test_project_config_loads(self):
        config = Config()

        assert config.get("mongodb.database")
        assert config.pagination_max_limit == 100
        assert config.graphql["max_depth"] == 10

    def test_env_vars_are_substituted(self, config_file, monkeypatch):
        monkeypatch.setenv("EVENTFLOW_TEST_DB", "from-env")
        config = Config(config_file("""
            mongodb:
              database: ${EVENTFLOW_TEST_DB:fallback}
        """))

        assert config.get("mongodb.database") == "from-env"

    def test_defaults_apply_when_env_var_is_missing(self, config_file, monkeypatch):
        monkeypatch.delenv("EVENTFLOW_TEST_DB", raising=False)
        config = Config(config_file("""
            mongodb:
              database: ${EVENTFLOW_TEST_DB:fallback}
              uri: ${EVENTFLOW_TEST_URI}
        """))

        assert config.mongodb == {"database": "fallback", "uri": None}

    def test_substitution_reaches_lists(self, config_file, monkeypatch):
        monkeypatch.setenv("EVENTFLOW_TEST_ORIGIN", "https://app.example.com")
        config = Config(config_file("""
            api:
              cors:
                origins:
                  - ${EVENTFLOW_TEST_ORIGIN}
                  - http://localhost:3000
        """))

        assert config.cors_origins == ["https://app.example.com", "http://localhost:3000"]

    def test_comma_separated_origins(self, config_file):
        config = Config(config_file("""
            api:
              cors:
                origins: "http://a.test, http://b.test,"
        """))

        assert config.cors_origins == ["http://a.test", "http://b.test"]

    def test_missing_keys_return_default(self, config_file):
        config = Config(config_file("app: {}\n"))

        assert config.get("app.name", "EventFlow") == "EventFlow"
        assert config.get("nothing.here") is None
        assert config.app_env == "development"
        assert config.pagination_max_limit == 100

    @pytest.mark.parametrize("value, expected", [("0", None), ("''", None), ("25", 25)])
    def test_pagination_max_limit(self, config_file, value, expected):
        config = Config(config_file(f"pagination:\n  max_limit: {value}\n"))
        assert config.pagination_max_limit == expected

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(tmp_path / "missing.yaml")
