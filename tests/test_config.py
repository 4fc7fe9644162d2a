from config import DEFAULT_DATABASE_URL, Settings

ENV_KEYS = [
    "DATABASE_URL", "MONGO_URI", "DATABASE_NAME", "VIDEO_COLLECTION", "CREATOR_API_KEY",
    "HOST", "PORT", "DB_TIMEOUT_MS", "LOG_LEVEL", "LOG_FILE", "STATIC_DIRS", "CORS_ORIGINS",
]


def clear_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(monkeypatch):
    clear_env(monkeypatch)
    settings = Settings.from_env()
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.database_name == "edutalk"
    assert settings.port == 8000
    assert settings.api_key == ""
    assert not settings.auth_enabled
    assert settings.static_dirs == ["public", "web"]
    assert settings.cors_origins == ["*"]


def test_database_url_precedence(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("MONGO_URI", "mongodb://legacy")
    assert Settings.from_env().database_url == "mongodb://legacy"
    monkeypatch.setenv("DATABASE_URL", "mongodb://primary")
    assert Settings.from_env().database_url == "mongodb://primary"


def test_values_from_env(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("CREATOR_API_KEY", "s3cret")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("STATIC_DIRS", "dist, ,public")
    settings = Settings.from_env()
    assert settings.auth_enabled
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"
    assert settings.static_dirs == ["dist", "public"]


def test_invalid_integers_fall_back(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("PORT", "eighty")
    monkeypatch.setenv("DB_TIMEOUT_MS", "")
    settings = Settings.from_env()
    assert settings.port == 8000
    assert settings.db_timeout_ms == 10000
