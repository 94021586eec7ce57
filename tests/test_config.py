"""Tests for environment-driven settings."""
from workout_file_ingestor.config import Settings


def test_defaults(monkeypatch):
    for name in ("ENVIRONMENT", "DEFAULT_FTP_WATTS", "RAMP_SEGMENT_COUNT", "MAX_UPLOAD_BYTES", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.ENVIRONMENT == "development"
    assert settings.DEFAULT_FTP_WATTS == 200
    assert settings.RAMP_SEGMENT_COUNT == 5
    assert settings.MAX_UPLOAD_BYTES == 1024 * 1024
    assert settings.CORS_ORIGINS == ["http://localhost:3000", "http://localhost:3001"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "Production")
    monkeypatch.setenv("DEFAULT_FTP_WATTS", "250")
    monkeypatch.setenv("RAMP_SEGMENT_COUNT", "10")
    monkeypatch.setenv("CORS_ORIGINS", "https://app.example.com, https://admin.example.com")

    settings = Settings()

    assert settings.ENVIRONMENT == "production"
    assert settings.DEFAULT_FTP_WATTS == 250
    assert settings.RAMP_SEGMENT_COUNT == 10
    assert settings.CORS_ORIGINS == ["https://app.example.com", "https://admin.example.com"]


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "qa")
    monkeypatch.setenv("DEFAULT_FTP_WATTS", "lots")
    monkeypatch.setenv("RAMP_SEGMENT_COUNT", "0")

    settings = Settings()

    assert settings.ENVIRONMENT == "development"
    assert settings.DEFAULT_FTP_WATTS == 200
    assert settings.RAMP_SEGMENT_COUNT == 1


def test_non_positive_default_ftp_is_clamped(monkeypatch):
    monkeypatch.setenv("DEFAULT_FTP_WATTS", "0")
    assert Settings().DEFAULT_FTP_WATTS == 1

    monkeypatch.setenv("DEFAULT_FTP_WATTS", "-200")
    assert Settings().DEFAULT_FTP_WATTS == 1
