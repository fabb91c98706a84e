import logging

from scout.utils import sentry


def test_skips_sentry_without_dsn(monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    called = []
    monkeypatch.setattr(sentry.sentry_sdk, "init", lambda **kw: called.append(kw))
    assert sentry.init_sentry() is False
    assert called == []


def test_initialises_sentry_from_env(monkeypatch):
    monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.example/1")
    monkeypatch.setenv("SENTRY_ENVIRONMENT", " staging ")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "0.25")
    monkeypatch.delenv("SENTRY_PROFILES_SAMPLE_RATE", raising=False)
    called = []
    monkeypatch.setattr(sentry.sentry_sdk, "init", lambda **kw: called.append(kw))
    assert sentry.init_sentry() is True
    (kwargs,) = called
    assert kwargs["environment"] == "staging"
    assert kwargs["traces_sample_rate"] == 0.25
    assert kwargs["profiles_sample_rate"] == 0.0


def test_invalid_sample_rate_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "lots")
    with caplog.at_level(logging.WARNING):
        assert sentry._parse_sample_rate("SENTRY_TRACES_SAMPLE_RATE", default=0.1) == 0.1
    assert "not a valid float" in caplog.text
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "-1")
    assert sentry._parse_sample_rate("SENTRY_TRACES_SAMPLE_RATE") == 0.0
