"""
Shared fixtures: API client and a few reference charts.

The API tests need fastapi and httpx (TestClient) installed.
"""
import pytest

from bazi.chart import BaziChart


@pytest.fixture(scope="session")
def client():
    pytest.importorskip("httpx", reason="httpx not installed (required for TestClient)")
    from fastapi.testclient import TestClient

    from main import app
    return TestClient(app)


@pytest.fixture
def open_api(monkeypatch):
    """API key check disabled regardless of the environment."""
    import config
    monkeypatch.setattr(config, "API_KEY", None)


@pytest.fixture
def sample_bazi_request():
    return {
        "dateTime": "1983-11-19 08:15",
        "gender": "female",
        "timezone": "Europe/Moscow",
        "longitude": 37.6173,
        "latitude": 55.7558,
    }


@pytest.fixture
def water_chart():
    # 申子辰 complete, 寅申 clash, water heavy, almost no fire
    return BaziChart.from_strings("壬申 壬子 壬辰 壬寅")


@pytest.fixture
def clash_chart():
    # 子午 and 寅申 clashes, 申子 and 寅午 partial triads
    return BaziChart.from_strings(["甲子", "丙寅", "戊午", "庚申"])
