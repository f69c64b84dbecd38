from __future__ import annotations

import pytest
from flask.testing import FlaskClient

from drawdown.app import create_app
from drawdown.app.config import AppConfig


@pytest.fixture()
def app():
    return create_app(AppConfig(advisory_api_key="test-key"))


@pytest.fixture()
def client(app) -> FlaskClient:
    with app.test_client() as test_client:
        yield test_client
