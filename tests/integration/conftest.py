import pytest
import sentry_sdk

from job_board.config import Settings


def pytest_configure(config):
    settings = Settings()
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        traces_sample_rate=0.0,
    )


@pytest.fixture
def live_settings() -> Settings:
    return Settings(mode="production")
