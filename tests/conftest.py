"""
Test configuration for SiteProbe.
"""

import pytest

from siteprobe.config import Config

from tests.helpers.fakes import FakeProber

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def test_config() -> Config:
    """Default configuration without the post-navigation settle delay."""
    config = Config()
    config.browser.settle_delay_ms = 0
    return config
