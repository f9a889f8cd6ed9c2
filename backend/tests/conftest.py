"""
Shared fixtures for the automator tests.
"""

from unittest.mock import AsyncMock

import pytest

from agent.page_agent import PageAgent
from fakes import FakeClock, FakeDom


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return AsyncMock(return_value={"ok": True, "status": 200})


@pytest.fixture
def download():
    return AsyncMock(return_value=b"\x00\x00\x00\x18ftypmp42")


@pytest.fixture
def make_agent(clock, transport, download):
    def factory(dom: FakeDom, **kwargs) -> PageAgent:
        return PageAgent(
            dom,
            transport=transport,
            download=download,
            webhook_url="http://hooks.test/success",
            clock=clock,
            **kwargs,
        )
    return factory
