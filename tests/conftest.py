import logging

import pytest

from hopwatch.probe.fake import FakeClock, FakeTransport
from hopwatch.probe.prober import Prober


DEST = '203.0.113.9'
IDENT = 0x1234


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger('hopwatch')
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_transport(clock):
    def factory(script=None, **kwargs):
        return FakeTransport(script, clock=clock, **kwargs)
    return factory


@pytest.fixture
def make_prober(clock):
    def factory(transport, timeout=3.0, identifier=IDENT):
        return Prober(transport, identifier, timeout=timeout, clock=clock)
    return factory
