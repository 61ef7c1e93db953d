"""Pytest config: put the project root on sys.path and share driver fixtures.

Some environments run pytest with a different working directory which can
lead to "No module named 'canlink'" import errors.
"""
import os
import sys

_HERE = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(_HERE, "..", ".."))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from canlink import metrics
from canlink.adapters.pcan import PcanGateway
from canlink.adapters.sim import SimDriver


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset_all()
    yield


@pytest.fixture
def sim_driver():
    return SimDriver()


@pytest.fixture
def sim_gateway(sim_driver):
    return PcanGateway(channel="PCAN_USBBUS1", driver=sim_driver)
