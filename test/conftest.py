import os
import pytest

from FogDevice import FogDevice
from Topology import Topology
from main import create_application
from variables import HEALTHCARE_APP, ROOT_PARENT_ID

HEALTHCARE_TOPOLOGY = os.path.join(os.path.dirname(__file__), '..', 'topology', 'healthcare.json')


def build_topology(nodes):
    """nodes: list of (name, level, parent name or None, mips, ram); ids follow list order."""
    ids = {}
    devices = []
    for device_id, (name, level, parent, mips, ram) in enumerate(nodes):
        parent_id = ids[parent] if parent is not None else ROOT_PARENT_ID
        devices.append(FogDevice(device_id, name, level, mips, ram, parent_id=parent_id, uplink_latency=2.0))
        ids[name] = device_id
    return Topology(devices)


@pytest.fixture
def make_topology():
    return build_topology


@pytest.fixture
def healthcare_topology():
    return Topology.from_json(HEALTHCARE_TOPOLOGY)


@pytest.fixture
def healthcare_app():
    return create_application(HEALTHCARE_APP)
