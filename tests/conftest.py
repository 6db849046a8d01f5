"""Shared fixtures: an in-memory stand-in for the Plex gateway."""

import pytest

from plex_api.plex_client import ContainerNotFound, PlexApiError
from station_config import StationConfig


class FakePlex:
    """Records calls; behaviour is driven by the dicts below."""

    def __init__(self):
        self.containers = {}
        self.workcenters = {
            "74883": {"Part Number": "PN-100", "Workcenter": "Edgefold1"},
            "74895": {"Part Number": "PN-100", "Workcenter": "Pack-Rivian"},
        }
        self.std_pack_qty = {"PN-100": 2}
        self.fail = {}
        self.calls = []
        self.next_serial = 900001

    def add_container(self, serial_no, part_number="PN-100", operation="Waterjet", quantity=5):
        self.containers[serial_no] = {
            "Serial No": serial_no,
            "Part Number": part_number,
            "Operation": operation,
            "Quantity": quantity,
        }

    def _maybe_fail(self, name):
        error = self.fail.get(name)
        if error:
            raise PlexApiError(error)

    def lookup_container(self, serial_no):
        self.calls.append(("lookup_container", serial_no))
        self._maybe_fail("lookup_container")
        if serial_no not in self.containers:
            raise ContainerNotFound(f"Container {serial_no} not found.", 404)
        return {"containerInfo": dict(self.containers[serial_no]), "message": f"Container {serial_no} found ✔️"}

    def move_container(self, serial_no, location):
        self.calls.append(("move_container", serial_no, location))
        self._maybe_fail("move_container")
        return f"Container {serial_no} moved to {location}"

    def record_production(self, workcenter_key, quantity):
        self.calls.append(("record_production", workcenter_key, quantity))
        self._maybe_fail("record_production")
        serial = f"S{self.next_serial}"
        self.next_serial += 1
        return {"newSerialNo": serial, "message": f"Recorded {quantity} pcs as {serial}"}

    def record_production_bfb(self, workcenter_key, serial_no):
        self.calls.append(("record_production_bfb", workcenter_key, serial_no))
        self._maybe_fail("record_production_bfb")
        return {"message": f"Production recorded for {serial_no} ✔️"}

    def print_label(self, serial_no, printer):
        self.calls.append(("print_label", serial_no, printer))
        self._maybe_fail("print_label")
        return f"Label printed for {serial_no} ✔️"

    def get_workcenter_info(self, workcenter_key):
        self.calls.append(("get_workcenter_info", workcenter_key))
        self._maybe_fail("get_workcenter_info")
        return dict(self.workcenters[workcenter_key])

    def get_std_pack_qty(self, part_number):
        self.calls.append(("get_std_pack_qty", part_number))
        self._maybe_fail("get_std_pack_qty")
        return self.std_pack_qty[part_number]

    def get_server(self):
        return "test"

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def plex():
    return FakePlex()


@pytest.fixture
def station_config(tmp_path, monkeypatch):
    for name in ("PLEX_API_BASE_URL", "PLEX_API_TOKEN", "PLEX_SERVER"):
        monkeypatch.delenv(name, raising=False)
    return StationConfig(str(tmp_path / "config.json"))


@pytest.fixture
def edgefold_profile(station_config):
    return station_config.station_profile("edgefold")


@pytest.fixture
def pack_profile(station_config):
    return station_config.station_profile("pack")
