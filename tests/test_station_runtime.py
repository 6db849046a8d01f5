import io

from station_runtime import run_console
from station_session import create_station


def test_console_scans_and_packs(plex, pack_profile, capsys):
    plex.add_container("A", operation="Assembly")
    plex.add_container("B", operation="Assembly")
    station = create_station(pack_profile, plex)

    run_console(station, io.StringIO("A\n\nB\n/pack\n/quit\nC\n"))

    out = capsys.readouterr().out
    assert "A is packed ✔️" in out
    assert "Label printed for" in out
    assert ("lookup_container", "C") not in plex.calls
    assert station.closed


def test_console_unload_command(plex, pack_profile, capsys):
    plex.add_container("A", operation="Assembly")
    station = create_station(pack_profile, plex)

    run_console(station, io.StringIO("A\n/unload A\n"))

    assert "Container A is unloaded ✔️" in capsys.readouterr().out
    assert station.accumulator.members == []
