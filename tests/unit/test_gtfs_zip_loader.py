from __future__ import annotations

import zipfile
from datetime import date, time
from pathlib import Path

import pytest

from transit_arrivals.adapters.persistence import GtfsZipLoader
from transit_arrivals.adapters.persistence.gtfs_zip_loader import parse_stop_time
from transit_arrivals.domain.exceptions.transit import LoadError
from transit_arrivals.domain.models import ExceptionType, GeoBounds

FILES = {
    # Header carries a UTF-8 BOM and stray spaces, as some agency exports do.
    "routes.txt": (
        "\ufeffroute_id, route_short_name,route_long_name,route_type\n"
        "6635,049,UBC - Metrotown Station,3\n"
        "9001,Canada Line,YVR - Waterfront,1\n"
        "bad,,,3\n"
    ),
    "stops.txt": (
        "stop_id,stop_name,stop_lat,stop_lon\n"
        "S_A,Main St @ 1st Ave,49.28,-123.12\n"
        "S_B,Main St @ Broadway,49.2845,-123.12\n"
        "S_FAR,Far Away,40.0,-74.0\n"
    ),
    "trips.txt": (
        "route_id,service_id,trip_id,trip_headsign,direction_id,shape_id\n"
        "6635,WK,T1,UBC,0,SH1\n"
        "6635,WK,T2,Metrotown,1,\n"
    ),
    "stop_times.txt": (
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
        "T1,08:00:00,08:00:30,S_A,1\n"
        "T1,,,S_B,2\n"
        "T1,08:05:00,08:04:00,S_B,3\n"
        "T2,23:59:50,24:00:10,S_B,1\n"
    ),
    "shapes.txt": (
        "shape_id,shape_pt_lat,shape_pt_lon,shape_pt_sequence\n"
        "SH1,49.29,-123.12,2\n"
        "SH1,49.28,-123.12,1\n"
    ),
    "direction_names_exceptions.txt": (
        "route_name,direction_id,direction_name,direction_do\n"
        "049,0,To UBC,Westbound\n"
    ),
    "calendar.txt": (
        "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,"
        "start_date,end_date\n"
        "WK,1,1,1,1,1,0,0,20250101,20251231\n"
    ),
    "calendar_dates.txt": (
        "service_id,date,exception_type\nWK,20250704,2\nWK,20250706,1\n"
    ),
}


def _write_zip(path: Path, files: dict[str, str]) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return path


def test_load_dataset_parses_all_files(tmp_path: Path) -> None:
    zip_path = _write_zip(tmp_path / "gtfs.zip", FILES)

    ds = GtfsZipLoader(zip_path=zip_path).load_dataset()

    # Rail route and the route without id/name are dropped.
    assert [r.route_id for r in ds.routes] == ["6635"]
    assert {s.stop_id for s in ds.stops} == {"S_A", "S_B", "S_FAR"}
    assert {t.trip_id: t.direction_id for t in ds.trips} == {"T1": 0, "T2": 1}
    assert ds.trips[1].shape_id is None

    # Untimed row skipped, departure-before-arrival row rejected.
    assert [(st.trip_id, st.stop_sequence) for st in ds.stop_times] == [
        ("T1", 1),
        ("T2", 1),
    ]
    assert ds.stop_times[0].departure_time == time(8, 0, 30)

    assert len(ds.shape_points) == 2
    assert ds.direction_names[0].direction_name == "To UBC"
    assert ds.calendars[0].start_date == date(2025, 1, 1)
    assert [cd.exception_type for cd in ds.calendar_dates] == [
        ExceptionType.REMOVED,
        ExceptionType.ADDED,
    ]


def test_departure_across_midnight_is_clamped_to_arrival() -> None:
    st = parse_stop_time(
        {
            "trip_id": "T2",
            "arrival_time": "23:59:50",
            "departure_time": "24:00:10",
            "stop_id": "S_B",
            "stop_sequence": "1",
        }
    )

    assert st is not None
    assert st.arrival_time == time(23, 59, 50)
    assert st.departure_time == st.arrival_time


def test_agency_bounds_drop_far_stops(tmp_path: Path) -> None:
    zip_path = _write_zip(tmp_path / "gtfs.zip", FILES)
    bounds = GeoBounds(min_lat=49.0, min_lon=-123.5, max_lat=49.5, max_lon=-122.5)

    ds = GtfsZipLoader(zip_path=zip_path, bounds=bounds).load_dataset()

    assert {s.stop_id for s in ds.stops} == {"S_A", "S_B"}


def test_optional_files_may_be_absent(tmp_path: Path) -> None:
    required = {k: FILES[k] for k in ("routes.txt", "stops.txt", "trips.txt")}
    required["stop_times.txt"] = FILES["stop_times.txt"]
    zip_path = _write_zip(tmp_path / "gtfs.zip", required)

    ds = GtfsZipLoader(zip_path=zip_path).load_dataset()

    assert ds.shape_points == ()
    assert ds.calendars == ()


def test_missing_required_file_fails(tmp_path: Path) -> None:
    files = dict(FILES)
    del files["trips.txt"]
    zip_path = _write_zip(tmp_path / "gtfs.zip", files)

    with pytest.raises(LoadError) as err:
        GtfsZipLoader(zip_path=zip_path).load_dataset()

    assert err.value.file == "trips.txt"


def test_required_file_without_usable_rows_fails(tmp_path: Path) -> None:
    files = dict(FILES)
    files["routes.txt"] = "route_id,route_short_name,route_long_name,route_type\n"
    zip_path = _write_zip(tmp_path / "gtfs.zip", files)

    with pytest.raises(LoadError):
        GtfsZipLoader(zip_path=zip_path).load_dataset()


def test_missing_archive_fails(tmp_path: Path) -> None:
    with pytest.raises(LoadError):
        GtfsZipLoader(zip_path=tmp_path / "nope.zip").load_dataset()


def test_not_a_zip_fails(tmp_path: Path) -> None:
    path = tmp_path / "gtfs.zip"
    path.write_text("not a zip")

    with pytest.raises(LoadError):
        GtfsZipLoader(zip_path=path).load_dataset()
