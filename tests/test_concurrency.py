"""
Concurrent writers against one file-backed database.

Each worker thread opens its own connection; BEGIN IMMEDIATE serialises the
check-then-write of every command, so racing commands never overfill a zone
or bind one tag twice.
"""

from __future__ import annotations

import threading

import pytest

from app.config import AppConfig
from app.domain.exceptions import SlotFull, TagUnavailable
from app.domain.layout import GridLayout
from app.services.container import ServiceContainer

WORKERS = 8


@pytest.fixture()
def container(tmp_path):
    config = AppConfig(
        database_path=str(tmp_path / "growtrack.db"),
        audit_log_path=str(tmp_path / "audit.log"),
        log_dir=str(tmp_path / "logs"),
        db_busy_timeout_ms=10_000,
    )
    services = ServiceContainer.build(config)
    yield services
    services.shutdown()


def _race(container, work):
    """Run ``work(index)`` on WORKERS threads at once; return (results, errors)."""
    barrier = threading.Barrier(WORKERS)
    results, errors = [], []
    lock = threading.Lock()

    def runner(index):
        try:
            barrier.wait()
            outcome = work(index)
            with lock:
                results.append(outcome)
        except Exception as exc:
            with lock:
                errors.append(exc)
        finally:
            container.database.close_db()

    threads = [threading.Thread(target=runner, args=(i,)) for i in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results, errors


def test_only_one_plant_lands_in_single_capacity_zone(container):
    strain = container.facility_service.create_strain("Blue Dream", actor="setup")
    room = container.facility_service.create_room(
        name="Veg Room", layout=GridLayout(1, 1, 1), floor_count=1, room_type="veg", actor="setup"
    )

    def place(index):
        return container.lifecycle_service.place_plant(
            strain_id=strain["strain_id"],
            room_id=room["room_id"],
            floor=1,
            row=0,
            col=0,
            actor=f"worker-{index}",
        )

    results, errors = _race(container, place)

    assert len(results) == 1
    assert len(errors) == WORKERS - 1
    assert all(isinstance(e, SlotFull) for e in errors)
    zone = container.facility_service.zone_at(room["room_id"], 1, 0, 0)
    assert zone.occupancy == 1


def test_one_tag_is_bound_to_one_plant(container):
    strain = container.facility_service.create_strain("Blue Dream", actor="setup")
    room = container.facility_service.create_room(
        name="Flower Room", layout=GridLayout(1, WORKERS, 1), floor_count=1, room_type="flower", actor="setup"
    )
    container.tag_service.import_tags(["1A4000000000000000000001"], actor="setup")
    plants = [
        container.lifecycle_service.place_plant(
            strain_id=strain["strain_id"], room_id=room["room_id"], floor=1, row=0, col=col, actor="setup"
        ).plant
        for col in range(WORKERS)
    ]

    def tag(index):
        return container.lifecycle_service.tag_plant(
            plants[index]["plant_id"], "1A4000000000000000000001", actor=f"worker-{index}"
        )

    results, errors = _race(container, tag)

    assert len(results) == 1
    assert all(isinstance(e, TagUnavailable) for e in errors)
    assert container.tag_service.tag_stats() == {"available": 0, "assigned": 1, "retired": 0, "total": 1}
    tagged = container.lifecycle_service.list_plants({"status": "active"})[0]
    assert sum(1 for p in tagged if p["metrc_tag"]) == 1


def test_only_one_move_lands_in_single_capacity_zone(container):
    strain = container.facility_service.create_strain("Blue Dream", actor="setup")
    room = container.facility_service.create_room(
        name="Flower Room", layout=GridLayout(2, WORKERS, 1), floor_count=1, room_type="flower", actor="setup"
    )
    plants = [
        container.lifecycle_service.place_plant(
            strain_id=strain["strain_id"], room_id=room["room_id"], floor=1, row=0, col=col, actor="setup"
        ).plant
        for col in range(WORKERS)
    ]

    def move(index):
        return container.lifecycle_service.move_plant(
            plants[index]["plant_id"], room_id=room["room_id"], floor=1, row=1, col=0, actor=f"worker-{index}"
        )

    results, errors = _race(container, move)

    assert len(results) == 1
    assert len(errors) == WORKERS - 1
    assert all(isinstance(e, SlotFull) for e in errors)
    assert container.facility_service.zone_at(room["room_id"], 1, 1, 0).occupancy == 1

    winner = results[0].plant["plant_id"]
    for col, plant in enumerate(plants):
        current = container.lifecycle_service.get_plant(plant["plant_id"])
        expected = (1, 0) if plant["plant_id"] == winner else (0, col)
        assert (current["grid_row"], current["grid_col"]) == expected
        vacated = container.facility_service.zone_at(room["room_id"], 1, 0, col).occupancy
        assert vacated == (0 if plant["plant_id"] == winner else 1)
