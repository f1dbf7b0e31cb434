"""
Tests for PlantLifecycleService.

Covers:
- Placement into grid zones and trays, single and bulk
- Moves, including the same-slot no-op
- Tagging and re-tagging against the tag pool
- Phase changes, harvest, destroy and notes
- Batch counts and event history kept in step with every command
"""

from __future__ import annotations

import pytest

from app.domain.exceptions import (
    BatchNotFound,
    ConflictError,
    InvalidCoordinate,
    NotFoundError,
    PlantNotActive,
    SlotFull,
    StrainInactive,
    TagUnavailable,
    ValidationError,
)

ACTOR = "tester"


@pytest.fixture()
def room(seed):
    return seed.create_grid_room(rows=2, cols=2, capacity=1)


@pytest.fixture()
def open_harvest(harvest_repo):
    harvest_id = harvest_repo.create_harvest(name="Harvest 1", created_by=ACTOR)
    return harvest_repo.get(harvest_id)


class TestPlace:
    def test_place_into_zone(self, lifecycle_service, seed, room):
        result = lifecycle_service.place_plant(
            strain_id=seed.strain_id(),
            room_id=room["room_id"],
            floor=1,
            row=0,
            col=1,
            custom_label="Mother #1",
            actor=ACTOR,
        )
        plant = result.plant
        assert plant["plant_uid"].startswith("PL-")
        assert plant["status"] == "active"
        assert plant["growth_phase"] == "immature"
        assert (plant["room_id"], plant["floor"], plant["grid_row"], plant["grid_col"]) == (room["room_id"], 1, 0, 1)
        assert plant["custom_label"] == "Mother #1"
        assert plant["placed_by"] == ACTOR

        assert result.event["event_type"] == "placed"
        assert result.event["metadata"]["to"]["row"] == 0
        assert result.event["metadata"]["to"]["col"] == 1
        assert result.zones[0]["occupancy"] == 1
        assert result.zones[0]["available"] == 0

    def test_second_plant_in_full_zone(self, seed, lifecycle_service, room):
        seed.place(room, row=0, col=0)
        with pytest.raises(SlotFull) as exc_info:
            seed.place(room, row=0, col=0)
        assert exc_info.value.code == "slot_full"
        plants, total = lifecycle_service.list_plants({"room_id": room["room_id"]})
        assert total == 1

    def test_place_with_tag(self, seed, tag_service, room):
        seed.import_tags("T1")
        plant = seed.place(room, metrc_tag="t1")
        assert plant["metrc_tag"] == "T1"
        assert tag_service.tag_stats()["assigned"] == 1

    def test_place_with_unavailable_tag_rolls_back(self, seed, lifecycle_service, room):
        with pytest.raises(TagUnavailable):
            seed.place(room, metrc_tag="MISSING1")
        assert lifecycle_service.list_plants()[1] == 0

    def test_place_outside_grid(self, seed, room):
        with pytest.raises(InvalidCoordinate):
            seed.place(room, row=2, col=0)

    def test_place_unknown_room(self, seed):
        with pytest.raises(NotFoundError):
            seed.place({"room_id": 999})

    def test_place_inactive_strain(self, seed, facility_service, room):
        strain_id = seed.strain_id("Retired Kush")
        facility_service.update_strain(strain_id, actor=ACTOR, active=False)
        with pytest.raises(StrainInactive):
            seed.place(room, strain_id=strain_id)

    def test_place_into_tray(self, lifecycle_service, seed):
        rack_room = seed.create_rack_room(tray_capacity=2)
        tray_id = seed.first_tray_id(rack_room)
        result = lifecycle_service.place_plant(strain_id=seed.strain_id(), tray_id=tray_id, actor=ACTOR)
        assert result.plant["tray_id"] == tray_id
        assert result.plant["room_id"] == rack_room["room_id"]
        assert result.event["metadata"]["to"]["tray_name"] == "F1-R1-T1"

    def test_grid_coordinates_rejected_for_rack_room(self, seed):
        rack_room = seed.create_rack_room()
        with pytest.raises(InvalidCoordinate):
            seed.place(rack_room, row=0, col=0)


class TestBatchMembership:
    def test_batch_counts_follow_plants(self, seed, lifecycle_service, batch_service, plant_repo, open_harvest):
        batch = seed.create_batch(initial_count=10)
        room = seed.create_grid_room("Flower Room", rows=1, cols=1, capacity=10, room_type="flower")
        result = lifecycle_service.place_plants(
            count=10,
            strain_id=seed.strain_id(),
            room_id=room["room_id"],
            floor=1,
            row=0,
            col=0,
            plant_batch_id=batch["plant_batch_id"],
            actor=ACTOR,
        )
        assert result.batch["active_plant_count"] == 10
        ids = [p["plant_id"] for p in result.plants]

        for plant_id in ids[:3]:
            lifecycle_service.harvest_plant(plant_id, open_harvest["harvest_id"], actor=ACTOR)
        for plant_id in ids[3:5]:
            lifecycle_service.destroy_plant(plant_id, "hermaphrodite", actor=ACTOR)

        refreshed = batch_service.get_batch(batch["plant_batch_id"])
        assert refreshed["active_plant_count"] == 5
        assert plant_repo.count_live_batch_members(batch["plant_batch_id"]) == 5
        assert refreshed["initial_count"] == 10

    def test_strain_mismatch(self, seed, room):
        batch = seed.create_batch(seed.strain_id("Other"))
        with pytest.raises(ValidationError):
            seed.place(room, plant_batch_id=batch["plant_batch_id"])

    def test_unknown_batch(self, seed, room):
        with pytest.raises(BatchNotFound):
            seed.place(room, plant_batch_id=404)


class TestBulkPlace:
    def test_all_or_nothing(self, lifecycle_service, seed):
        room = seed.create_grid_room(rows=1, cols=1, capacity=3)
        seed.place(room)
        with pytest.raises(SlotFull):
            lifecycle_service.place_plants(
                count=3, strain_id=seed.strain_id(), room_id=room["room_id"], floor=1, row=0, col=0, actor=ACTOR
            )
        assert lifecycle_service.list_plants()[1] == 1

    def test_one_event_per_plant(self, lifecycle_service, seed):
        room = seed.create_grid_room(rows=1, cols=1, capacity=3)
        result = lifecycle_service.place_plants(
            count=3,
            strain_id=seed.strain_id(),
            room_id=room["room_id"],
            floor=1,
            row=0,
            col=0,
            custom_labels=["A", "B"],
            actor=ACTOR,
        )
        assert len(result.plants) == 3
        assert [e["trackable_id"] for e in result.events] == [p["plant_id"] for p in result.plants]
        assert [p["custom_label"] for p in result.plants] == ["A", "B", None]
        assert "plants" in result.to_dict()

    @pytest.mark.parametrize("count", [0, 501, True])
    def test_count_bounds(self, lifecycle_service, seed, room, count):
        with pytest.raises(ValidationError):
            lifecycle_service.place_plants(
                count=count, strain_id=seed.strain_id(), room_id=room["room_id"], floor=1, row=0, col=0, actor=ACTOR
            )

    def test_tag_only_for_single_plant(self, lifecycle_service, seed, room):
        with pytest.raises(ValidationError):
            lifecycle_service.place_plants(
                count=2,
                strain_id=seed.strain_id(),
                room_id=room["room_id"],
                floor=1,
                row=0,
                col=0,
                metrc_tag="T1",
                actor=ACTOR,
            )


class TestMove:
    def test_move_to_free_zone(self, lifecycle_service, seed, room):
        plant = seed.place(room, row=0, col=0)
        result = lifecycle_service.move_plant(plant["plant_id"], room_id=room["room_id"], floor=1, row=1, col=1, actor=ACTOR)
        assert (result.plant["grid_row"], result.plant["grid_col"]) == (1, 1)
        assert result.event["metadata"]["from"]["row"] == 0
        assert result.event["metadata"]["to"]["row"] == 1
        source, target = result.zones
        assert source["occupancy"] == 0
        assert target["occupancy"] == 1

    def test_move_into_full_zone(self, lifecycle_service, seed, room):
        plant = seed.place(room, row=0, col=0)
        seed.place(room, row=1, col=1)
        with pytest.raises(SlotFull):
            lifecycle_service.move_plant(plant["plant_id"], room_id=room["room_id"], floor=1, row=1, col=1, actor=ACTOR)
        assert lifecycle_service.get_plant(plant["plant_id"])["grid_row"] == 0

    def test_same_slot_is_a_no_op(self, lifecycle_service, seed, room):
        plant = seed.place(room, row=0, col=0)
        result = lifecycle_service.move_plant(plant["plant_id"], room_id=room["room_id"], floor=1, row=0, col=0, actor=ACTOR)
        assert result.changed is False
        assert result.event is None
        assert len(lifecycle_service.history(plant["plant_id"])) == 1

    def test_move_between_room_kinds(self, lifecycle_service, seed, room):
        rack_room = seed.create_rack_room()
        tray_id = seed.first_tray_id(rack_room)
        plant = seed.place(room)
        result = lifecycle_service.move_plant(plant["plant_id"], tray_id=tray_id, actor=ACTOR)
        assert result.plant["tray_id"] == tray_id
        assert result.plant["grid_row"] is None

    def test_move_terminated_plant(self, lifecycle_service, seed, room):
        plant = seed.place(room)
        lifecycle_service.destroy_plant(plant["plant_id"], "pests", actor=ACTOR)
        with pytest.raises(PlantNotActive):
            lifecycle_service.move_plant(plant["plant_id"], room_id=room["room_id"], floor=1, row=1, col=1, actor=ACTOR)


class TestTag:
    def test_retag_returns_previous_to_pool(self, lifecycle_service, tag_service, seed, room):
        seed.import_tags("T1", "T2")
        plant = seed.place(room, metrc_tag="T1")
        result = lifecycle_service.tag_plant(plant["plant_id"], "T2", actor=ACTOR)
        assert result.plant["metrc_tag"] == "T2"
        assert result.event["metadata"] == {"metrc_tag": "T2", "previous_tag": "T1"}
        assigned, previous = result.tags
        assert (assigned["tag"], assigned["status"]) == ("T2", "assigned")
        assert (previous["tag"], previous["status"]) == ("T1", "available")
        assert tag_service.require_assignable("T1")["tag"] == "T1"

    def test_tag_held_by_another_plant(self, lifecycle_service, seed, room):
        seed.import_tags("T1")
        seed.place(room, row=0, col=0, metrc_tag="T1")
        other = seed.place(room, row=0, col=1)
        with pytest.raises(TagUnavailable):
            lifecycle_service.tag_plant(other["plant_id"], "T1", actor=ACTOR)

    def test_lookup_by_tag(self, lifecycle_service, seed, room):
        seed.import_tags("T1")
        plant = seed.place(room, metrc_tag="T1")
        assert lifecycle_service.lookup_plant("T1")["plant_id"] == plant["plant_id"]
        assert lifecycle_service.lookup_plant(plant["plant_uid"])["plant_id"] == plant["plant_id"]

    def test_lookup_miss(self, lifecycle_service):
        with pytest.raises(NotFoundError):
            lifecycle_service.lookup_plant("nothing")


class TestPhase:
    def test_forward_and_backward(self, lifecycle_service, seed, room):
        plant = seed.place(room)
        forward = lifecycle_service.change_phase(plant["plant_id"], "flowering", actor=ACTOR)
        assert forward.plant["growth_phase"] == "flowering"
        assert forward.event["metadata"] == {"from": "immature", "to": "flowering", "direction": "forward"}
        backward = lifecycle_service.change_phase(plant["plant_id"], "vegetative", actor=ACTOR)
        assert backward.event["metadata"]["direction"] == "backward"

    def test_same_phase_rejected(self, lifecycle_service, seed, room):
        plant = seed.place(room)
        with pytest.raises(ValidationError):
            lifecycle_service.change_phase(plant["plant_id"], "immature", actor=ACTOR)


class TestTerminal:
    def test_destroy_releases_slot_and_tag(self, lifecycle_service, tag_service, seed, room):
        seed.import_tags("T1")
        plant = seed.place(room, metrc_tag="T1")
        result = lifecycle_service.destroy_plant(plant["plant_id"], "  mould ", actor=ACTOR)
        assert result.plant["status"] == "destroyed"
        assert result.plant["destroy_reason"] == "mould"
        assert result.plant["room_id"] is None
        assert result.event["metadata"]["released_tag"] == "T1"
        assert result.event["metadata"]["from"]["row"] == 0
        assert result.zones[0]["occupancy"] == 0
        assert tag_service.tag_stats()["available"] == 1
        seed.place(room)

    def test_second_destroy_fails(self, lifecycle_service, seed, room):
        plant = seed.place(room)
        lifecycle_service.destroy_plant(plant["plant_id"], "pests", actor=ACTOR)
        with pytest.raises(PlantNotActive):
            lifecycle_service.destroy_plant(plant["plant_id"], "pests", actor=ACTOR)

    def test_destroy_requires_reason(self, lifecycle_service, seed, room):
        plant = seed.place(room)
        with pytest.raises(ValidationError):
            lifecycle_service.destroy_plant(plant["plant_id"], "   ", actor=ACTOR)

    def test_harvest_links_plant(self, lifecycle_service, seed, room, open_harvest):
        plant = seed.place(room)
        result = lifecycle_service.harvest_plant(plant["plant_id"], open_harvest["harvest_id"], actor=ACTOR)
        assert result.plant["status"] == "harvested"
        assert result.plant["harvest_id"] == open_harvest["harvest_id"]
        assert result.harvest["plant_count"] == 1
        assert result.event["metadata"]["harvest_name"] == "Harvest 1"

    def test_harvest_unknown(self, lifecycle_service, seed, room):
        plant = seed.place(room)
        with pytest.raises(NotFoundError):
            lifecycle_service.harvest_plant(plant["plant_id"], 404, actor=ACTOR)

    def test_harvest_closed(self, lifecycle_service, harvest_repo, seed, room, open_harvest):
        harvest_repo.update_harvest(open_harvest["harvest_id"], status="closed")
        plant = seed.place(room)
        with pytest.raises(ConflictError):
            lifecycle_service.harvest_plant(plant["plant_id"], open_harvest["harvest_id"], actor=ACTOR)
        assert lifecycle_service.get_plant(plant["plant_id"])["status"] == "active"


class TestHistory:
    def test_events_in_order(self, lifecycle_service, seed, room):
        seed.import_tags("T1")
        plant = seed.place(room)
        plant_id = plant["plant_id"]
        lifecycle_service.tag_plant(plant_id, "T1", actor=ACTOR)
        lifecycle_service.move_plant(plant_id, room_id=room["room_id"], floor=1, row=1, col=0, actor=ACTOR)
        lifecycle_service.change_phase(plant_id, "vegetative", actor=ACTOR)
        lifecycle_service.destroy_plant(plant_id, "culled", actor=ACTOR)
        lifecycle_service.add_note(plant_id, "Disposed per SOP", actor="auditor")

        history = lifecycle_service.history(plant_id)
        assert [e["event_type"] for e in reversed(history)] == [
            "placed",
            "tagged",
            "moved",
            "phase_changed",
            "destroyed",
            "noted",
        ]
        assert history[0]["note"] == "Disposed per SOP"
        assert history[0]["actor"] == "auditor"

    def test_note_requires_text(self, lifecycle_service, seed, room):
        plant = seed.place(room)
        with pytest.raises(ValidationError):
            lifecycle_service.add_note(plant["plant_id"], "", actor=ACTOR)


class TestListPlants:
    def test_filters(self, lifecycle_service, seed, room):
        first = seed.place(room, row=0, col=0)
        seed.place(room, row=0, col=1)
        lifecycle_service.destroy_plant(first["plant_id"], "pests", actor=ACTOR)
        active, total = lifecycle_service.list_plants({"status": "active"})
        assert total == 1
        assert active[0]["plant_id"] != first["plant_id"]

    def test_unknown_status(self, lifecycle_service):
        with pytest.raises(ValidationError):
            lifecycle_service.list_plants({"status": "sold"})


class TestScenarios:
    def test_second_plant_fits_after_first_moves(self, lifecycle_service, seed, room):
        p1 = seed.place(room, row=0, col=0)
        with pytest.raises(SlotFull):
            seed.place(room, row=0, col=0)
        lifecycle_service.move_plant(p1["plant_id"], room_id=room["room_id"], floor=1, row=0, col=1, actor=ACTOR)
        p2 = seed.place(room, row=0, col=0)
        assert (p2["grid_row"], p2["grid_col"]) == (0, 0)

    def test_tag_moves_to_second_plant_after_retag(self, lifecycle_service, seed, room):
        seed.import_tags("T1", "T2")
        p1 = seed.place(room, row=0, col=0)
        p2 = seed.place(room, row=0, col=1)
        lifecycle_service.tag_plant(p1["plant_id"], "T1", actor=ACTOR)
        with pytest.raises(TagUnavailable):
            lifecycle_service.tag_plant(p2["plant_id"], "T1", actor=ACTOR)
        lifecycle_service.tag_plant(p1["plant_id"], "T2", actor=ACTOR)
        assert lifecycle_service.tag_plant(p2["plant_id"], "T1", actor=ACTOR).plant["metrc_tag"] == "T1"

    def test_batch_of_ten_loses_one(self, lifecycle_service, seed):
        batch = seed.create_batch(initial_count=10)
        room = seed.create_grid_room("Flower Room", rows=2, cols=5, capacity=1, room_type="flower")
        plants = [
            seed.place(room, row=i // 5, col=i % 5, plant_batch_id=batch["plant_batch_id"]) for i in range(10)
        ]
        result = lifecycle_service.destroy_plant(plants[0]["plant_id"], "hermaphrodite", actor=ACTOR)
        assert result.batch["active_plant_count"] == 9
