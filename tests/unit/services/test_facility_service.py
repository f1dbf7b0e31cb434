"""
Tests for FacilityService.

Covers:
- Default facility bootstrap and grow summary
- Strain management
- Grid and rack room creation
- Floor views, zone/tray lookup and slot resolution
- Zone capacity overrides
"""

from __future__ import annotations

import pytest

from app.domain.exceptions import (
    ConflictError,
    InvalidCoordinate,
    NotFoundError,
    StrainInactive,
    ValidationError,
)
from app.domain.layout import GridLayout
from app.enums.grow import TrackableType

ACTOR = "tester"


class TestFacility:
    def test_default_facility_is_created_once(self, facility_service):
        again = facility_service.ensure_default_facility("Other Name")
        assert again["name"] == "Test Facility"
        assert again["license_number"] == "LIC-0001"

    def test_grow_summary_counts_live_plants_by_phase(self, facility_service, seed):
        room = seed.create_grid_room(rows=1, cols=3)
        seed.place(room, col=0)
        seed.place(room, col=1)
        facility = facility_service.get_facility()
        assert facility["grow_summary"] == {"immature": 2, "vegetative": 0, "flowering": 0, "total": 2}
        assert facility["rooms"][0]["occupancy"] == 2
        assert facility["rooms"][0]["capacity"] == 3

    def test_update_facility_records_event(self, facility_service, event_log):
        facility = facility_service.update_facility(actor=ACTOR, name="North Campus")
        assert facility["name"] == "North Campus"
        events = event_log.list_for(TrackableType.FACILITY, facility["facility_id"])
        assert events[0]["event_type"] == "updated"
        assert events[0]["metadata"]["changes"] == {"name": "North Campus"}


class TestStrains:
    def test_create_and_list(self, facility_service):
        facility_service.create_strain("OG Kush", "indica", actor=ACTOR)
        facility_service.create_strain("Blue Dream", None, actor=ACTOR)
        names = [s["name"] for s in facility_service.list_strains()]
        assert names == ["Blue Dream", "OG Kush"]

    def test_duplicate_name_conflicts_case_insensitively(self, facility_service):
        facility_service.create_strain("OG Kush", actor=ACTOR)
        with pytest.raises(ConflictError):
            facility_service.create_strain("og kush", actor=ACTOR)

    def test_unknown_category_rejected(self, facility_service):
        with pytest.raises(ValidationError):
            facility_service.create_strain("X", "ruderalis", actor=ACTOR)

    def test_inactive_strain_cannot_be_required(self, facility_service):
        strain = facility_service.create_strain("Retired", actor=ACTOR)
        facility_service.update_strain(strain["strain_id"], actor=ACTOR, active=False)
        assert facility_service.list_strains(active_only=True) == []
        with pytest.raises(StrainInactive):
            facility_service.require_active_strain(strain["strain_id"])

    def test_rename_to_existing_name_conflicts(self, facility_service):
        facility_service.create_strain("A", actor=ACTOR)
        b = facility_service.create_strain("B", actor=ACTOR)
        with pytest.raises(ConflictError):
            facility_service.update_strain(b["strain_id"], actor=ACTOR, name="a")


class TestRooms:
    def test_create_grid_room(self, seed, event_log):
        room = seed.create_grid_room("Veg A", rows=2, cols=3, capacity=4, floors=2)
        assert room["layout"] == {"kind": "grid", "rows": 2, "cols": 3, "default_zone_capacity": 4}
        assert room["capacity"] == 2 * 3 * 4 * 2
        assert room["occupancy"] == 0
        history = event_log.list_for(TrackableType.ROOM, room["room_id"])
        assert [e["event_type"] for e in history] == ["created"]

    def test_create_rack_room_generates_racks_and_trays(self, seed, facility_service):
        room = seed.create_rack_room("Clones", racks=2, trays=3, tray_capacity=5, floors=2)
        assert room["capacity"] == 2 * 2 * 3 * 5
        view = facility_service.floor_view(room["room_id"], 2)
        assert [rack["name"] for rack in view["racks"]] == ["F2-R1", "F2-R2"]
        trays = view["racks"][0]["trays"]
        assert [t["tray_name"] for t in trays] == ["F2-R1-T1", "F2-R1-T2", "F2-R1-T3"]
        assert view["racks"][0]["total_capacity"] == 15

    def test_duplicate_room_name_conflicts(self, seed):
        seed.create_grid_room("Veg A")
        with pytest.raises(ConflictError):
            seed.create_grid_room("veg a")

    def test_floor_count_bounds(self, facility_service):
        with pytest.raises(ValidationError):
            facility_service.create_room(name="Tall", layout=GridLayout(1, 1, 1), floor_count=21, actor=ACTOR)

    def test_update_room(self, seed, facility_service):
        room = seed.create_grid_room("Veg A")
        updated = facility_service.update_room(room["room_id"], actor=ACTOR, name="Veg B", room_type="flower")
        assert updated["name"] == "Veg B"
        assert updated["room_type"] == "flower"

    def test_unknown_room(self, facility_service):
        with pytest.raises(NotFoundError):
            facility_service.get_room(999)


class TestSlots:
    def test_grid_floor_view_covers_every_zone(self, seed, facility_service):
        room = seed.create_grid_room(rows=2, cols=3)
        plant = seed.place(room, row=1, col=2)
        view = facility_service.floor_view(room["room_id"], 1)
        assert sorted(view["grid"]) == ["0-0", "0-1", "0-2", "1-0", "1-1", "1-2"]
        zone = view["grid"]["1-2"]
        assert zone["occupancy"] == 1
        assert zone["plants"][0]["plant_uid"] == plant["plant_uid"]

    def test_zone_at_rejects_out_of_bounds(self, seed, facility_service):
        room = seed.create_grid_room(rows=2, cols=2)
        with pytest.raises(InvalidCoordinate):
            facility_service.zone_at(room["room_id"], 1, 2, 0)
        with pytest.raises(InvalidCoordinate):
            facility_service.zone_at(room["room_id"], 2, 0, 0)

    def test_zone_at_unknown_room(self, facility_service):
        with pytest.raises(NotFoundError):
            facility_service.zone_at(404, 1, 0, 0)

    def test_zone_at_rack_room_is_invalid(self, seed, facility_service):
        room = seed.create_rack_room()
        with pytest.raises(InvalidCoordinate):
            facility_service.zone_at(room["room_id"], 1, 0, 0)

    def test_tray_at_checks_room(self, seed, facility_service):
        clones = seed.create_rack_room("Clones")
        other = seed.create_rack_room("Mothers")
        tray_id = seed.first_tray_id(clones)
        assert facility_service.tray_at(tray_id, clones["room_id"]).tray_id == tray_id
        with pytest.raises(InvalidCoordinate):
            facility_service.tray_at(tray_id, other["room_id"])
        with pytest.raises(InvalidCoordinate):
            facility_service.tray_at(99999)

    def test_resolve_slot_requires_complete_target(self, seed, facility_service):
        room = seed.create_grid_room()
        with pytest.raises(ValidationError):
            facility_service.resolve_slot(room["room_id"], floor=1, row=0)
        with pytest.raises(InvalidCoordinate):
            facility_service.resolve_slot(room["room_id"], floor=1, row=0, col=0, tray_id=1)

    def test_has_capacity(self, seed, facility_service):
        room = seed.create_grid_room(capacity=1)
        zone = facility_service.zone_at(room["room_id"], 1, 0, 0)
        assert facility_service.has_capacity(zone)
        seed.place(room)
        zone = facility_service.zone_at(room["room_id"], 1, 0, 0)
        assert not facility_service.has_capacity(zone)


class TestZoneCapacity:
    def test_override_applies_to_one_zone(self, seed, facility_service):
        room = seed.create_grid_room(rows=1, cols=2, capacity=1)
        zone = facility_service.set_zone_capacity(room["room_id"], 1, 0, 1, 5, actor=ACTOR)
        assert zone["capacity"] == 5
        assert facility_service.zone_at(room["room_id"], 1, 0, 0).capacity == 1
        assert facility_service.get_room_summary(room["room_id"])["capacity"] == 6

    def test_cannot_drop_below_occupancy(self, seed, facility_service):
        room = seed.create_grid_room(rows=1, cols=1, capacity=3)
        seed.place(room)
        seed.place(room)
        with pytest.raises(ConflictError):
            facility_service.set_zone_capacity(room["room_id"], 1, 0, 0, 1, actor=ACTOR)

    def test_rejects_non_positive(self, seed, facility_service):
        room = seed.create_grid_room()
        with pytest.raises(ValidationError):
            facility_service.set_zone_capacity(room["room_id"], 1, 0, 0, 0, actor=ACTOR)
