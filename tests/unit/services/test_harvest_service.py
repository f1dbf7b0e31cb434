"""
Tests for HarvestService.

Covers:
- Opening a harvest from live plants (all or nothing)
- Adding plants while the harvest is active
- Drying, packaging and closing transitions
- Drying room validation and mixed-strain membership
"""

from __future__ import annotations

import pytest

from app.domain.exceptions import ConflictError, NotFoundError, PlantNotActive, ValidationError

ACTOR = "tester"


@pytest.fixture()
def flower_room(seed):
    return seed.create_grid_room("Flower Room", rows=2, cols=2, capacity=4, room_type="flower")


@pytest.fixture()
def dry_room(seed):
    return seed.create_grid_room("Dry Room", rows=1, cols=1, capacity=1, room_type="dry")


@pytest.fixture()
def plants(seed, flower_room):
    return [seed.place(flower_room, row=0, col=col) for col in (0, 0, 1)]


def _open(harvest_service, plant_ids, **kwargs):
    return harvest_service.create_harvest(name="Blue Dream H1", plant_ids=plant_ids, actor=ACTOR, **kwargs)


class TestCreateHarvest:
    def test_cuts_every_plant(self, harvest_service, lifecycle_service, seed, plants):
        ids = [p["plant_id"] for p in plants]
        created = _open(harvest_service, ids, wet_weight_grams=1250, harvest_date="2026-10-01T08:00:00Z")
        harvest = created["harvest"]

        assert harvest["status"] == "active"
        assert harvest["plant_count"] == 3
        assert harvest["plant_ids"] == ids
        assert harvest["strain_id"] == seed.strain_id()
        assert harvest["mixed_strains"] is False
        assert harvest["wet_weight_grams"] == 1250.0
        assert harvest["harvest_date"].startswith("2026-10-01")

        assert created["events"][0]["trackable_type"] == "harvest"
        assert created["events"][0]["metadata"]["plant_ids"] == ids
        assert [e["event_type"] for e in created["events"][1:]] == ["harvested"] * 3
        assert all(lifecycle_service.get_plant(i)["status"] == "harvested" for i in ids)

    def test_mixed_strains_have_no_common_strain(self, harvest_service, seed, flower_room):
        first = seed.place(flower_room, row=1, col=0, strain_id=seed.strain_id("A"))
        second = seed.place(flower_room, row=1, col=0, strain_id=seed.strain_id("B"))
        harvest = _open(harvest_service, [first["plant_id"], second["plant_id"]])["harvest"]
        assert harvest["strain_id"] is None
        assert harvest["mixed_strains"] is True

    def test_inactive_plant_rolls_back(self, harvest_service, lifecycle_service, plants):
        lifecycle_service.destroy_plant(plants[2]["plant_id"], "pests", actor=ACTOR)
        with pytest.raises(PlantNotActive):
            _open(harvest_service, [p["plant_id"] for p in plants])
        assert harvest_service.list_harvests() == []
        assert lifecycle_service.get_plant(plants[0]["plant_id"])["status"] == "active"

    @pytest.mark.parametrize("plant_ids", [[], [1, 1], ["1"], None])
    def test_plant_id_validation(self, harvest_service, plant_ids):
        with pytest.raises(ValidationError):
            _open(harvest_service, plant_ids)

    def test_rejects_non_drying_room(self, harvest_service, plants, flower_room):
        with pytest.raises(ValidationError, match="not a dry or cure room"):
            _open(harvest_service, [plants[0]["plant_id"]], drying_room_id=flower_room["room_id"])

    def test_rejects_bad_date(self, harvest_service, plants):
        with pytest.raises(ValidationError):
            _open(harvest_service, [plants[0]["plant_id"]], harvest_date="next tuesday")

    def test_rejects_negative_weight(self, harvest_service, plants):
        with pytest.raises(ValidationError):
            _open(harvest_service, [plants[0]["plant_id"]], wet_weight_grams=-1)


class TestAddPlants:
    def test_add_while_active(self, harvest_service, plants):
        harvest = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]
        added = harvest_service.add_plants(harvest["harvest_id"], [plants[1]["plant_id"]], actor=ACTOR)
        assert added["harvest"]["plant_count"] == 2
        assert added["events"][0]["event_type"] == "harvested"

    def test_add_after_drying_started(self, harvest_service, plants):
        harvest = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]
        harvest_service.start_drying(harvest["harvest_id"], actor=ACTOR)
        with pytest.raises(ConflictError):
            harvest_service.add_plants(harvest["harvest_id"], [plants[1]["plant_id"]], actor=ACTOR)


def _audited_actions(mock_audit_logger):
    return [c.args[1] for c in mock_audit_logger.log_event.call_args_list]


class TestHarvestAudit:
    def test_rolled_back_harvest_writes_no_audit_lines(
        self, harvest_service, lifecycle_service, plants, mock_audit_logger
    ):
        lifecycle_service.destroy_plant(plants[2]["plant_id"], "pests", actor=ACTOR)
        mock_audit_logger.reset_mock()

        with pytest.raises(PlantNotActive):
            _open(harvest_service, [p["plant_id"] for p in plants])

        assert lifecycle_service.get_plant(plants[0]["plant_id"])["status"] == "active"
        assert _audited_actions(mock_audit_logger) == []

    def test_rolled_back_add_plants_writes_no_audit_lines(
        self, harvest_service, lifecycle_service, plants, mock_audit_logger
    ):
        harvest = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]
        lifecycle_service.destroy_plant(plants[2]["plant_id"], "pests", actor=ACTOR)
        mock_audit_logger.reset_mock()

        with pytest.raises(PlantNotActive):
            harvest_service.add_plants(
                harvest["harvest_id"], [plants[1]["plant_id"], plants[2]["plant_id"]], actor=ACTOR
            )

        assert lifecycle_service.get_plant(plants[1]["plant_id"])["status"] == "active"
        assert _audited_actions(mock_audit_logger) == []

    def test_committed_harvest_audits_each_plant(self, harvest_service, plants, mock_audit_logger):
        mock_audit_logger.reset_mock()
        ids = [p["plant_id"] for p in plants]
        harvest_id = _open(harvest_service, ids)["harvest"]["harvest_id"]

        assert _audited_actions(mock_audit_logger) == ["plant.harvest"] * 3 + ["harvest.create"]
        resources = [c.args[2] for c in mock_audit_logger.log_event.call_args_list[:3]]
        assert resources == [f"plant:{i}" for i in ids]
        assert mock_audit_logger.log_event.call_args_list[0].kwargs == {"harvest_id": harvest_id}


class TestTransitions:
    def test_full_flow(self, harvest_service, plants, dry_room):
        harvest_id = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]["harvest_id"]

        drying = harvest_service.start_drying(harvest_id, drying_room_id=dry_room["room_id"], actor=ACTOR)
        assert drying["harvest"]["status"] == "drying"
        assert drying["harvest"]["drying_room_name"] == "Dry Room"
        assert drying["event"]["metadata"]["from"] == "active"

        dried = harvest_service.finish_drying(harvest_id, dry_weight_grams=310.5, actor=ACTOR)
        assert dried["harvest"]["dry_weight_grams"] == 310.5
        assert dried["event"]["metadata"]["dry_weight_grams"] == 310.5

        assert harvest_service.package(harvest_id, actor=ACTOR)["harvest"]["status"] == "packaged"
        closed = harvest_service.close(harvest_id, actor=ACTOR)["harvest"]
        assert closed["status"] == "closed"
        assert closed["closed_at"]

        history = harvest_service.history(harvest_id)
        assert [e["event_type"] for e in history] == ["status_changed"] * 4 + ["created"]

    def test_close_from_active(self, harvest_service, plants):
        harvest_id = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]["harvest_id"]
        assert harvest_service.close(harvest_id, actor=ACTOR)["event"]["metadata"]["to"] == "closed"

    def test_skipping_drying_is_rejected(self, harvest_service, plants):
        harvest_id = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]["harvest_id"]
        with pytest.raises(ConflictError):
            harvest_service.package(harvest_id, actor=ACTOR)

    def test_closed_is_terminal(self, harvest_service, plants):
        harvest_id = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]["harvest_id"]
        harvest_service.close(harvest_id, actor=ACTOR)
        with pytest.raises(ConflictError):
            harvest_service.close(harvest_id, actor=ACTOR)

    def test_unknown_harvest(self, harvest_service):
        with pytest.raises(NotFoundError):
            harvest_service.start_drying(404, actor=ACTOR)


class TestListHarvests:
    def test_filter_by_status(self, harvest_service, plants):
        first = _open(harvest_service, [plants[0]["plant_id"]])["harvest"]
        _open(harvest_service, [plants[1]["plant_id"]])
        harvest_service.start_drying(first["harvest_id"], actor=ACTOR)
        assert [h["harvest_id"] for h in harvest_service.list_harvests("drying")] == [first["harvest_id"]]
        assert len(harvest_service.list_harvests()) == 2

    def test_unknown_status(self, harvest_service):
        with pytest.raises(ValidationError):
            harvest_service.list_harvests("rotten")
