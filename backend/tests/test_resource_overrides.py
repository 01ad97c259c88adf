from campday.services.resource_overrides import (
    ResourceOverrides,
    ResourceState,
    apply_resource_overrides,
    build_rainy_day_resource_overrides,
)
from tests.fakes import FakeCampStore

NOON_ONLY = [{"type": "available", "startTime": "11:00am", "endTime": "1:00pm"}]


def _registry():
    store = FakeCampStore()
    store.add_resource(ResourceState(name="Gym", capacity=1, rainy_day_capacity=3))
    store.add_resource(
        ResourceState(name="Rec Hall", capacity=2, time_rules=list(NOON_ONLY), rainy_day_available_all_day=True)
    )
    store.add_resource(ResourceState(name="Ball Field", capacity=2))
    return store


def test_default_overrides_come_from_field_settings():
    overrides = build_rainy_day_resource_overrides(_registry().list_resources())
    assert overrides.capacity_overrides == {"Gym": 3}
    assert overrides.availability_overrides == ["Rec Hall"]


def test_apply_then_clear_restores_prior_values():
    store = _registry()
    overrides = build_rainy_day_resource_overrides(store.list_resources())

    assert apply_resource_overrides(store, overrides, rain_starting=True)
    assert store.resources["Gym"].capacity == 3
    assert store.resources["Rec Hall"].time_rules == []
    assert store.resources["Rec Hall"].original_time_rules == NOON_ONLY
    assert not store.resources["Ball Field"].original_saved

    assert apply_resource_overrides(store, None, rain_starting=False)
    assert store.resources["Gym"].capacity == 1
    assert store.resources["Rec Hall"].time_rules == NOON_ONLY
    assert not store.resources["Gym"].original_saved
    assert store.resources["Gym"].original_capacity is None


def test_second_flip_keeps_the_first_snapshot():
    store = _registry()
    apply_resource_overrides(store, ResourceOverrides(capacity_overrides={"Gym": 3}), rain_starting=True)
    apply_resource_overrides(store, ResourceOverrides(capacity_overrides={"Gym": 5}), rain_starting=True)

    assert store.resources["Gym"].capacity == 5
    assert store.resources["Gym"].original_capacity == 1

    apply_resource_overrides(store, None, rain_starting=False)
    assert store.resources["Gym"].capacity == 1


def test_empty_overrides_change_nothing():
    store = _registry()
    assert not apply_resource_overrides(store, ResourceOverrides(), rain_starting=True)
    assert not apply_resource_overrides(store, None, rain_starting=False)
    assert store.resources["Gym"].capacity == 1


def test_overrides_from_dict():
    overrides = ResourceOverrides.from_dict({"capacity_overrides": {"Gym": "4"}, "availability_overrides": ["Rec Hall"]})
    assert overrides.capacity_overrides == {"Gym": 4}
    assert overrides.to_dict()["availability_overrides"] == ["Rec Hall"]
    assert ResourceOverrides.from_dict(None).is_empty
