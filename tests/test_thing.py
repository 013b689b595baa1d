"""Tests for the Thing entity."""

import pytest

from thing_service.core.addressing import Addressing
from thing_service.core.thing import Thing


class TestAddressing:

    def test_thing_href(self, addressing):
        assert addressing.thing_href("lamp-1") == "/things/lamp-1"

    def test_property_href(self, addressing):
        assert addressing.property_href("lamp-1", "on") == "/things/lamp-1/properties/on"

    def test_custom_prefixes(self):
        addressing = Addressing(things_path="/api/things", properties_path="/props")
        assert addressing.property_href("x", "level") == "/api/things/x/props/level"


class TestThing:

    def test_description_has_hrefs(self, addressing, lamp_description):
        thing = Thing("lamp-1", lamp_description, addressing)
        description = thing.get_description()

        assert description["href"] == "/things/lamp-1"
        assert description["properties"]["on"]["href"] == "/things/lamp-1/properties/on"
        assert description["name"] == "Porch Lamp"
        assert description["type"] == "onOffSwitch"
        assert description["description"] == "Light by the front door"

    def test_defaults_for_missing_fields(self, addressing):
        description = Thing("bare", {}, addressing).get_description()

        assert description == {
            "id": "bare",
            "name": "",
            "type": "",
            "href": "/things/bare",
            "properties": {},
            "actions": {},
            "events": {},
        }

    def test_property_values_must_be_objects(self, addressing):
        with pytest.raises(ValueError):
            Thing("lamp-1", {"properties": {"on": True}}, addressing)

    def test_id_is_taken_from_thing(self, addressing):
        description = Thing("lamp-1", {"id": "stale", "name": "Lamp"}, addressing).get_description()
        assert description["id"] == "lamp-1"

    def test_input_description_not_mutated(self, addressing, lamp_description):
        Thing("lamp-1", lamp_description, addressing)
        assert "href" not in lamp_description["properties"]["on"]

    def test_get_description_returns_copy(self, addressing, lamp_description):
        thing = Thing("lamp-1", lamp_description, addressing)
        description = thing.get_description()
        description["properties"]["on"]["type"] = "string"

        assert thing.get_description()["properties"]["on"]["type"] == "boolean"

    def test_stale_href_is_recomputed(self, addressing):
        thing = Thing("lamp-1", {"href": "/elsewhere/lamp-1"}, addressing)
        assert thing.get_description()["href"] == "/things/lamp-1"

    def test_description_round_trips(self, addressing, lamp_description):
        first = Thing("lamp-1", lamp_description, addressing).get_description()
        second = Thing("lamp-1", first, addressing).get_description()
        assert first == second

    def test_remove_invokes_handlers_once(self, addressing):
        thing = Thing("lamp-1", {}, addressing)
        removed = []
        thing.on_removed(removed.append)

        thing.remove()
        thing.remove()

        assert thing.is_removed
        assert removed == [thing]

    def test_failing_removal_handler_does_not_stop_others(self, addressing):
        thing = Thing("lamp-1", {}, addressing)
        removed = []

        def broken(_):
            raise RuntimeError("boom")

        thing.on_removed(broken)
        thing.on_removed(removed.append)
        thing.remove()

        assert removed == [thing]
