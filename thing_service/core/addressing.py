# thing_service/core/addressing.py
from dataclasses import dataclass


@dataclass(frozen=True)
class Addressing:
    """
    Path prefixes used to build thing and property hrefs
    
    thing:    <things_path>/<id>
    property: <things_path>/<id><properties_path>/<name>
    """
    things_path: str = "/things"
    properties_path: str = "/properties"
    
    @classmethod
    def from_settings(cls, settings) -> "Addressing":
        return cls(
            things_path=settings.THINGS_PATH,
            properties_path=settings.PROPERTIES_PATH
        )
    
    def thing_href(self, thing_id: str) -> str:
        return f"{self.things_path}/{thing_id}"
    
    def property_href(self, thing_id: str, property_name: str) -> str:
        return f"{self.thing_href(thing_id)}{self.properties_path}/{property_name}"
