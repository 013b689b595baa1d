# thing_service/api/schemas.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Any, Optional

class ThingDescription(BaseModel):
    model_config = ConfigDict(extra='allow')

    properties: Optional[Dict[str, Dict[str, Any]]] = Field(
        None, description="Property descriptors keyed by property name"
    )

class ThingCreateRequest(BaseModel):
    id: str = Field(..., min_length=1, description="Thing identifier")
    description: ThingDescription = Field(default_factory=ThingDescription, description="Thing description")

class HealthResponse(BaseModel):
    status: str = Field(..., description="Health status")
    timestamp: str = Field(..., description="Timestamp")
    registry_loaded: bool = Field(..., description="Whether things have been loaded from storage")
    things: int = Field(..., description="Things in the registry cache")
    connected_devices: int = Field(..., description="Devices reported by discovery")
    subscribers: int = Field(..., description="Open new thing subscribers")
    version: str = Field(..., description="Service version")
