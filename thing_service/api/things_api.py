# thing_service/api/things_api.py

from fastapi import FastAPI, HTTPException, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import logging
from datetime import datetime, timezone
from typing import Callable, List

from .schemas import ThingCreateRequest, HealthResponse
from .. import __version__
from ..core.discovery_sync import DiscoverySync
from ..core.errors import ThingConflictError, ThingNotFoundError, ThingRegistryError
from ..core.subscriber_hub import SubscriberHub, SubscriberInterface
from ..core.thing_registry import ThingRegistry

logger = logging.getLogger(__name__)

class WebSocketSubscriber(SubscriberInterface):
    """Adapts a FastAPI WebSocket to the new thing subscriber interface"""
    
    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.is_closed = False
        self._close_handlers: List[Callable[[], None]] = []
    
    async def send(self, payload: str):
        await self.websocket.send_text(payload)
    
    def on_close(self, handler: Callable[[], None]):
        self._close_handlers.append(handler)
    
    def close(self):
        """Fire the close handlers, once"""
        if self.is_closed:
            return
        self.is_closed = True
        for handler in self._close_handlers:
            handler()
    
    def __repr__(self) -> str:
        client = self.websocket.client
        return f"WebSocketSubscriber({client.host}:{client.port})" if client else "WebSocketSubscriber()"


class ThingsAPI:
    """HTTP and WebSocket API for the thing registry"""
    
    def __init__(self, registry: ThingRegistry, discovery_sync: DiscoverySync,
                 hub: SubscriberHub, things_path: str = "/things",
                 new_things_path: str = "/new_things"):
        self.registry = registry
        self.discovery_sync = discovery_sync
        self.hub = hub
        self.things_path = things_path
        self.new_things_path = new_things_path
        self.app = FastAPI(
            title="Smart City Thing Registry API",
            description="Registry of things known to the gateway and newly discovered devices",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc"
        )
        
        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        
        self._setup_routes()
    
    def _setup_routes(self):
        """Setup all API routes"""
        
        @self.app.get("/health", response_model=HealthResponse)
        async def health_check():
            """Service health"""
            return HealthResponse(
                status="healthy" if self.registry.is_warm else "initializing",
                timestamp=datetime.now(timezone.utc).isoformat(),
                registry_loaded=self.registry.is_warm,
                things=len(self.registry),
                connected_devices=len(self.discovery_sync.discovery.get_things()),
                subscribers=self.hub.subscriber_count,
                version=__version__
            )
        
        @self.app.get(self.things_path)
        async def list_things():
            """Get descriptions of all registered things"""
            try:
                return await self.registry.get_descriptions()
            except ThingRegistryError as e:
                logger.error(f"Error listing things: {e}")
                raise HTTPException(status_code=500, detail=str(e))
        
        @self.app.post(self.things_path, status_code=201)
        async def create_thing(request: ThingCreateRequest):
            """Register a thing"""
            try:
                return await self.registry.create(request.id, request.description.model_dump())
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))
            except ThingConflictError as e:
                raise HTTPException(status_code=409, detail=str(e))
            except ThingRegistryError as e:
                logger.error(f"Error creating thing {request.id}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
        
        @self.app.get(f"{self.things_path}/{{thing_id}}")
        async def get_thing(thing_id: str):
            """Get the description of a registered thing"""
            try:
                return await self.registry.get_description(thing_id)
            except ThingNotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except ThingRegistryError as e:
                logger.error(f"Error getting thing {thing_id}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
        
        @self.app.delete(f"{self.things_path}/{{thing_id}}", status_code=204)
        async def remove_thing(thing_id: str):
            """Remove a thing"""
            try:
                await self.registry.remove(thing_id)
            except ThingRegistryError as e:
                logger.error(f"Error removing thing {thing_id}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
            return Response(status_code=204)
        
        @self.app.get(self.new_things_path)
        async def list_new_things():
            """Get connected devices that are not registered yet"""
            try:
                return await self.discovery_sync.get_new_things()
            except ThingRegistryError as e:
                logger.error(f"Error listing new things: {e}")
                raise HTTPException(status_code=500, detail=str(e))
        
        @self.app.websocket(self.new_things_path)
        async def new_things_socket(websocket: WebSocket):
            """Stream newly discovered devices until the client disconnects"""
            await websocket.accept()
            subscriber = WebSocketSubscriber(websocket)
            self.hub.register(subscriber)
            try:
                while True:
                    await websocket.receive_text()
            except WebSocketDisconnect:
                pass
            finally:
                subscriber.close()
