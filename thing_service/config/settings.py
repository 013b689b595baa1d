# thing_service/config/settings.py
from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""
    
    # Addressing
    THINGS_PATH: str = "/things"
    PROPERTIES_PATH: str = "/properties"
    NEW_THINGS_PATH: str = "/new_things"
    
    # Storage settings
    STORAGE_TYPE: str = "filesystem"
    STORAGE_PATH: str = "/app/storage/things"
    
    # Discovery settings
    DISCOVERY_TYPE: str = "mqtt"
    MQTT_BROKER: str = "localhost"
    MQTT_PORT: int = 1883
    MQTT_TOPIC_PREFIX: str = "smartcity"
    MQTT_USERNAME: Optional[str] = None
    MQTT_PASSWORD: Optional[str] = None
    
    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

