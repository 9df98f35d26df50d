# Settings for the nearby-printer search service.
# Values come from the environment or a local .env file.

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Literal, Optional
import os

# Repository root, used to resolve the default dataset location
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

class Settings(BaseSettings):
    PROJECT_NAME: str = "PrintNearby"
    VERSION: str = "0.2.0"
    BRIEF_DESCRIPTION: str = "Find 3D-printing providers near a US ZIP code or coordinate."

    ENV: str = Field("development", description="Application environment (e.g., production, development)")

    # --- Gazetteer ---
    ZIP_DATASET_PATH: str = Field(
        os.path.join(BASE_DIR, "data", "zipcodes.json.gz"),
        description="Gzip-compressed JSON array of {zip, lat, lon} records",
    )

    # --- Printer record store ---
    PRINTER_STORE_BACKEND: Literal["memory", "firestore"] = Field(
        "memory", description="Where printer listings are read from"
    )
    PRINTER_SEED_PATH: Optional[str] = Field(
        None, description="JSON file of printer documents for the in-memory store"
    )
    PRINTERS_COLLECTION: str = Field("printers", description="Firestore collection holding printer listings")
    FIRESTORE_PROJECT_ID: Optional[str] = Field(None, description="Google Cloud project id")
    FIRESTORE_DATABASE: str = Field("(default)", description="Firestore database id")
    FIRESTORE_EMULATOR_HOST: Optional[str] = Field(None, description="host:port of a local Firestore emulator")
    FIRESTORE_ACCESS_TOKEN: Optional[str] = Field(None, description="OAuth2 bearer token for the Firestore REST API")
    FIRESTORE_TIMEOUT: float = 8.0 # seconds

    # Used for the rough drive-time estimate on /api/distance
    AVERAGE_DRIVE_SPEED_MPH: float = 45.0

    # Pydantic configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
