"""Global configuration for the Itinerary Planner application.

This module loads environment variables from .env file and provides
centralized configuration for the entire application.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
# Look for .env in the project root directory
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


# ============================================================================
# Language Model Configuration
# ============================================================================

# Default model name for Gemini
DEFAULT_MODEL_NAME: str = os.getenv("DEFAULT_MODEL_NAME", "gemini-2.5-flash")

# Default temperature for LLM calls
DEFAULT_TEMPERATURE: float = float(os.getenv("DEFAULT_TEMPERATURE", "0.2"))

# Suggestions benefit from a little more variety than town facts
SUGGESTION_TEMPERATURE: float = float(os.getenv("SUGGESTION_TEMPERATURE", "0.4"))

# Attempts per suggestion request when Gemini answers 429/5xx
SUGGESTION_MAX_ATTEMPTS: int = int(os.getenv("SUGGESTION_MAX_ATTEMPTS", "3"))


# ============================================================================
# Destination Configuration
# ============================================================================

TOWN_NAME: str = os.getenv("TOWN_NAME", "Gros-Islet")
TOWN_REGION: str = os.getenv("TOWN_REGION", "St. Lucia")

# Optional JSON file listing local businesses used to ground suggestions
BUSINESS_CATALOG_PATH: Optional[str] = os.getenv("BUSINESS_CATALOG_PATH")


# ============================================================================
# Conversation Configuration
# ============================================================================

# One of "en", "fr", "kw"
DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "en")

MIN_TRIP_DAYS: int = int(os.getenv("MIN_TRIP_DAYS", "1"))
MAX_TRIP_DAYS: int = int(os.getenv("MAX_TRIP_DAYS", "10"))
DEFAULT_TRIP_DAYS: int = int(os.getenv("DEFAULT_TRIP_DAYS", "3"))

# Upper bound on a single suggestion request; 0 disables the timeout
SUGGESTION_TIMEOUT_SECONDS: float = float(os.getenv("SUGGESTION_TIMEOUT_SECONDS", "60"))

# Pause between showing the final itinerary and asking how to deliver it
DELIVERY_PROMPT_DELAY_SECONDS: float = float(os.getenv("DELIVERY_PROMPT_DELAY_SECONDS", "0.5"))


# ============================================================================
# Application Configuration
# ============================================================================

# FastAPI/Backend
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
ITINERARY_PLANNER_API_URL: str = os.getenv("ITINERARY_PLANNER_API_URL", "http://localhost:8000")

# CORS Configuration
CORS_ORIGINS: List[str] = os.getenv("CORS_ORIGINS", "*").split(",") if os.getenv("CORS_ORIGINS") else ["*"]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


# ============================================================================
# API Keys
# ============================================================================

def get_google_api_key() -> Optional[str]:
    """Get Google API key (Gemini) from environment variables."""
    return os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")


# ============================================================================
# Validation
# ============================================================================

def validate_api_keys() -> List[str]:
    """Validate that required API keys are present. Returns list of missing keys."""
    missing = []

    if not get_google_api_key():
        missing.append("GOOGLE_API_KEY or GEMINI_API_KEY")

    return missing
