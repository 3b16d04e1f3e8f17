from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
import logging

# Load environment variables from .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Data directories
DATA_DIR = BASE_DIR / "data"
PROMPTS_DIR = DATA_DIR / "prompts"

class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App settings
    APP_NAME: str = "Contract Scanner"
    API_VERSION: str = "1.0.0"

    # Groq settings
    GROQ_API_KEY: str = ""

    # LLM settings
    LLM_MODEL: str = "llama-3.3-70b-versatile"
    LLM_MAX_TOKENS: int = 4000
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Prompt registry storage: "file" or "memory"
    PROMPT_STORE_BACKEND: str = "file"
    PROMPT_STORE_PATH: Path = PROMPTS_DIR / "system-prompts.json"

    # Surface model failures as error envelopes instead of falling back
    ANALYSIS_STRICT_MODE: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

# Create settings instance
settings = Settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",)
