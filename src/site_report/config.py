from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from pathlib import Path
from typing import Optional

PACKAGE_DIR = Path(__file__).resolve().parent

class Settings(BaseSettings):
    OPENAI_API_KEY: Optional[str] = Field(None, description="OpenAI API Key (narrative + captioning)")
    MODEL_NARRATIVE: str = "gpt-4o"
    MODEL_VISION: str = "gpt-4o-mini"

    HUGGINGFACE_API_KEY: Optional[str] = Field(None, description="Hugging Face token for Whisper inference")
    TRANSCRIPTION_URL: str = "https://api-inference.huggingface.co/models/openai/whisper-large-v3"
    TRANSCRIPTION_TIMEOUT: float = 60.0

    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None

    STORE_BACKEND: str = Field("memory", description="'memory' or 'sqlite'")
    DB_PATH: str = Field("./reports.sqlite", description="Path to SQLite database")
    UPLOAD_DIR: str = "./uploads"
    OUTPUT_DIR: str = "./reports"
    PROMPTS_DIR: str = str(PACKAGE_DIR / "prompts")

    DEFAULT_HEADING: str = "Site Inspection Report"
    LOG_LEVEL: str = "INFO"

    # Langfuse settings
    LANGFUSE_ENABLED: bool = Field(False, description="Enable Langfuse tracking")
    LANGFUSE_PUBLIC_KEY: Optional[str] = None
    LANGFUSE_SECRET_KEY: Optional[str] = None
    LANGFUSE_HOST: str = "https://cloud.langfuse.com"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()
