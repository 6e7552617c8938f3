from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Subscription Guardian"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    SUBSCRIPTIONS_TABLE: str = "subscriptions"

    # Gmail API
    GMAIL_CLIENT_ID: str = ""
    GMAIL_CLIENT_SECRET: str = ""
    GMAIL_REFRESH_TOKEN: str = ""
    EMAIL_SCAN_QUERY: str = "subject:(subscription OR invoice OR billing OR renewal)"
    EMAIL_SCAN_MAX_RESULTS: int = 50

    # OCR
    TESSERACT_CMD: str = "/usr/local/bin/tesseract"  # macOS default
    MAX_UPLOAD_MB: int = 10

    # Page scanning
    SCAN_DEBOUNCE_SECONDS: float = 1.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
