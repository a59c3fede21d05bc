import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./medledger.db")
    ADMIN_ADDRESS: str = os.getenv("ADMIN_ADDRESS", "")
    IDENTITY_SIGNING_KEY: str = os.getenv("IDENTITY_SIGNING_KEY", "")
    IDENTITY_TOKEN_TTL: int = int(os.getenv("IDENTITY_TOKEN_TTL", "3600"))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
