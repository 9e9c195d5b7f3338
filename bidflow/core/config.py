import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    PROJECT_NAME: str = "BidFlow"
    DATABASE_URL: str = os.getenv("DATABASE_URL", "postgres://postgres:password@db:5432/bidflow")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))  # 1 day

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Rate limiting
    RATE_LIMIT_DEFAULT: str = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

    # Case numbers look like GRY-000001
    CASE_NUMBER_PREFIX: str = os.getenv("CASE_NUMBER_PREFIX", "GRY")

    def get_database_url(self):
        url = self.DATABASE_URL
        # Fix for SQLAlchemy compatibility (if using 'postgres://' instead of 'postgresql+psycopg2://')
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+psycopg2://", 1)
        return url

settings = Settings()
