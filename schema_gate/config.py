import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # Dialect used when a schema does not declare "$schema"
    DEFAULT_SCHEMA_DIALECT: str = os.getenv(
        "DEFAULT_SCHEMA_DIALECT",
        "http://json-schema.org/draft-07/schema#",
    )


settings = Settings()
