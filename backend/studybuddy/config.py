"""Application settings and validation."""

import os


class Settings:
    ENV: str
    MONGODB_URL: str
    MONGODB_DB: str
    MONGODB_TIMEOUT_MS: int
    JWT_SECRET: str
    JWT_ALGORITHM: str
    SESSION_EXPIRE_HOURS: int
    SESSION_COOKIE_NAME: str
    GITHUB_CLIENT_ID: str
    GITHUB_CLIENT_SECRET: str
    CALLBACK_URL: str
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
        self.MONGODB_DB = os.getenv("MONGODB_DB", "study_buddy")
        self.MONGODB_TIMEOUT_MS = int(os.getenv("MONGODB_TIMEOUT_MS", "5000"))
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.SESSION_EXPIRE_HOURS = int(os.getenv("SESSION_EXPIRE_HOURS", "24"))
        self.SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "study_session")
        self.GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID", "")
        self.GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET", "")
        self.CALLBACK_URL = os.getenv("CALLBACK_URL", "http://localhost:8000/github/callback")
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")

    @property
    def cookie_secure(self) -> bool:
        """Only send session cookies over HTTPS outside local development."""
        return self.ENV != "dev"


settings = Settings()
