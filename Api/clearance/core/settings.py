from pydantic import computed_field
from pydantic_settings import SettingsConfigDict, BaseSettings

from clearance.core.generate_keys import load_or_generate_server_keys
from cryptography.hazmat.primitives import serialization


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    SQLITE_FILE_PATH: str = "clearance.db"
    DB_ECHO: bool = False

    # RS256 pair used to verify officer bearer tokens
    PRIVATE_KEY: str | None = None
    PUBLIC_KEY: str | None = None
    SERVER_KEY_PATH: str = "server_private_key.pem"
    SERVER_PUBLIC_KEY_PATH: str = "server_public_key.pem"

    PERMIT_SERVICE_URL: str = "http://localhost:3000"
    SMS_SERVICE_URL: str = "http://localhost:3000"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    SWEEP_ON_READ: bool = True
    AUTO_ISSUE_PERMITS: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    def model_post_init(self, __context):
        if self.PRIVATE_KEY and self.PUBLIC_KEY:
            return

        _private_key_obj, _public_key_obj = load_or_generate_server_keys(
            self.SERVER_KEY_PATH, self.SERVER_PUBLIC_KEY_PATH
        )

        self.PRIVATE_KEY = _private_key_obj.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        ).decode()

        self.PUBLIC_KEY = _public_key_obj.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode()

    @computed_field
    @property
    def DATABASE_URI(self) -> str:
        return f"sqlite:///{self.SQLITE_FILE_PATH}"


settings = Settings()
