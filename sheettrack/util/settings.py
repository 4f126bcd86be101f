import logging
import os
import pathlib
from typing import Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

config_file = pathlib.Path(os.getenv("SHEETTRACK_CONFIG_FILE", "config.yml")).resolve()
sheettrack_env = os.getenv("SHEETTRACK_ENV", "prod")


settings = dict()

# Reads config from ./config.yml
if os.path.exists(config_file):
    with open(config_file) as f:
        settings.update(yaml.load(f, Loader=yaml.FullLoader) or {})
else:
    logger.error("No config file found at: " + str(config_file))

logger.debug("Final settings: %s", settings)


class GoogleConfig(BaseModel):
    """
    Represents the Google service account used to reach the Sheets API.

    Attributes:
        credentials_file (str): Path to a service account JSON key file.
        client_email (str): Service account email, used with private_key instead of a key file.
        private_key (SecretStr): Service account private key. Literal "\\n" sequences are turned into newlines.
        scopes (list): OAuth scopes requested for the Sheets client.
    """

    credentials_file: Optional[str] = Field(None)
    client_email: Optional[str] = Field(None)
    private_key: Optional[SecretStr] = Field(None)
    scopes: Optional[list] = Field(["https://www.googleapis.com/auth/spreadsheets"])

    @model_validator(mode="after")
    def check_required_fields(cls, values):
        if bool(values.client_email) != bool(values.private_key):
            raise ValueError(
                "Google client_email and private_key must be provided together"
            )
        return values

    def private_key_pem(self) -> Optional[str]:
        if self.private_key is None:
            return None
        return self.private_key.get_secret_value().replace("\\n", "\n")


def google_from_env():
    return {
        "credentials_file": os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or None,
        "client_email": os.getenv("GOOGLE_SA_CLIENT_EMAIL") or None,
        "private_key": os.getenv("GOOGLE_SA_PRIVATE_KEY") or None,
    }


if settings.get("google"):
    google_config = GoogleConfig(**settings["google"])
else:
    google_config = GoogleConfig(**google_from_env())
    if sheettrack_env != "dev" and not (
        google_config.credentials_file or google_config.client_email
    ):
        logger.warning("Missing google config")


class ApiConfig(BaseModel):
    """
    Shared-secret check for the JSON API.

    Attributes:
        key (SecretStr): Value expected in the x-api-key header. Unset disables the check.
    """

    key: Optional[SecretStr] = Field(None)


if settings.get("api"):
    api_config = ApiConfig(**settings["api"])
else:
    api_config = ApiConfig(key=os.getenv("API_KEY") or None)
    if sheettrack_env != "dev" and api_config.key is None:
        logger.warning("Missing api config, x-api-key checks are disabled")


class StoreConfig(BaseModel):
    path: str


if settings.get("store"):
    store_config = StoreConfig(**settings["store"])
else:
    store_path = os.getenv("ACTIVE_SHEET_STORE", "").strip()
    store_config = StoreConfig(
        path=store_path or str(pathlib.Path.cwd() / "activeSheet.json")
    )
    if sheettrack_env != "dev" and not store_path:
        logger.warning("Missing store config, using %s", store_config.path)


class HttpConfig(BaseModel):
    cors_origin: Optional[str] = "*"


if settings.get("http"):
    http_config = HttpConfig(**settings["http"])
else:
    http_config = HttpConfig(cors_origin=os.getenv("CORS_ORIGIN") or "*")
    if sheettrack_env != "dev" and not os.getenv("CORS_ORIGIN"):
        logger.warning("Missing http config, allowing all CORS origins")


class RateLimitConfig(BaseModel):
    """
    Configuration for the redis backed API rate limiter.

    Attributes:
        redis_host (str): Redis server hostname.
        redis_port (int): Redis server port.
        db (int): Redis database number.
        max_requests (int): Requests allowed per client in one window.
        window (int): Window length in seconds.
        enable (Optional[bool]): A flag indicating whether rate limiting is enabled.
    """

    redis_host: Optional[str] = Field(None)
    redis_port: Optional[int] = Field(6379)
    db: Optional[int] = Field(0)
    max_requests: Optional[int] = Field(100)
    window: Optional[int] = Field(60)
    enable: Optional[bool] = Field(False)

    @model_validator(mode="after")
    def check_required_fields(cls, values):
        enable = values.enable
        if enable:
            required_fields = ["redis_host", "redis_port", "db"]
            for field in required_fields:
                if getattr(values, field) is None:
                    raise ValueError(
                        f"Rate limit {field} is required when enable is True"
                    )
        return values


if settings.get("rate_limit"):
    rate_limit_config = RateLimitConfig(**settings["rate_limit"])
elif sheettrack_env == "dev":
    rate_limit_config = RateLimitConfig(enable=False)
else:
    logger.warning("Missing rate_limit config, rate limiting is off")
    rate_limit_config = RateLimitConfig(enable=False)


class TelemetryConfig(BaseModel):
    url: Optional[str] = None
    enable: Optional[bool] = False
    env: Optional[str] = "dev"


if settings.get("telemetry"):
    telemetry_config = TelemetryConfig(**settings["telemetry"])
elif sheettrack_env == "dev":
    telemetry_config = TelemetryConfig(enable=False)
else:
    logger.warning("Missing telemetry config")
    telemetry_config = TelemetryConfig(enable=False)


class SingletonBaseSettingsMeta(type(BaseSettings), type):
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super().__call__(*args, **kwargs)
        return cls._instances[cls]


class Settings(BaseSettings, metaclass=SingletonBaseSettingsMeta):
    model_config = SettingsConfigDict(env_prefix="SHEETTRACK_")

    google: GoogleConfig = google_config
    api: ApiConfig = api_config
    store: StoreConfig = store_config
    http: HttpConfig = http_config
    rate_limit: RateLimitConfig = rate_limit_config
    telemetry: Optional[TelemetryConfig] = telemetry_config
    env: Optional[str] = sheettrack_env
