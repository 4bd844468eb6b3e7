import tomllib
from functools import cached_property
from pathlib import Path
from typing import ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import computed_field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from app.modules.booking.types_booking import BlockingPolicy
from app.types.exceptions import (
    DotenvInvalidVariableError,
    DotenvMissingVariableError,
)


class Settings(BaseSettings):
    """
    Settings for Conference Hub
    The class is based on a yaml configuration file: `config.yaml`.

    All undefined variables will be populated from:
    1. An environment variable
    2. The yaml config.yaml file
    3. The dotenv .env file

    See [Pydantic Settings documentation](https://docs.pydantic.dev/latest/concepts/pydantic_settings/#dotenv-env-support) for more information.
    See [FastAPI settings](https://fastapi.tiangolo.com/advanced/settings/) article for best practices with settings.

    To access these settings, the `get_settings` dependency should be used.
    """

    # By default, the settings are loaded from `config.yaml` and `.env` but this behaviour can be overridden using
    # `_env_file` and `_yaml_file` parameters during instantiation
    # Ex: `Settings(_env_file=".env.dev", _yaml_file="config.dev.yaml")`
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="config.yaml",
        case_sensitive=False,
        extra="ignore",
    )

    # Pydantic does not support overriding the yaml file path using a `_yaml_file` parameter
    # as it does for `_env_file`. We store it on the class before calling the parent constructor.
    # See https://github.com/pydantic/pydantic-settings/issues/259
    _yaml_file: ClassVar[str]

    def __init__(self, _yaml_file, _env_file, **kwargs):
        Settings._yaml_file = _yaml_file
        super().__init__(_env_file=_env_file, **kwargs)

    # The order of the returned sources defines their precedence:
    # init arguments > environment variables > yaml file > dotenv
    # See https://docs.pydantic.dev/latest/concepts/pydantic_settings/#important-notes
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_file),
            dotenv_settings,
        )

    ##################
    # Authentication #
    ##################

    # ACCESS_TOKEN_SECRET_KEY should contain a random string with enough entropy (at least 32 bytes long) to securely sign all access tokens
    ACCESS_TOKEN_SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    ##########################
    # Application settings #
    ##########################

    # By default, only production's records are logged
    LOG_DEBUG_MESSAGES: bool = False

    # Origins for the CORS middleware. `["http://localhost"]` can be used for development.
    # See https://fastapi.tiangolo.com/tutorial/cors/
    # It should begin with 'http://' or 'https:// and should never end with a '/'
    CORS_ORIGINS: list[str]

    ############################
    # Database configuration #
    ############################
    # If set, the application use a SQLite database instead of PostgreSQL, for testing or development purposes
    SQLITE_DB: str | None = None
    POSTGRES_HOST: str = ""
    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""
    DATABASE_DEBUG: bool = False  # If True, the database will log all queries

    #####################################
    # SMTP configuration using starttls #
    #####################################

    SMTP_ACTIVE: bool = False
    SMTP_PORT: int
    SMTP_SERVER: str
    SMTP_USERNAME: str
    SMTP_PASSWORD: str
    SMTP_EMAIL: str

    ####################
    # Booking settings #
    ####################

    # Timezone of the facilities. Calendar days, operating hours and emails are expressed in this timezone
    FACILITY_TIMEZONE: str = "UTC"

    # Buffer applied after a booking when the room has no availability configuration
    DEFAULT_BUFFER_MINUTES: int = 30

    # Which booking statuses prevent another booking from being placed on the same window.
    # `confirmed_and_pending` prevents two requests from competing for the same slot
    BOOKING_BLOCKING_POLICY: BlockingPolicy = BlockingPolicy.confirmed_and_pending

    SLOT_GRANULARITY_MINUTES: int = 30

    # Check-in opens CHECK_IN_OPENS_MINUTES before the booking start
    # and closes CHECK_IN_GRACE_MINUTES after it. Confirmed bookings without check-in are released after the grace period
    CHECK_IN_OPENS_MINUTES: int = 15
    CHECK_IN_GRACE_MINUTES: int = 15

    # Reminders are sent for confirmed bookings starting within the next BOOKING_REMINDER_MINUTES
    BOOKING_REMINDER_MINUTES: int = 15

    DEFAULT_CURRENCY: str = "GHS"

    #############################
    # pyproject.toml parameters #
    #############################

    @computed_field  # type: ignore[prop-decorator]
    @cached_property
    def CONFERENCE_HUB_VERSION(cls) -> str:
        with Path("pyproject.toml").open("rb") as pyproject_binary:
            pyproject = tomllib.load(pyproject_binary)
        return str(pyproject["project"]["version"])

    ######################################
    # Automatically generated parameters #
    ######################################

    # Not exposed as a computed field, ZoneInfo has no pydantic serializer
    @cached_property
    def FACILITY_ZONEINFO(cls) -> ZoneInfo:
        return ZoneInfo(cls.FACILITY_TIMEZONE)

    #######################################
    #          Fields validation          #
    #######################################

    @model_validator(mode="after")
    def check_database_settings(self) -> "Settings":
        """
        All fields are optional, but the dotenv should configure SQLITE_DB or a Postgres database
        """
        if not (
            self.SQLITE_DB
            or (
                self.POSTGRES_HOST
                and self.POSTGRES_USER
                and self.POSTGRES_PASSWORD
                and self.POSTGRES_DB
            )
        ):
            raise DotenvMissingVariableError(  # noqa: TRY003
                "Either SQLITE_DB or POSTGRES_HOST, POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB",
            )

        return self

    @model_validator(mode="after")
    def check_secrets(self) -> "Settings":
        if not self.ACCESS_TOKEN_SECRET_KEY:
            raise DotenvMissingVariableError(
                "ACCESS_TOKEN_SECRET_KEY",
            )

        return self

    @model_validator(mode="after")
    def check_booking_settings(self) -> "Settings":
        try:
            ZoneInfo(self.FACILITY_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as error:
            raise DotenvInvalidVariableError(  # noqa: TRY003
                f"FACILITY_TIMEZONE {self.FACILITY_TIMEZONE} is not a valid IANA timezone",
            ) from error
        if self.SLOT_GRANULARITY_MINUTES <= 0:
            raise DotenvInvalidVariableError(  # noqa: TRY003
                "SLOT_GRANULARITY_MINUTES must be strictly positive",
            )
        if self.DEFAULT_BUFFER_MINUTES < 0:
            raise DotenvInvalidVariableError(  # noqa: TRY003
                "DEFAULT_BUFFER_MINUTES can not be negative",
            )
        return self

    @model_validator(mode="after")
    def init_cached_property(self) -> "Settings":
        """
        Cached property are not computed during the instantiation of the class, but when they are accessed for the first time.
        By calling them in this validator, we force their initialization during the instantiation of the class.
        This allow them to raise error on startup if they are not correctly configured instead of creating an error on runtime.
        """
        self.CONFERENCE_HUB_VERSION  # noqa: B018
        self.FACILITY_ZONEINFO  # noqa: B018

        return self


def construct_prod_settings() -> Settings:
    """
    Return the production settings
    """
    return Settings(_env_file=".env", _yaml_file="config.yaml")
