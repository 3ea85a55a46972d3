"""
Workflow settings, read from the environment (or a local .env file).
"""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Runtime settings for the leave workflow service.

    Leaving ``SNOWFLAKE_ACCOUNT`` empty runs the employee store on the
    bundled mock employees.
    """

    model_config = ConfigDict(env_file=".env", case_sensitive=False, populate_by_name=True)

    # Employee store (Snowflake)
    snowflake_account: str = Field(default="", alias="SNOWFLAKE_ACCOUNT")
    snowflake_user: str = Field(default="", alias="SNOWFLAKE_USER")
    snowflake_password: str = Field(default="", alias="SNOWFLAKE_PASSWORD")
    snowflake_warehouse: str = Field(default="", alias="SNOWFLAKE_WAREHOUSE")
    snowflake_database: str = Field(default="", alias="SNOWFLAKE_DATABASE")
    snowflake_schema: str = Field(default="", alias="SNOWFLAKE_SCHEMA")

    # Service
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    seed_demo_data: bool = Field(default=True, alias="SEED_DEMO_DATA")

    # Leave rules
    maternity_min_notice_days: int = Field(default=60, alias="MATERNITY_MIN_NOTICE_DAYS")
    probation_months: int = Field(default=6, alias="PROBATION_MONTHS")
    max_conflict_retries: int = Field(default=3, alias="MAX_CONFLICT_RETRIES")

    # Employee store breaker
    circuit_breaker_failure_threshold: int = Field(
        default=5, alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD"
    )
    circuit_breaker_timeout: int = Field(default=60, alias="CIRCUIT_BREAKER_TIMEOUT")


settings = Settings()
