"""Service-specific settings for aumos-case-manager.

Case-management settings use the AUMOS_CASES_ env prefix.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for aumos-case-manager.

    Environment variable prefix: AUMOS_CASES_
    """

    service_name: str = "aumos-case-manager"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./aumos_cases.db"
    database_echo: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_json: bool = False

    # Workload rules
    max_active_cases: int = 10
    high_workload_threshold: int = 7

    # Recommendation and analytics settings
    recommendation_limit: int = 3
    recent_lawsuits_limit: int = 5

    # Pagination settings
    default_page_size: int = 10
    max_page_size: int = 100

    model_config = SettingsConfigDict(env_prefix="AUMOS_CASES_")
