"""Application configuration via environment variables."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic_settings import BaseSettings

from crm_scheduling.availability import TIMEZONE_POLICIES, BusinessHoursConfig

log = logging.getLogger("crm_scheduling.config")


@dataclass(frozen=True)
class LeadDefaults:
    """Values applied to a new Lead when the caller leaves a field out."""

    company: str = "Individual"
    status: str = "Open - Not Contacted"
    lead_source: str = "SMS"


class Settings(BaseSettings):
    # Salesforce (JWT bearer flow)
    sf_client_id: str = ""
    sf_username: str = ""
    sf_login_url: str = "https://login.salesforce.com"
    sf_private_key_base64: str = ""
    sf_api_version: str = "59.0"
    sf_token_ttl_seconds: int = 300
    sf_request_timeout: float = 30.0

    # Business hours
    business_open_hour: int = 9
    business_close_hour: int = 22
    slot_duration_minutes: int = 30
    business_timezone: str = "America/New_York"
    business_timezone_label: str = "Eastern"
    timezone_policy: str = "utc_as_civil"  # "utc_as_civil" or "zoneinfo"

    # Record defaults
    lead_default_company: str = "Individual"
    lead_default_status: str = "Open - Not Contacted"
    lead_source: str = "SMS"
    contact_summary_field: str = "Invoca_Call_Summary__c"
    search_limit: int = 10

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: str = "INFO"
    session_idle_timeout_seconds: int = 1800
    session_replay_size: int = 100
    mcp_json_response: bool = False  # plain JSON replies instead of SSE on POST

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if not 0 <= self.business_open_hour < self.business_close_hour <= 24:
            raise ValueError(
                f"BUSINESS_OPEN_HOUR ({self.business_open_hour}) must be before "
                f"BUSINESS_CLOSE_HOUR ({self.business_close_hour})."
            )
        if self.slot_duration_minutes <= 0:
            raise ValueError("SLOT_DURATION_MINUTES must be positive.")
        if self.timezone_policy not in TIMEZONE_POLICIES:
            raise ValueError(
                f"TIMEZONE_POLICY must be one of {sorted(TIMEZONE_POLICIES)}, "
                f"got {self.timezone_policy!r}."
            )

        missing = [
            name
            for name, value in (
                ("SF_CLIENT_ID", self.sf_client_id),
                ("SF_USERNAME", self.sf_username),
                ("SF_PRIVATE_KEY_BASE64", self.sf_private_key_base64),
            )
            if not value
        ]
        if missing:
            warnings.append(
                f"{', '.join(missing)} not set. CRM tools will report "
                "authentication errors until credentials are configured."
            )

        if self.timezone_policy == "utc_as_civil":
            warnings.append(
                "TIMEZONE_POLICY=utc_as_civil: booked event times are compared "
                "on their UTC wall clock, not converted to "
                f"{self.business_timezone}."
            )

        if self.session_idle_timeout_seconds <= 0:
            warnings.append(
                "SESSION_IDLE_TIMEOUT_SECONDS disabled. Sessions are only "
                "removed by explicit DELETE."
            )

        return warnings

    def business_hours(self) -> BusinessHoursConfig:
        return BusinessHoursConfig(
            open_hour=self.business_open_hour,
            close_hour=self.business_close_hour,
            slot_duration_minutes=self.slot_duration_minutes,
            timezone=self.business_timezone,
            timezone_label=self.business_timezone_label,
            timezone_policy=self.timezone_policy,
        )

    def lead_defaults(self) -> LeadDefaults:
        return LeadDefaults(
            company=self.lead_default_company,
            status=self.lead_default_status,
            lead_source=self.lead_source,
        )


settings = Settings()
