"""
Configuration management using Pydantic models loaded from YAML.

The config file carries both engine settings and the provider catalog
(services, professionals and their weekly availability).
"""

from pathlib import Path
from typing import Dict, List

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.intervals import TimeInterval
from .domain.models import DailyAvailability, Professional, Service, WeeklySchedule, Weekday
from .domain.slot_generator import SlotGenerator
from .services.retry import RetryPolicy


class BookingDefaults(BaseModel):
    """Engine settings for slot generation, commits and upstream retries."""
    slot_step_minutes: int = 15
    max_commit_attempts: int = 5
    upstream_retry_attempts: int = 3
    upstream_retry_base_delay: float = 0.5
    upstream_retry_max_delay: float = 4.0

    @field_validator("slot_step_minutes")
    @classmethod
    def validate_step(cls, value: int) -> int:
        """Slot starts must stay on a grid that repeats every hour."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"slot_step_minutes must be a positive divisor of 60, got {value}")
        return value

    @field_validator("max_commit_attempts", "upstream_retry_attempts")
    @classmethod
    def validate_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"Attempts must be >= 1, got {value}")
        return value

    @model_validator(mode="after")
    def validate_delays(self) -> "BookingDefaults":
        if self.upstream_retry_base_delay < 0:
            raise ValueError("upstream_retry_base_delay must not be negative")
        if self.upstream_retry_max_delay < self.upstream_retry_base_delay:
            raise ValueError("upstream_retry_max_delay must be >= upstream_retry_base_delay")
        return self


class IntervalConfig(BaseModel):
    """A ``HH:MM``-``HH:MM`` range."""
    start: str
    end: str

    @model_validator(mode="after")
    def validate_range(self) -> "IntervalConfig":
        self.to_interval()
        return self

    def to_interval(self) -> TimeInterval:
        return TimeInterval.parse(self.start, self.end)


class DayConfig(BaseModel):
    """Availability of a professional on one day of the week."""
    day_of_week: str
    is_day_off: bool = False
    work_intervals: List[IntervalConfig] = Field(default_factory=list)
    break_intervals: List[IntervalConfig] = Field(default_factory=list)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str) -> str:
        return Weekday.from_name(value).name.capitalize()

    def to_daily(self) -> DailyAvailability:
        return DailyAvailability(
            is_day_off=self.is_day_off,
            work_intervals=tuple(interval.to_interval() for interval in self.work_intervals),
            break_intervals=tuple(interval.to_interval() for interval in self.break_intervals),
        )


class ServiceConfig(BaseModel):
    """Service offered by a provider."""
    id: str
    name: str
    duration_minutes: int
    price_cents: int = 0

    @field_validator("duration_minutes", "price_cents")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"Must not be negative, got {value}")
        return value


class ProfessionalConfig(BaseModel):
    """Professional and their weekly availability."""
    id: str
    name: str
    services: List[str] = Field(default_factory=list)
    availability: List[DayConfig] = Field(default_factory=list)

    @field_validator("availability")
    @classmethod
    def validate_unique_days(cls, value: List[DayConfig]) -> List[DayConfig]:
        """Each day of the week may be described once."""
        seen: set[str] = set()
        for day in value:
            if day.day_of_week in seen:
                raise ValueError(f"Duplicate availability for {day.day_of_week}")
            seen.add(day.day_of_week)
        return value

    def to_schedule(self) -> WeeklySchedule:
        return WeeklySchedule(
            days={Weekday.from_name(day.day_of_week): day.to_daily() for day in self.availability}
        )


class ProviderConfig(BaseModel):
    """Service business with its services and staff."""
    id: str
    name: str
    requires_confirmation: bool = False
    services: List[ServiceConfig] = Field(default_factory=list)
    professionals: List[ProfessionalConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_catalog(self) -> "ProviderConfig":
        """Ensure ids are unique and professionals only offer the provider's services."""
        service_ids = [service.id for service in self.services]
        if len(service_ids) != len(set(service_ids)):
            raise ValueError(f"Duplicate service id in provider {self.id}")

        professional_ids = [professional.id for professional in self.professionals]
        if len(professional_ids) != len(set(professional_ids)):
            raise ValueError(f"Duplicate professional id in provider {self.id}")

        known = set(service_ids)
        for professional in self.professionals:
            unknown = [sid for sid in professional.services if sid not in known]
            if unknown:
                raise ValueError(
                    f"Professional {professional.id} offers unknown service(s): {', '.join(unknown)}"
                )
        return self

    def to_services(self) -> List[Service]:
        return [
            Service(
                id=service.id,
                name=service.name,
                duration_minutes=service.duration_minutes,
                price_cents=service.price_cents,
                provider_id=self.id,
            )
            for service in self.services
        ]

    def to_professionals(self) -> List[Professional]:
        return [
            Professional(
                id=professional.id,
                name=professional.name,
                provider_id=self.id,
                service_ids=list(professional.services),
                weekly_schedule=professional.to_schedule(),
            )
            for professional in self.professionals
        ]


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "America/Sao_Paulo"
    log_level: str = "INFO"
    booking: BookingDefaults = Field(default_factory=BookingDefaults)
    providers: List[ProviderConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value!r}")
        return level

    @field_validator("providers")
    @classmethod
    def validate_unique_ids(cls, value: List[ProviderConfig]) -> List[ProviderConfig]:
        """Provider and professional ids must be unique across the whole catalog."""
        seen_providers: set[str] = set()
        seen_professionals: set[str] = set()
        for provider in value:
            if provider.id in seen_providers:
                raise ValueError(f"Duplicate provider id detected: {provider.id}")
            seen_providers.add(provider.id)
            for professional in provider.professionals:
                if professional.id in seen_professionals:
                    raise ValueError(f"Duplicate professional id detected: {professional.id}")
                seen_professionals.add(professional.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_provider(self, provider_id: str) -> ProviderConfig | None:
        for provider in self.providers:
            if provider.id == provider_id:
                return provider
        return None

    def provider_of(self, professional_id: str) -> ProviderConfig | None:
        """Find the provider employing a professional."""
        for provider in self.providers:
            if any(professional.id == professional_id for professional in provider.professionals):
                return provider
        return None

    def professionals_by_id(self) -> Dict[str, Professional]:
        return {
            professional.id: professional
            for provider in self.providers
            for professional in provider.to_professionals()
        }

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.booking.upstream_retry_attempts,
            base_delay=self.booking.upstream_retry_base_delay,
            max_delay=self.booking.upstream_retry_max_delay,
        )

    def slot_generator(self) -> SlotGenerator:
        return SlotGenerator(step_minutes=self.booking.slot_step_minutes)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
