"""
Schedule source reading the provider catalog from the application config.
"""

from typing import Dict, List

from ..config import AppConfig
from ..domain.exceptions import InvalidRequest
from ..domain.models import Professional, Service


class CatalogScheduleSource:
    """
    Serves professionals, schedules and services from ``AppConfig.providers``.

    Schedules are read-only here; they change only by editing the catalog.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self._professionals: Dict[str, Professional] = config.professionals_by_id()
        self._services: Dict[str, List[Service]] = {
            provider.id: provider.to_services() for provider in config.providers
        }

    def get_professional(self, professional_id: str) -> Professional:
        try:
            return self._professionals[professional_id]
        except KeyError:
            raise InvalidRequest(f"Unknown professional: {professional_id!r}.") from None

    def get_services(self, provider_id: str) -> List[Service]:
        if provider_id not in self._services:
            raise InvalidRequest(f"Unknown provider: {provider_id!r}.")
        return list(self._services[provider_id])

    def requires_confirmation(self, provider_id: str) -> bool:
        provider = self.config.find_provider(provider_id)
        if provider is None:
            raise InvalidRequest(f"Unknown provider: {provider_id!r}.")
        return provider.requires_confirmation

    def list_professionals(self) -> List[Professional]:
        return list(self._professionals.values())
