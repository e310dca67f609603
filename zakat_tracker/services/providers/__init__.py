"""Pluggable spot-price provider interface."""
from abc import ABC, abstractmethod
from typing import Optional


class MetalProvider(ABC):
    """Abstract base for metal spot-price providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @property
    @abstractmethod
    def requires_api_key(self) -> bool:
        """Whether this provider needs an API key."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if provider is properly configured (API key set if required)."""
        pass

    @abstractmethod
    def fetch_spot(self, metal: str, currency: str) -> Optional[float]:
        """Fetch the current spot price of a metal per troy ounce.

        Args:
            metal: 'gold' or 'silver'
            currency: ISO 4217 code the price should be quoted in

        Returns:
            Price per troy ounce, or None when the provider has no price

        Raises:
            ProviderError: If fetch fails
        """
        pass


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class RateLimitError(ProviderError):
    """API rate limit exceeded."""
    pass


class AuthenticationError(ProviderError):
    """API key invalid or missing."""
    pass


class NetworkError(ProviderError):
    """Network connectivity issue or timeout."""
    pass
