from ..providers import Provider
from .base import ProviderClient
from .fireworks_client import FireworksClient
from .openai_client import OpenAIClient

# One client class per provider; adding a provider adds one entry here
CLIENTS: dict[Provider, type[ProviderClient]] = {
    Provider.OPENAI: OpenAIClient,
    Provider.FIREWORKS: FireworksClient,
}


def get_client(provider: Provider, **kwargs) -> ProviderClient:
    """Instantiate the client registered for ``provider``."""
    return CLIENTS[provider](**kwargs)


__all__ = ['ProviderClient', 'OpenAIClient', 'FireworksClient', 'CLIENTS', 'get_client']
