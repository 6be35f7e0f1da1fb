"""Model-hosting service credentials."""

from bimqa.aps.tokens import TokenCache, client_credentials_fetcher

__all__ = ["TokenCache", "client_credentials_fetcher"]
