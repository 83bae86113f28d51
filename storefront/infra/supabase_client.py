"""
Clients Supabase paresseux (créés au premier appel, puis réutilisés).
- anon: validation du jeton du client connecté (utils.security).
- service-role: réservations de stock, webhook et lecture des pedidos invités (bypass RLS).
Configuration absente -> ConfigurationMissingError (503), jamais au démarrage.
"""
from typing import Dict, Optional

from supabase import Client, create_client

from storefront import config
from storefront.errors import ConfigurationMissingError

_clients: Dict[str, Client] = {}


def _client(role: str, key: Optional[str], env_name: str) -> Client:
    if not config.SUPABASE_URL or not key:
        raise ConfigurationMissingError(
            f"SUPABASE_URL / {env_name} não configurados",
            {"missing": env_name if config.SUPABASE_URL else "SUPABASE_URL"},
        )
    if role not in _clients:
        _clients[role] = create_client(config.SUPABASE_URL, key)
    return _clients[role]


def get_supabase() -> Client:
    return _client("anon", config.SUPABASE_ANON, "SUPABASE_ANON_KEY")


def get_service_supabase() -> Client:
    return _client("service", config.SUPABASE_SERVICE_KEY, "SUPABASE_SERVICE_ROLE_KEY")
