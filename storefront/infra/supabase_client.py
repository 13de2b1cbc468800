"""
Clients Supabase partagés par le processus, créés au premier usage.
- anon: lectures publiques (photos, auth)
- utilisateur: client anon porteur du jeton, lectures sous RLS (droits de l’utilisateur)
- service: écritures serveur (paiements, droits d’achat), hors RLS
"""
from typing import Dict

from supabase import create_client, Client

from storefront import config

_clients: Dict[str, Client] = {}

def _client(role: str, key: str) -> Client:
    if role not in _clients:
        _clients[role] = create_client(config.SUPABASE_URL, key)
    return _clients[role]

def get_supabase() -> Client:
    return _client("anon", config.SUPABASE_ANON)

def get_service_supabase() -> Client:
    if not config.SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant: écritures paiements impossibles")
    return _client("service", config.SUPABASE_SERVICE_KEY)

def get_user_supabase(user_token: str) -> Client:
    """
    Client 'anon' authentifié par le jeton de l’utilisateur (RLS actif).
    Jamais mis en cache: un client par requête, sans toucher aux clients partagés.
    """
    if not user_token:
        raise ValueError("user_token requis")
    client = create_client(config.SUPABASE_URL, config.SUPABASE_ANON)
    client.postgrest.auth(user_token)
    return client
