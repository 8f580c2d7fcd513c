"""
Configuration du service, lue depuis les variables d'environnement.
Les réglages de la salle (créneaux simultanés, durée, pause) vivent dans
la table des paramètres du store, pas ici.
"""
import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_STAFF = [
    "Mike Wilson",
    "Jennifer Lee",
    "David Chen",
    "Sarah Martinez",
    "Alex Thompson",
]


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name, default):
    value = os.getenv(name)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]


@dataclass
class Config:
    """Paramètres de l'application"""
    SECRET_KEY: str = field(default_factory=lambda: os.getenv('SECRET_KEY', 'secret!'))
    HOST: str = field(default_factory=lambda: os.getenv('HOST', '0.0.0.0'))
    PORT: int = field(default_factory=lambda: int(os.getenv('PORT', '5000')))
    DEBUG: bool = field(default_factory=lambda: _env_bool('DEBUG'))

    # URL publique encodée dans le QR code d'inscription
    PUBLIC_BASE_URL: str = field(default_factory=lambda: os.getenv('PUBLIC_BASE_URL', 'http://127.0.0.1:5000'))

    # 'eventlet' en production, 'threading' pour les tests
    ASYNC_MODE: str = field(default_factory=lambda: os.getenv('ASYNC_MODE', 'eventlet'))

    STAFF_ROSTER: List[str] = field(default_factory=lambda: _env_list('STAFF_ROSTER', DEFAULT_STAFF))
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))

    def __post_init__(self):
        if self.PORT <= 0:
            raise ValueError("PORT doit être un entier positif")
        self.PUBLIC_BASE_URL = self.PUBLIC_BASE_URL.rstrip('/')

    @property
    def registration_url(self):
        """URL vers laquelle pointe le QR code d'inscription."""
        return f"{self.PUBLIC_BASE_URL}/register"
