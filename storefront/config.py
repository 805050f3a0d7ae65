# storefront.config
"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Nettoie les valeurs d'environnement (guillemets, backticks, espaces)
- Regroupe les secrets/URLs (Stripe, Resend, Supabase) dans des objets immuables
  passés explicitement au Builder, au Reconciler, au repository et au notifier.
  Aucun de ces composants ne lit os.environ lui-même.
"""
import os
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)


def _clean_env(v: Optional[str]) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")


def _as_bool(v: Optional[str], default: bool) -> bool:
    cleaned = _clean_env(v).lower()
    if not cleaned:
        return default
    return cleaned in ("1", "true", "yes", "on")


def _as_list(v: Optional[str], default: str) -> List[str]:
    return [p.strip() for p in (_clean_env(v) or default).split(",") if p.strip()]


@dataclass(frozen=True)
class StripeSettings:
    secret_key: str = ""
    webhook_secret: str = ""
    webhook_tolerance: int = 300
    currency: str = "usd"

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)


@dataclass(frozen=True)
class EmailSettings:
    resend_api_key: str = ""
    sender: str = "Dreher's Cheesecake <orders@dreherscheesecake.com>"
    api_url: str = "https://api.resend.com/emails"

    @property
    def is_configured(self) -> bool:
        return bool(self.resend_api_key)


@dataclass(frozen=True)
class SupabaseSettings:
    url: str = ""
    service_key: str = ""


@dataclass(frozen=True)
class Settings:
    stripe: StripeSettings = field(default_factory=StripeSettings)
    email: EmailSettings = field(default_factory=EmailSettings)
    supabase: SupabaseSettings = field(default_factory=SupabaseSettings)
    site_url: str = "http://localhost:4321"
    deposit_threshold: Decimal = Decimal("150")
    deposit_rate: Decimal = Decimal("0.5")
    order_number_prefix: str = "DRH"
    http_timeout: float = 10.0
    # True: on acquitte Stripe même si la matérialisation échoue (pas de retry)
    webhook_ack_on_error: bool = True
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    allowed_hosts: List[str] = field(default_factory=lambda: ["localhost", "127.0.0.1"])
    rate_limit_redis_url: str = "redis://127.0.0.1:6379/0"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Construit la configuration à partir d'un mapping (os.environ par défaut).
        - SUPABASE_URL sans schéma est préfixée en https://
        - SITE_URL est normalisée sans "/" final
        """
        env = os.environ if env is None else env

        supabase_url = _clean_env(env.get("SUPABASE_URL"))
        if supabase_url and not supabase_url.startswith("http"):
            supabase_url = "https://" + supabase_url
        supabase_url = supabase_url.rstrip("/")

        return cls(
            stripe=StripeSettings(
                secret_key=_clean_env(env.get("STRIPE_SECRET_KEY")),
                webhook_secret=_clean_env(env.get("STRIPE_WEBHOOK_SECRET")),
                webhook_tolerance=int(_clean_env(env.get("STRIPE_WEBHOOK_TOLERANCE")) or 300),
                currency=(_clean_env(env.get("STRIPE_CURRENCY")) or "usd").lower(),
            ),
            email=EmailSettings(
                resend_api_key=_clean_env(env.get("RESEND_API_KEY")),
                sender=_clean_env(env.get("EMAIL_FROM")) or EmailSettings.sender,
            ),
            supabase=SupabaseSettings(
                url=supabase_url,
                service_key=_clean_env(env.get("SUPABASE_SERVICE_KEY")),
            ),
            site_url=(_clean_env(env.get("SITE_URL")) or "http://localhost:4321").rstrip("/"),
            deposit_threshold=Decimal(_clean_env(env.get("DEPOSIT_THRESHOLD")) or "150"),
            deposit_rate=Decimal(_clean_env(env.get("DEPOSIT_RATE")) or "0.5"),
            order_number_prefix=_clean_env(env.get("ORDER_NUMBER_PREFIX")) or "DRH",
            http_timeout=float(_clean_env(env.get("HTTP_TIMEOUT_SECONDS")) or 10),
            webhook_ack_on_error=_as_bool(env.get("WEBHOOK_ACK_ON_ERROR"), True),
            cors_origins=_as_list(env.get("CORS_ORIGINS"), "*"),
            allowed_hosts=_as_list(env.get("ALLOWED_HOSTS"), "localhost,127.0.0.1"),
            rate_limit_redis_url=_clean_env(env.get("RATE_LIMIT_REDIS_URL")) or "redis://127.0.0.1:6379/0",
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Configuration du processus, lue une seule fois (dépendance FastAPI)."""
    return Settings.from_env()
