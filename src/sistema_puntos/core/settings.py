"""Configuración Pydantic Settings de la integración WhatsApp (Evolution API)."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    """Configuración de la aplicación. Se carga desde env y .env.

    Las credenciales de la Evolution API llegan siempre por env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SP_", case_sensitive=False)

    # Flask
    flask_debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # Evolution API
    evolution_api_url: str = Field(..., description="URL base de la Evolution API, ej: http://evolution:8080")
    evolution_api_key: str = Field(..., description="apikey global de la Evolution API")
    evolution_instance_name: str = Field(default="sistema-puntos-2025")
    evolution_webhook_url: str | None = Field(default=None, description="URL pública de /webhook/whatsapp")
    webhook_events: list[str] = Field(default_factory=lambda: ["MESSAGES_UPSERT", "CONNECTION_UPDATE"])
    logout_on_disconnect: bool = Field(default=False)

    # Timeouts (segundos)
    state_timeout_s: float = Field(default=10)
    connect_timeout_s: float = Field(default=15)
    send_timeout_s: float = Field(default=10)
    profile_timeout_s: float = Field(default=8)

    # Polling de conexión: 40 x 3s ~ 2 minutos
    poll_interval_s: float = Field(default=3)
    poll_max_attempts: int = Field(default=40)

    # Envío masivo
    bulk_delay_s: float = Field(default=2)
    name_placeholder: str = Field(default="[NOMBRE]")

    log_level: str = Field(default="INFO")
