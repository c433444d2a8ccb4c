"""Bootstrap del contenedor de DI (kink) para la integración WhatsApp."""
from kink import di
from .settings import Settings
from .logging import configure_logging
from ..connectors.evolution.evolution_adapter import EvolutionAdapter
from ..domain.services.connection_manager import ConnectionManager
from ..domain.services.webhook_ingestor import WebhookIngestor
from ..domain.services.bulk_dispatcher import BulkDispatcher

def bootstrap_di(settings: Settings | None = None) -> None:
    """Registra los singletons del proceso; el ConnectionManager es único."""
    settings = settings or Settings()
    configure_logging(settings.log_level)
    di[Settings] = settings
    di[EvolutionAdapter] = EvolutionAdapter(settings)
    di[ConnectionManager] = ConnectionManager(di[EvolutionAdapter], settings)
    di[WebhookIngestor] = WebhookIngestor(di[ConnectionManager])
    di[BulkDispatcher] = BulkDispatcher(di[ConnectionManager], di[EvolutionAdapter], settings)
