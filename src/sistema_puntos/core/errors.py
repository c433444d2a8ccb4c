"""Excepciones del núcleo WhatsApp."""

class SistemaPuntosError(Exception):
    """Base de los errores propios."""

class NotConnectedError(SistemaPuntosError):
    """Se intentó enviar con la instancia desconectada. Nada se envió."""
    def __init__(self, message: str = "WhatsApp no está conectado"):
        super().__init__(message)

class GatewayError(SistemaPuntosError):
    """Respuesta no-2xx de la Evolution API."""
    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"gateway respondió {status_code}: {detail}" if detail else f"gateway respondió {status_code}")
