"""API Flask: conexión WhatsApp, envíos y webhook de la Evolution API.

La capa CRUD elige destinatarios y persiste los resultados; acá sólo se
expone el núcleo de conexión y envío.
"""
from __future__ import annotations
from flask import Flask, request, jsonify
from kink import di
from pydantic import ValidationError
from ..core.di import bootstrap_di
from ..core.errors import NotConnectedError
from ..core.logging import set_trace_id, get_logger
from ..domain.services.connection_manager import ConnectionManager
from ..domain.services.webhook_ingestor import WebhookIngestor
from ..domain.services.bulk_dispatcher import BulkDispatcher
from ..ports.interfaces import Recipient, summarize

log = get_logger()

def create_app(bootstrap: bool = True) -> Flask:
    """Crea la app. Con ``bootstrap=False`` usa lo que ya esté registrado en ``di``."""
    if bootstrap:
        bootstrap_di()
    app = Flask(__name__)

    @app.before_request
    def _trace():
        set_trace_id(request.headers.get("X-Trace-Id"))

    @app.get("/healthz")
    def healthz():
        """Health check básico."""
        return {"ok": True}

    @app.post("/whatsapp/connect")
    def connect():
        """Inicia la conexión; el QR (si hace falta) se lee luego en /status."""
        if di[ConnectionManager].initialize():
            return jsonify({"success": True, "message": "Iniciando conexión de WhatsApp..."})
        status = di[ConnectionManager].get_status()
        return jsonify({"success": False, "error": status.message or "No se pudo inicializar WhatsApp"})

    @app.get("/whatsapp/status")
    def status():
        return jsonify(di[ConnectionManager].get_status().to_json())

    @app.post("/whatsapp/disconnect")
    def disconnect():
        di[ConnectionManager].disconnect()
        return jsonify({"success": True, "message": "WhatsApp desconectado"})

    @app.get("/whatsapp/instance")
    def instance():
        return jsonify({"instance": di[ConnectionManager].instance_info()})

    @app.post("/whatsapp/prueba")
    def send_test():
        """Mensaje de prueba a un solo número."""
        body = request.get_json(silent=True) or {}
        telefono = str(body.get("telefono") or "").strip()
        mensaje = body.get("mensaje") or ""
        if not telefono or not mensaje:
            return {"success": False, "error": "faltan telefono o mensaje"}, 400
        try:
            outcome = di[BulkDispatcher].send_message(telefono, mensaje)
        except NotConnectedError as e:
            return jsonify({"success": False, "error": str(e)})
        return jsonify({
            "success": outcome.success,
            "message": "Mensaje de prueba enviado" if outcome.success else "No se pudo enviar el mensaje de prueba",
            "resultado": outcome.model_dump(mode="json"),
        })

    @app.post("/whatsapp/enviar")
    def send_bulk():
        """Envío masivo. Cuerpo: {"template": "...", "recipients": [{"id", "nombre", "telefono"}]}."""
        body = request.get_json(silent=True) or {}
        template = body.get("template") or ""
        try:
            recipients = [
                Recipient(identifier=r.get("id"), display_name=r.get("nombre") or "", phone_raw=str(r.get("telefono") or ""))
                for r in body.get("recipients") or []
            ]
        except (AttributeError, ValidationError) as e:
            return {"success": False, "error": f"destinatarios inválidos: {e}"}, 400
        if not template or not recipients:
            return {"success": False, "error": "faltan template o recipients"}, 400
        try:
            outcomes = di[BulkDispatcher].send_bulk(recipients, template)
        except NotConnectedError:
            return jsonify({
                "success": False,
                "error": "WhatsApp no está conectado. Conecta primero y espera a que se establezca la conexión.",
            })
        summary = summarize(outcomes)
        return jsonify({
            "success": True,
            "mensaje": f"{summary.succeeded} mensajes enviados, {summary.failed} fallidos.",
            "detalles": summary.model_dump(),
            "resultados": [o.model_dump(mode="json") for o in outcomes],
        })

    @app.post("/webhook/whatsapp")
    def webhook():
        """Eventos de la Evolution API. Siempre responde 200."""
        raw = request.get_json(silent=True)
        di[WebhookIngestor].ingest(raw)
        return jsonify({"received": True})

    return app

def main() -> None:
    """Punto de entrada ``sistema-puntos-whatsapp``: servidor de desarrollo Flask."""
    from ..core.settings import Settings
    app = create_app()
    s = di[Settings]
    log.info("server_start", host=s.host, port=s.port)
    app.run(host=s.host, port=s.port, debug=s.flask_debug)
