#!/usr/bin/env python3
"""
SQLGrid Server
==============

FastAPI server exposing one SQL file to a table view:
- WebSocket message channel (/ws) speaking the view protocol
- REST access to the parsed document and the message handler
- Health checks and Prometheus metrics
- Background polling of the file for external changes

All message handling runs on the event loop thread, one message at a time,
so the host sees exactly the in-order, non-reentrant stream it expects.
"""

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
import uvicorn
from pydantic import BaseModel

# Monitoring and metrics
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST

from config.settings import SQLGridConfig, get_config, configure_logging
from core import __version__
from core.edit_operations import DocumentEditor
from interface.document_store import DocumentStore, InMemoryDocumentStore, SQLFileStore
from interface.message_host import SQLViewerHost

logger = logging.getLogger(__name__)

# Prometheus metrics
REQUEST_COUNT = Counter('sqlgrid_requests_total', 'Total HTTP requests', ['method', 'endpoint'])
REQUEST_DURATION = Histogram('sqlgrid_request_duration_seconds', 'HTTP request duration')
CONNECTED_VIEWS = Gauge('sqlgrid_connected_views', 'Open WebSocket views')
MESSAGE_COUNT = Counter('sqlgrid_messages_total', 'Inbound view messages handled', ['type'])
MESSAGE_DURATION = Histogram('sqlgrid_message_duration_seconds', 'View message handling time')
EDIT_ERRORS = Counter('sqlgrid_edit_errors_total', 'Rejected edit operations', ['operation'])

# Pydantic models
class DocumentResponse(BaseModel):
    """Current document and its parsed statements"""
    fileName: str
    version: int
    hash: str
    sql: str
    data: Dict[str, Any]

class MessagesResponse(BaseModel):
    """Outbound messages produced while handling one inbound message"""
    messages: List[Dict[str, Any]]

class HealthResponse(BaseModel):
    """Health check response model"""
    status: str
    timestamp: str
    version: str
    components: Dict[str, Any]
    uptime: float


class ViewerSession:
    """
    Fans host output out to every connected view.

    REST callers get the messages produced by their own request back in the
    response; WebSocket views receive everything through their own queue.
    """

    def __init__(self, store: DocumentStore, editor: DocumentEditor):
        self.store = store
        self.subscribers: List[asyncio.Queue] = []
        self._captured: Optional[List[Dict[str, Any]]] = None
        self.host = SQLViewerHost(store, self.publish, editor)

    def publish(self, message: Dict[str, Any]) -> None:
        if message.get('type') == 'editError':
            EDIT_ERRORS.labels(operation=str(message.get('operation'))).inc()
        if self._captured is not None:
            self._captured.append(message)
        for queue in self.subscribers:
            queue.put_nowait(message)

    def handle(self, raw: Any) -> List[Dict[str, Any]]:
        """Run one inbound message through the host and return what it posted"""
        message_type = raw.get('type') if isinstance(raw, dict) else None
        MESSAGE_COUNT.labels(type=str(message_type)).inc()

        start_time = time.time()
        self._captured = []
        try:
            self.host.receive(raw)
            return self._captured
        finally:
            self._captured = None
            MESSAGE_DURATION.observe(time.time() - start_time)

    def poll(self) -> bool:
        """Re-render if the stored text changed outside of the view"""
        return self.host.document_changed()


def build_editor(config: SQLGridConfig) -> DocumentEditor:
    """Wire the extraction/regeneration engine from configuration"""
    return DocumentEditor.create(dialect=config.dialect, regeneration=config.regeneration)


async def _poll_document(session: ViewerSession, interval: float):
    while True:
        await asyncio.sleep(interval)
        try:
            if session.poll():
                logger.info(f"{session.store.name} changed on disk, view refreshed")
        except OSError as e:
            logger.error(f"Failed to read {session.store.name}: {e}")


def create_app(sql_path: Optional[Union[str, Path]] = None,
               config: Optional[SQLGridConfig] = None,
               store: Optional[DocumentStore] = None) -> FastAPI:
    """Create and configure the FastAPI application for one SQL document"""

    config = config or get_config()
    if store is None:
        if sql_path is not None:
            store = SQLFileStore(sql_path, last_writer_wins=config.last_writer_wins)
        else:
            store = InMemoryDocumentStore(last_writer_wins=config.last_writer_wins)

    session = ViewerSession(store, build_editor(config))
    app_start_time = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting SQLGrid server for {store.name}")
        poller = None
        if config.poll_interval > 0:
            poller = asyncio.create_task(_poll_document(session, config.poll_interval))
        try:
            yield
        finally:
            if poller is not None:
                poller.cancel()
            logger.info("Shutting down SQLGrid server...")

    app = FastAPI(
        title="SQLGrid API",
        description="Table view and editing for SQL statement files",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.session = session
    app.state.config = config

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request tracking middleware
    @app.middleware("http")
    async def track_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=request.url.path
        ).inc()
        REQUEST_DURATION.observe(time.time() - start_time)
        return response

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health of the document store and the parser"""
        components: Dict[str, Any] = {"parser": "healthy"}
        status = "healthy"
        try:
            document = store.read()
            components["document"] = {"name": store.name, "version": document.version}
        except OSError as e:
            logger.error(f"Health check failed: {e}")
            components["document"] = {"name": store.name, "error": str(e)}
            status = "unhealthy"

        return HealthResponse(
            status=status,
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
            components=components,
            uptime=time.time() - app_start_time
        )

    @app.get("/metrics")
    async def metrics_endpoint():
        """Prometheus metrics endpoint"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/api/v1/document", response_model=DocumentResponse)
    async def get_document():
        """Current SQL text with its parsed table model"""
        try:
            document = store.read()
        except OSError as e:
            raise HTTPException(status_code=500, detail=f"Cannot read {store.name}: {e}")

        model = session.host.extractor.parse_document(document.text)
        return DocumentResponse(
            fileName=store.name,
            version=document.version,
            hash=document.content_hash,
            sql=document.text,
            data=model.to_dict()
        )

    @app.post("/api/v1/messages", response_model=MessagesResponse)
    async def post_message(message: Dict[str, Any]):
        """
        Handle one view message

        Returns the outbound messages (updateData, currentSQL, editError)
        the host produced for it, in order.
        """
        return MessagesResponse(messages=session.handle(message))

    @app.websocket("/ws")
    async def view_channel(websocket: WebSocket):
        """Bidirectional view protocol; one JSON message per frame"""
        await websocket.accept()
        queue: asyncio.Queue = asyncio.Queue()
        session.subscribers.append(queue)
        CONNECTED_VIEWS.inc()

        async def drain():
            while True:
                await websocket.send_json(await queue.get())

        sender = asyncio.create_task(drain())
        try:
            while True:
                text = await websocket.receive_text()
                try:
                    raw = json.loads(text)
                except ValueError:
                    logger.warning(f"Ignoring non-JSON frame: {text[:100]!r}")
                    continue
                session.handle(raw)
        except WebSocketDisconnect:
            logger.debug("View disconnected")
        finally:
            sender.cancel()
            session.subscribers.remove(queue)
            CONNECTED_VIEWS.dec()

    return app


def main():
    """Main entry point"""
    import argparse

    config = get_config()
    parser = argparse.ArgumentParser(description="SQLGrid Server")
    parser.add_argument("file", help="SQL file to serve")
    parser.add_argument("--host", default=config.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=config.port, help="Port to bind to")
    parser.add_argument("--log-level", default=config.log_level.lower(),
                        choices=["debug", "info", "warning", "error"])

    args = parser.parse_args()
    config.log_level = args.log_level.upper()
    configure_logging(config)

    app = create_app(args.file, config)

    logger.info(f"Starting SQLGrid server on {args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
