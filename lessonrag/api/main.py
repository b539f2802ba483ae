"""
HTTP surface for semantic search, RAG answers, document management and stats.
"""

import logging
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .schemas import (
    AddDocumentRequest,
    AddDocumentResponse,
    AskRequest,
    AskResponse,
    DocumentModel,
    ErrorResponse,
    HealthResponse,
    ImportResponse,
    SearchRequest,
    SearchResponse,
    StatsResponse,
    UpdateDocumentRequest,
    UpdateDocumentResponse,
)
from ..core.backup import RestoreError, export_snapshot, import_snapshot
from ..core.config import VERSION, build_service, debug_enabled, validate_config
from ..vector.types import QueryValidationError, RAGOptions


def get_service(request: Request):
    """Dependency returning the service bound to this application."""
    return request.app.state.service


def create_app(service=None) -> FastAPI:
    """
    Build the FastAPI application around a RAGSearchService.

    Args:
        service: Service to serve; built from environment configuration when omitted
    """
    app = FastAPI(
        title="Lesson RAG API",
        version=VERSION,
        description="Semantic search and retrieval-augmented answers over the lesson library",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None
    )
    app.state.service = service if service is not None else build_service()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint(service=Depends(get_service)):
        """Report document count and provider configuration without calling providers."""
        issues = validate_config()
        gateway_status = service.gateway.status()
        return HealthResponse(
            status="healthy" if not issues else "misconfigured",
            version=VERSION,
            documents=service.store.count,
            embedding_provider=gateway_status["embedding_provider"],
            completion_provider=gateway_status["completion_provider"],
            embedding_dimension=gateway_status["embedding_dimension"],
            config_issues=issues
        )

    @app.post("/search", response_model=SearchResponse)
    def search_endpoint(request: SearchRequest, service=Depends(get_service)):
        """Semantic search with optional metadata filters."""
        filters = request.filters.model_dump(exclude_none=True) if request.filters else None
        result = service.semantic_search(
            request.query,
            filters=filters or None,
            limit=request.limit,
            threshold=request.threshold
        )
        return result.to_dict()

    @app.post("/ask", response_model=AskResponse)
    def ask_endpoint(request: AskRequest, service=Depends(get_service)):
        """Answer a question grounded in retrieved lesson passages."""
        options_kwargs = {
            "include_follow_up": request.includeFollowUp,
            "response_style": request.responseStyle,
        }
        if request.maxSources is not None:
            options_kwargs["max_sources"] = request.maxSources
        result = service.rag_query(request.query, RAGOptions(**options_kwargs))
        return result.to_dict()

    @app.put("/documents", response_model=AddDocumentResponse)
    def add_document_endpoint(request: AddDocumentRequest, service=Depends(get_service)):
        """Add a document; its embedding is generated before the call returns."""
        document_id = service.store.add(request.to_new_document())
        return AddDocumentResponse(
            success=True,
            documentId=document_id,
            message="Document added successfully"
        )

    @app.get("/documents/{document_id}", response_model=DocumentModel)
    def get_document_endpoint(document_id: str, service=Depends(get_service)):
        document = service.store.get(document_id)
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")
        return document.to_dict(include_embedding=False)

    @app.patch("/documents/{document_id}", response_model=UpdateDocumentResponse)
    def update_document_endpoint(document_id: str, request: UpdateDocumentRequest, service=Depends(get_service)):
        """Partially update a document; content changes re-embed it."""
        if not service.store.update(document_id, *request.to_updates()):
            raise HTTPException(status_code=404, detail="Document not found")
        return UpdateDocumentResponse(success=True, documentId=document_id)

    @app.delete("/documents/{document_id}", response_model=UpdateDocumentResponse)
    def delete_document_endpoint(document_id: str, service=Depends(get_service)):
        if not service.store.remove(document_id):
            raise HTTPException(status_code=404, detail="Document not found")
        return UpdateDocumentResponse(success=True, documentId=document_id)

    @app.get("/stats", response_model=StatsResponse)
    def stats_endpoint(service=Depends(get_service)):
        """Counts by type and difficulty, plus the most frequent topics."""
        return service.get_stats()

    @app.get("/export")
    def export_endpoint(service=Depends(get_service)) -> Dict[str, Any]:
        """Snapshot of every document, embeddings included."""
        return export_snapshot(service.store)

    @app.post("/import", response_model=ImportResponse)
    def import_endpoint(snapshot: Dict[str, Any] = Body(...), service=Depends(get_service)):
        """Replace the store with a snapshot, re-embedding documents that lack embeddings."""
        try:
            reembedded = import_snapshot(service.store, snapshot)
        except RestoreError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return ImportResponse(success=True, documents=service.store.count, reembedded=reembedded)

    @app.exception_handler(QueryValidationError)
    async def query_validation_handler(request, exc):
        """Malformed caller input is rejected, not absorbed."""
        error = ErrorResponse(error_type="VALIDATION_ERROR", message=str(exc))
        return JSONResponse(status_code=400, content=error.model_dump(mode="json"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Handle all unhandled exceptions."""
        logging.error(f"Unhandled exception: {exc}")
        content = {"detail": "Internal server error"}
        if debug_enabled():
            content["debug"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    return app
