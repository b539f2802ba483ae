"""
Structured logging for store mutations, searches, provider fallbacks and RAG stages.
"""

import logging
import os
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for retrieval and generation operations."""

    def __init__(self, name: str = "lessonrag", level: str = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {sanitize_payload(details)}"

        self.logger.log(level, message)

    def log_document_operation(self, operation: str, document_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a document store mutation."""
        log_details = {"document_id": document_id}
        if details:
            log_details.update(details)

        self.log_operation(f"store.{operation}", status, log_details)

    def log_search(self, query: str, total_results: int, returned: int, search_time_ms: float, avg_similarity: float):
        """Log a completed semantic search."""
        log_details = {
            "query": query,
            "total_results": total_results,
            "returned": returned,
            "search_time_ms": round(search_time_ms, 2),
            "avg_similarity": round(avg_similarity, 4)
        }
        self.log_operation("search", "success", log_details, level=logging.DEBUG)

    def log_provider_fallback(self, capability: str, reason: str, details: Dict[str, Any] = None):
        """Log a provider call that was replaced by degraded output."""
        log_details = {"capability": capability, "reason": reason}
        if details:
            log_details.update(details)

        self.log_operation(f"provider.{capability}", "degraded", log_details, level=logging.WARNING)

    def log_rag_stage(self, stage: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a RAG pipeline stage transition."""
        self.log_operation(f"rag.{stage}", status, details, level=logging.DEBUG)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def sanitize_payload(payload: Any, max_length: int = 100, redact_fields: List[str] = None) -> Any:
    """Truncate long strings and redact named fields before they reach a log line."""
    if redact_fields is None:
        redact_fields = ['embedding', 'api_key', 'password']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if k in redact_fields:
                sanitized[k] = "[REDACTED]"
            else:
                sanitized[k] = sanitize_payload(v, max_length, redact_fields)
        return sanitized
    elif isinstance(payload, str):
        return payload[:max_length] + "..." if len(payload) > max_length else payload
    elif isinstance(payload, (list, tuple)):
        return [sanitize_payload(item, max_length, redact_fields) for item in payload]
    else:
        return payload


# Global logger instance
logger = StructuredLogger()
