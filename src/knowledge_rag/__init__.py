"""
knowledge_rag — document ingestion and context retrieval over a vector index.

Public API
----------
- :class:`~knowledge_rag.ingestion.pipeline.IngestionPipeline` — documents in, indexed vectors out.
- :class:`~knowledge_rag.retrieval.retriever.ContextRetriever` — question in, context string out.
- :mod:`knowledge_rag.factory` — build both from :data:`knowledge_rag.config.settings`.
"""

__version__ = "0.1.0"
