"""
Retrieval — vector index access and context assembly.

Public surface
--------------
- :class:`ContextRetriever` — question in, bounded context string out.
- :class:`ContextAssembler` — score filter, text extraction and truncation.
- :class:`VectorStoreBase` — abstract backend; see :class:`InMemoryVectorStore`
  and ``knowledge_rag.retrieval.pinecone_store.PineconeVectorStore``.
- :class:`IndexRecord`, :class:`Match`, :class:`UpsertResult` — data models.
"""

from knowledge_rag.retrieval.base import VectorStoreBase
from knowledge_rag.retrieval.context import ContextAssembler, extract_text
from knowledge_rag.retrieval.memory_store import InMemoryVectorStore
from knowledge_rag.retrieval.models import IndexRecord, Match, UpsertResult
from knowledge_rag.retrieval.retriever import ContextRetriever

__all__ = [
    "ContextAssembler",
    "ContextRetriever",
    "InMemoryVectorStore",
    "IndexRecord",
    "Match",
    "UpsertResult",
    "VectorStoreBase",
    "extract_text",
]
