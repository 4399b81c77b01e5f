"""
Ingestion — document loading, chunking, embedding and upload.

Converts plain-text documents into embedded chunks stored in the vector
index.  :class:`~knowledge_rag.ingestion.pipeline.IngestionPipeline` is the
entry point.
"""
