"""
Serving — FastAPI application exposing context retrieval over HTTP.

Run with any ASGI server, e.g. ``uvicorn knowledge_rag.serving.app:app``.
"""
