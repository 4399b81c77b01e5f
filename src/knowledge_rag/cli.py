"""Command-line entry point.

Usage::

    knowledge-rag ingest docs/intro.md docs/faq.txt --namespace docs
    knowledge-rag context "How do I rotate API keys?" --namespace docs
"""

from __future__ import annotations

import argparse
import logging
import sys

import openai

from knowledge_rag.config import settings
from knowledge_rag.errors import KnowledgeRagError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="knowledge-rag", description="Ingest documents and retrieve context.")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Chunk, embed and upsert text documents")
    ingest.add_argument("paths", nargs="+", help=".txt, .md or .mdx files")
    ingest.add_argument(
        "--namespace",
        default=settings.pinecone_namespace or "default",
        help="Index namespace (default: PINECONE_NAMESPACE or 'default')",
    )

    context = sub.add_parser("context", help="Print the retrieved context for a question")
    context.add_argument("question")
    context.add_argument("--namespace", default=settings.pinecone_namespace, help="Index namespace")
    context.add_argument("--max-chars", type=int, default=settings.max_context_chars)
    context.add_argument("--min-score", type=float, default=settings.min_score)
    return parser


def _ingest(args: argparse.Namespace) -> int:
    from knowledge_rag.factory import build_ingestion_pipeline

    pipeline = build_ingestion_pipeline(settings)
    try:
        report = pipeline.ingest_paths(args.paths, namespace=args.namespace)
    except (KnowledgeRagError, openai.OpenAIError) as exc:
        logger.error("Ingestion aborted: %s", exc)
        return 1
    print(report.summary())
    return 1 if report.upload_failed else 0


def _context(args: argparse.Namespace) -> int:
    from knowledge_rag.factory import build_retriever

    retriever = build_retriever(settings)
    print(
        retriever.get_context(
            args.question,
            namespace=args.namespace,
            max_chars=args.max_chars,
            min_score=args.min_score,
        )
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _build_parser().parse_args(argv)
    handlers = {"ingest": _ingest, "context": _context}
    try:
        return handlers[args.command](args)
    except KnowledgeRagError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
