#!/usr/bin/env python3
"""
Command-line access to the lesson retrieval engine.
Search, ask, or print stats against the sample corpus or a snapshot file.
"""

import argparse
import json
import sys

from lessonrag.core.backup import BackupError, RestoreError, export_to_file, import_from_file
from lessonrag.core.config import build_service, validate_config
from lessonrag.vector.types import QueryValidationError, RAGOptions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Semantic search and RAG answers over the lesson library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s search "What does temperature control?" --limit 3
  %(prog)s search "prompting" --type example --difficulty intermediate
  %(prog)s ask "How do I stop prompt injection?" --style concise
  %(prog)s stats --snapshot lessons.json
  %(prog)s stats --export lessons.json

Environment variables:
- EMBED_PROVIDER=hash|ollama|sentence-transformers|none
- COMPLETION_PROVIDER=ollama|mock|none
- OLLAMA_HOST=http://localhost:11434
        """
    )
    parser.add_argument("--snapshot", help="Load documents from a snapshot file instead of the sample corpus")
    parser.add_argument("--export", help="Write a snapshot file after the command runs")

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Semantic search")
    search.add_argument("query")
    search.add_argument("--limit", type=int)
    search.add_argument("--threshold", type=float)
    search.add_argument("--type", action="append", dest="types", help="Document type filter (repeatable)")
    search.add_argument("--difficulty", action="append", help="Difficulty filter (repeatable)")
    search.add_argument("--topic", action="append", dest="topics", help="Topic filter (repeatable)")
    search.add_argument("--source", action="append", help="Source filter (repeatable)")

    ask = subparsers.add_parser("ask", help="Retrieval-augmented answer")
    ask.add_argument("query")
    ask.add_argument("--max-sources", type=int)
    ask.add_argument("--style", choices=["concise", "detailed", "conversational"], default="detailed")
    ask.add_argument("--no-follow-up", action="store_true")

    subparsers.add_parser("stats", help="Document statistics")
    return parser


def run(args) -> dict:
    service = build_service(seed=not args.snapshot)
    try:
        if args.snapshot:
            import_from_file(service.store, args.snapshot)

        if args.command == "search":
            filters = {
                key: value for key, value in (
                    ("type", args.types),
                    ("difficulty", args.difficulty),
                    ("topics", args.topics),
                    ("source", args.source),
                ) if value
            }
            output = service.semantic_search(
                args.query, filters=filters or None, limit=args.limit, threshold=args.threshold
            ).to_dict()
        elif args.command == "ask":
            options = {"include_follow_up": not args.no_follow_up, "response_style": args.style}
            if args.max_sources is not None:
                options["max_sources"] = args.max_sources
            output = service.rag_query(args.query, RAGOptions(**options)).to_dict()
        else:
            output = service.get_stats()

        if args.export:
            export_to_file(service.store, args.export)
        return output
    finally:
        service.close()


def main():
    parser = build_parser()
    args = parser.parse_args()

    issues = validate_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}", file=sys.stderr)
        return 1

    try:
        output = run(args)
    except QueryValidationError as e:
        print(f"ERROR: Invalid input: {e}", file=sys.stderr)
        return 2
    except (BackupError, RestoreError) as e:
        print(f"ERROR: Snapshot failed: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
