#!/usr/bin/env python3
# scripts/chronoseal_list.py

import argparse
import json
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from chronoseal.core.config import load_config
from chronoseal.core.engine import build_engine
from chronoseal.errors import IntegrityError

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("chronoseal_list")


def main():
    parser = argparse.ArgumentParser(
        description="ChronoSeal Document Listing Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Newest 20 documents
  chronoseal_list.py --owner user-42 --limit 20

  # Delete a sealed document
  chronoseal_list.py --owner user-42 --delete 65f1c2...
        """,
    )

    parser.add_argument("--owner", required=True, help="Owner (authenticated user) id")
    parser.add_argument("--limit", type=int, help="Page size (default from config)")
    parser.add_argument("--skip", type=int, default=0, help="Documents to skip (default: 0)")
    parser.add_argument("--delete", metavar="ID", help="Delete this document instead of listing")
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Configuration file path (default: config/config.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    if config.storage.backend == "memory":
        logger.warning(
            "In-memory storage selected: documents do not persist between commands"
        )

    engine = build_engine(config)
    try:
        engine.initialize()
        if args.delete:
            engine.delete_document(args.owner, args.delete)
            output = {"deleted": args.delete}
        else:
            total, documents = engine.list_documents(
                args.owner, limit=args.limit, skip=args.skip
            )
            output = {
                "total": total,
                "documents": [
                    d.model_dump(mode="json", by_alias=True) for d in documents
                ],
            }
    except IntegrityError as e:
        logger.error(f"Request failed ({e.kind}): {e.message}")
        sys.exit(1)
    finally:
        engine.document_store.close()

    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
