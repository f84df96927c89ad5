#!/usr/bin/env python3
# scripts/chronoseal_store.py

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
logger = logging.getLogger("chronoseal_store")


def main():
    parser = argparse.ArgumentParser(
        description="ChronoSeal Document Sealing Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Seal a text document
  chronoseal_store.py --owner user-42 --text "Confidential Contract v2.1"

  # Seal an uploaded file and keep the receipt
  chronoseal_store.py --owner user-42 --file scan.pdf --file-type application/pdf \\
                      --output receipts/scan.json
        """,
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Document text, Base64 string or data URI")
    source.add_argument("--file", help="Path to a file sealed as raw bytes")

    parser.add_argument("--owner", required=True, help="Owner (authenticated user) id")
    parser.add_argument("--file-type", help="MIME type recorded with the document")
    parser.add_argument("--output", help="Write the store receipt to this JSON file")
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

    file_name = None
    if args.file:
        file_path = Path(args.file)
        if not file_path.is_file():
            parser.error(f"File not found: {file_path}")
        content = file_path.read_bytes()
        file_name = file_path.name
    else:
        content = args.text

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
        receipt = engine.store(
            args.owner, content, file_name=file_name, file_type=args.file_type
        )
    except IntegrityError as e:
        logger.error(f"Store failed ({e.kind}): {e.message}")
        sys.exit(1)
    finally:
        engine.document_store.close()

    receipt_json = receipt.model_dump(mode="json", by_alias=True)
    if args.output:
        output_path = Path(args.output).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(receipt_json, f, indent=2)
        logger.info(f"Receipt written to {output_path}")

    print(json.dumps(receipt_json, indent=2))


if __name__ == "__main__":
    main()
