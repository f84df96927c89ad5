#!/usr/bin/env python3
# scripts/chronoseal_verify.py

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from chronoseal.core.config import load_config
from chronoseal.core.engine import build_engine
from chronoseal.errors import IntegrityError
from chronoseal.report.audit_log import AuditLog

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("chronoseal_verify")

EXIT_MATCH = 0
EXIT_ERROR = 1
EXIT_TAMPERED = 2


def load_batch_items(batch_path: Path) -> List[Dict[str, Any]]:
    """
    Load batch items from a JSON file.

    Accepts a list of {"id": ..., "content": ...} objects, or an object with a
    "documents" list. Items may give "file" instead of "content" to verify a
    file's raw bytes.
    """
    with open(batch_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("documents", [])

    items = []
    for item in data:
        if isinstance(item, dict) and "file" in item and "content" not in item:
            item = dict(item)
            item["content"] = (batch_path.parent / item.pop("file")).read_bytes()
        items.append(item)
    logger.info(f"Loaded {len(items)} batch items from {batch_path}")
    return items


def main():
    parser = argparse.ArgumentParser(
        description="ChronoSeal Integrity Verification Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Verify text against a sealed document
  chronoseal_verify.py --owner user-42 --id 65f1c2... --text "Confidential Contract v2.1"

  # Verify a file and keep the audit trail
  chronoseal_verify.py --owner user-42 --id 65f1c2... --file scan.pdf --audit-log audit.json

  # Batch verification
  chronoseal_verify.py --owner user-42 --batch items.json --audit-log audit.json

Exit status: 0 all documents intact, 2 tampering detected, 1 error.
        """,
    )

    parser.add_argument("--owner", required=True, help="Owner (authenticated user) id")
    parser.add_argument("--id", help="Document id returned when the document was sealed")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Document text, Base64 string or data URI")
    source.add_argument("--file", help="Path to a file verified as raw bytes")
    source.add_argument("--batch", help="JSON file with items to verify in one batch")
    parser.add_argument("--audit-log", help="Write a JSON audit manifest to this path")
    parser.add_argument("--operator", help="Operator name recorded in the audit log")
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

    if not args.batch and not args.id:
        parser.error("--id is required unless --batch is given")
    if args.batch and args.id:
        parser.error("--id cannot be combined with --batch; give ids in the batch file")

    try:
        config = load_config(args.config)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(EXIT_ERROR)

    if config.storage.backend == "memory":
        logger.warning(
            "In-memory storage selected: documents do not persist between commands"
        )

    engine = build_engine(config)
    try:
        engine.initialize()
        if args.batch:
            batch = engine.verify_batch(args.owner, load_batch_items(Path(args.batch)))
            results = batch.results
            output = batch.model_dump(mode="json", by_alias=True)
            all_matched = batch.fail_count == 0
        else:
            content = Path(args.file).read_bytes() if args.file else args.text
            result = engine.verify(args.owner, args.id, content)
            results = [result]
            output = result.model_dump(mode="json", by_alias=True)
            all_matched = result.match
    except IntegrityError as e:
        logger.error(f"Verification failed ({e.kind}): {e.message}")
        sys.exit(EXIT_ERROR)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read input: {e}")
        sys.exit(EXIT_ERROR)
    finally:
        engine.document_store.close()

    if args.audit_log:
        AuditLog(operator=args.operator).write(results, args.audit_log)

    print(json.dumps(output, indent=2))
    sys.exit(EXIT_MATCH if all_matched else EXIT_TAMPERED)


if __name__ == "__main__":
    main()
