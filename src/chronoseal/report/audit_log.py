# src/chronoseal/report/audit_log.py

import getpass
import json
import logging
import platform
import socket
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from chronoseal.normalize.schema import BatchItemError, VerificationResult

logger = logging.getLogger(__name__)


class AuditLog:
    """
    Writes verification audit trails to a standalone JSON manifest.

    Audit trails are never persisted by the engine; this is how an operator
    keeps them for compliance.
    """

    def __init__(
        self,
        operator: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        """
        Initialize audit log context.

        Args:
            operator: Person or service running the verification (defaults to OS user)
            organization: Verifying organization (defaults to host FQDN)
        """
        self.operator = operator or getpass.getuser()
        self.organization = organization or socket.getfqdn()
        self.tool_name = "ChronoSeal"
        self.tool_version = self._get_tool_version()
        self.system_info = {
            "hostname": socket.gethostname(),
            "os": platform.platform(),
            "python_version": platform.python_version(),
        }

    def _get_tool_version(self) -> str:
        from chronoseal import __version__

        return __version__

    def build_manifest(
        self, results: Iterable[Union[VerificationResult, BatchItemError]]
    ) -> Dict[str, Any]:
        """
        Build the audit manifest for a set of verification outcomes.

        Salts are left out of the manifest; digests are kept so a reviewer can
        see what was compared.
        """
        results = list(results)
        verifications: List[Dict[str, Any]] = []
        errors: List[Dict[str, Any]] = []
        for result in results:
            if isinstance(result, VerificationResult):
                trail = result.audit_trail.model_dump(
                    mode="json", by_alias=True, exclude={"salt"}
                )
                verifications.append(trail)
            else:
                errors.append(result.model_dump(mode="json", by_alias=True))

        matched = sum(1 for v in verifications if v["match"])
        return {
            "auditHeader": {
                "operator": self.operator,
                "organization": self.organization,
                "generatedAt": self._get_timestamp(),
                "tool": f"{self.tool_name} v{self.tool_version}",
                "systemInfo": self.system_info,
            },
            "summary": {
                "totalItems": len(results),
                "matched": matched,
                "tampered": len(verifications) - matched,
                "errors": len(errors),
            },
            "verifications": verifications,
            "errors": errors,
        }

    def write(
        self,
        results: Iterable[Union[VerificationResult, BatchItemError]],
        output_path: Union[str, Path],
    ) -> str:
        """
        Write the audit manifest to disk.

        Args:
            results: Verification results and per-item batch errors
            output_path: Path to save the audit log (JSON format)

        Returns:
            Absolute path to audit log file.
        """
        output_path = Path(output_path).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)

        manifest = self.build_manifest(results)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)

        logger.info(f"Audit log saved to: {output_path}")
        return str(output_path)

    def _get_timestamp(self) -> str:
        """Get ISO 8601 UTC timestamp with timezone."""
        return datetime.now(timezone.utc).isoformat()
