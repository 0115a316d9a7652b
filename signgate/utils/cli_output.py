"""Schema-stamped JSON output for CLI commands.

Wraps payloads with ``schema_id``, ``schema_version``, ``producer`` and
``produced_at`` so scripted consumers can detect format changes.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from signgate import __version__


def json_response(
    schema_id: str,
    schema_version: int,
    **data: Any,
) -> str:
    """Create schema-wrapped JSON response for CLI output.

    Args:
        schema_id: Identifier for the output type (e.g., "verification_result").
        schema_version: Integer version for backward compatibility.
        **data: Payload data to include in the response.

    Returns:
        JSON string with schema metadata and payload.

    Example:
        >>> json_response("signing_policy", 1, expires_seconds=7200)
        {
          "schema_id": "signing_policy",
          "schema_version": 1,
          "producer": "signgate-0.1.0",
          "produced_at": "2026-10-18T10:30:00+00:00",
          "expires_seconds": 7200
        }
    """
    wrapped = {
        "schema_id": schema_id,
        "schema_version": schema_version,
        "producer": f"signgate-{__version__}",
        "produced_at": datetime.now(UTC).isoformat(),
        **data,
    }
    return json.dumps(wrapped, indent=2, default=str)
