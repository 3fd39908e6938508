"""Generate OpenAPI specification as YAML file."""

import sys
from pathlib import Path
from typing import Any

import structlog
import yaml

from search_orchestrator.server import get_app

log = structlog.get_logger("search_orchestrator.export_openapi")


def export_openapi_yaml(output_path: Path = Path("docs/openapi.yaml")) -> int:
    """Write the service's OpenAPI schema to ``output_path`` as YAML.

    The schema is taken from the FastAPI app definition, so no credentials or
    network access are needed.

    Args:
        output_path: Path to write the YAML file (default: docs/openapi.yaml)

    Returns:
        0 on success, 1 on failure (for CI/CD integration)
    """
    log.info("export.started", output_path=str(output_path))

    try:
        openapi_schema: dict[str, Any] = get_app().openapi()
        if not openapi_schema:
            raise ValueError("FastAPI app returned empty OpenAPI schema")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w") as f:
            yaml.dump(
                openapi_schema,
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

        file_size_kb = output_path.stat().st_size / 1024
        log.info("export.completed", output_path=str(output_path), size_kb=round(file_size_kb, 1))
        print(f"OpenAPI specification exported to {output_path} ({file_size_kb:.1f} KB)")
        return 0

    except (PermissionError, OSError) as e:
        log.error("export.failed.io", error=str(e), output_path=str(output_path))
        print(f"File system error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        log.error("export.failed.unexpected", error=str(e), output_path=str(output_path))
        print(f"Unexpected error during OpenAPI export: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(export_openapi_yaml())
