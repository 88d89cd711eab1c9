"""
Write the service's own OpenAPI schema to disk.

Usage:
    python -m autobackend.api.generate_openapi [output_dir]

The schema is written to <output_dir>/openapi.json (default: interfaces/). The
output directory is created if it does not exist.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_OUTPUT_DIR = "interfaces"


# PUBLIC_INTERFACE
def write_openapi_schema(output_dir: Union[str, Path] = DEFAULT_OUTPUT_DIR) -> Path:
    """Generate the app's OpenAPI schema and write it as openapi.json; return the file path."""
    from autobackend.api.main import app

    schema = app.openapi()
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    output_path = out_dir / "openapi.json"
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    return output_path


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    output_dir = args[0] if args else DEFAULT_OUTPUT_DIR
    try:
        output_path = write_openapi_schema(output_dir)
    except OSError as e:
        print(f"ERROR: Failed to write OpenAPI schema to {output_dir}: {e}", file=sys.stderr)
        return 3
    print(f"OpenAPI schema written to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
