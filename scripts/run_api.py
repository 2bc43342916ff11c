"""
Launch the wholesale pricing API with auto-reload for local development.

Host and port come from WHOLESALE_PRICING_HOST / WHOLESALE_PRICING_PORT.
"""
import os
import sys
from pathlib import Path

import uvicorn

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"


def main():
    os.chdir(PROJECT_ROOT)
    if str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))
    os.environ["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(SRC_DIR), os.environ.get("PYTHONPATH")) if p
    )

    host = os.environ.get("WHOLESALE_PRICING_HOST", "0.0.0.0")
    port = int(os.environ.get("WHOLESALE_PRICING_PORT", "8000"))
    print(f"Wholesale Pricing API listening on http://{host}:{port} (docs at /docs)")

    # Reload workers re-import the app, so it is passed as an import string
    uvicorn.run(
        "wholesale_pricing.api.main:app",
        host=host,
        port=port,
        reload=True,
        reload_dirs=[str(SRC_DIR)],
    )


if __name__ == "__main__":
    main()
