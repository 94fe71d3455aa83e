"""
Process entry point: `python api/server.py` or `conduit-api`.
"""

from __future__ import annotations

import uvicorn

from core.config import get_settings
from main import create_app


def main() -> None:
    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.PORT,
        log_config=None,
        reload=False,
    )


if __name__ == "__main__":
    main()
