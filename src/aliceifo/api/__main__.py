# src/aliceifo/api/__main__.py
from __future__ import annotations

import os

import uvicorn

from aliceifo.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so ALICEIFO_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from aliceifo.api.app import create_app
    from aliceifo.api.structured_logging import configure_structured_logging
    from aliceifo.runtime.ifo_config import load_ifo_config

    cfg = load_ifo_config()
    configure_structured_logging(cfg.log_level)
    os.environ.setdefault("ALICEIFO_MODE", cfg.mode)

    host = os.getenv("ALICEIFO_API_HOST", cfg.api_host)
    port = int(os.getenv("ALICEIFO_API_PORT", str(cfg.api_port)))

    uvicorn.run(create_app(), host=host, port=port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
