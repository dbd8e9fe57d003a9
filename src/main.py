from __future__ import annotations

import os
import sys

from src.config.loader import load_config
from src.utils.logging import setup_logging


def _load_dotenv() -> None:
    from dotenv import load_dotenv

    load_dotenv()


def _parse_host_port(argv: list[str]) -> tuple[str, int]:
    host = os.getenv("HOST", "127.0.0.1")
    port_str = os.getenv("PORT", "3000")
    try:
        port = int(port_str)
    except Exception:
        port = 3000

    if "--host" in argv:
        i = argv.index("--host")
        if i + 1 < len(argv):
            host = argv[i + 1]

    if "--port" in argv:
        i = argv.index("--port")
        if i + 1 < len(argv):
            try:
                port = int(argv[i + 1])
            except Exception:
                pass

    if len(argv) == 1 and argv[0].isdigit():
        port = int(argv[0])
    elif len(argv) == 2 and argv[1].isdigit():
        host = argv[0]
        port = int(argv[1])

    return host, port


def main() -> None:
    """Run the Quick Share server."""

    _load_dotenv()
    setup_logging(load_config().server.log_level)
    host, port = _parse_host_port(sys.argv[1:])

    import uvicorn

    uvicorn.run("src.cli.server:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
