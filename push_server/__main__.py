from __future__ import annotations

import uvicorn

from push_server.config import settings


def main() -> None:
    uvicorn.run("push_server.app:app", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    main()
