"""secretwall entrypoint.

Run with:
  python -m secretwall
"""

import uvicorn

from secretwall.config import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run(
        "secretwall.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    main()
