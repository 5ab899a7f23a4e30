import uvicorn

from proxy_core.api.app import create_app
from proxy_core.config.settings import settings


def main() -> None:
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
