"""python -m shopfloor.gateway -- run the gateway under uvicorn"""

import uvicorn

from .config import load_gateway_config


def main() -> None:
    config = load_gateway_config()
    uvicorn.run(
        "shopfloor.gateway.main:app",
        host=config.host,
        port=config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
