"""Run the proxy with uvicorn: ``python -m bedrock_proxy``."""

import uvicorn


def main() -> None:
    from .main import app

    uvicorn.run(app, host=app.state.server_host, port=app.state.server_port)


if __name__ == "__main__":
    main()
