import os

import uvicorn

from mail_gateway.api import create_app
from mail_gateway.config import load_config
from mail_gateway.logger import configure_logging

configure_logging(os.getenv("MGW_LOG_LEVEL", "INFO"))


if __name__ == "__main__":
    config = load_config()
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port)
