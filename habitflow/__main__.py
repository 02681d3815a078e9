"""Run the Habitflow API with uvicorn"""

import uvicorn

from habitflow.core.config import settings


def main():
    uvicorn.run("habitflow.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
