"""Run the API with uvicorn: ``python -m patientflow``."""

import uvicorn

from patientflow.core.config import settings


def main() -> None:
    uvicorn.run(
        "patientflow.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development,
        log_config=None,
    )


if __name__ == "__main__":
    main()
