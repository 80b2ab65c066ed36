"""Run the backend with uvicorn: ``python -m arbejdsret``."""

import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()


def main() -> None:
    uvicorn.run(
        "arbejdsret.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
