"""Run the API with uvicorn: ``python -m field_expenses``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "field_expenses.main:create_app",
        factory=True,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        log_config=None,  # keep the JSON logging set up by create_app
    )


if __name__ == "__main__":
    main()
