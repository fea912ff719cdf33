"""FastAPI application for the link visibility oracle."""

import argparse
import logging
from pathlib import Path

from fastapi import FastAPI

from isl_oracle.api.routes import instance, oracle
from isl_oracle.config import load_config, set_config


VERSION = "0.1.0"

app = FastAPI(
    title="ISL Visibility Oracle",
    description="Visibility and antenna alignment windows of inter-satellite links",
    version=VERSION,
)

app.include_router(instance.router)
app.include_router(oracle.router)


@app.get("/")
async def root():
    """Service name and size of the loaded instance."""
    summary = instance.get_solver().instance.to_dict()
    return {
        "name": "ISL Visibility Oracle",
        "version": VERSION,
        "status": "running",
        "numBodies": summary["numBodies"],
        "numLinks": summary["numLinks"],
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


def main():
    parser = argparse.ArgumentParser(description="Serve the ISL visibility oracle")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config", type=Path, default=None, help="Config JSON file")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if args.config is not None:
        set_config(load_config(args.config))

    import uvicorn
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
