"""
Entrypoint for running the API server with uvicorn.
"""
import os

import uvicorn

from wishfund.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
