"""
RUN SCRIPT - Start the Journal AI server
========================================

PURPOSE:
  Single entry point to start the backend.

WHAT IT DOES:
  - Runs the FastAPI app from app.main with uvicorn on 0.0.0.0 and PORT (default 3000).
  - reload=True restarts the server whenever a Python file changes.

USAGE:
  python run.py

  API docs: http://localhost:3000/docs

NOTE:
  Before running, set OPENROUTER_API_KEY (and optionally OPENROUTER_MODEL) in .env.
  Startup fails with ConfigurationError if the key is missing.
"""

import uvicorn

from config import PORT

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=PORT,
        reload=True
    )
