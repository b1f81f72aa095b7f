"""
Entry point for the ChessNext web backend.

    uv run python web_main.py       ← API + WebSocket on :8000

A built frontend in frontend/dist is served from the same port when present.
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "chessnext.web.app:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
