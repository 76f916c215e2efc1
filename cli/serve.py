"""Web front-end CLI flow ("easy mode")."""

import threading
import webbrowser

from scoreme import ScoreConfig


def serve_flow(config: ScoreConfig, host: str, port: int, open_browser: bool = False) -> int:
    """Run the scoring web app until interrupted."""
    import uvicorn

    from api.dependencies import configure
    from api.main import app

    configure(config)

    if open_browser:
        url = f"http://{'127.0.0.1' if host in ('0.0.0.0', '') else host}:{port}/"
        # Give the server a moment to bind before the browser hits it
        threading.Timer(1.0, webbrowser.open, args=(url,)).start()

    uvicorn.run(app, host=host, port=port)
    return 0
