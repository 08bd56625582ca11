"""
╔═══════════════════════════════════════════════════════════════════════════════╗
║                               COLORSTACK                                      ║
║                Image → Color Bands → Multi-Color Heightfield STL              ║
╚═══════════════════════════════════════════════════════════════════════════════╝

Main Entry Point
"""

import os
import time
import threading
import webbrowser
import socket
from ui.layout import create_app


def find_available_port(start_port=7860, max_attempts=1000):
    for i in range(max_attempts):
        port = start_port + i
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            if s.connect_ex(("127.0.0.1", port)) != 0:
                return port
    raise RuntimeError(f"No available port found after {max_attempts} attempts")


def start_browser(port):
    """Launch the default web browser after a short delay."""
    time.sleep(2)
    webbrowser.open(f"http://127.0.0.1:{port}")


if __name__ == "__main__":

    PORT = find_available_port(7860)

    # Open the browser only where there is a display
    if os.environ.get("DISPLAY") or os.name == "nt":
        threading.Thread(target=start_browser, args=(PORT,), daemon=True).start()

    print(f"[ColorStack] Running on http://127.0.0.1:{PORT}")
    app = create_app()

    app.launch(
        inbrowser=False,
        server_name="0.0.0.0",
        server_port=PORT,
        show_error=True,
        favicon_path="icon.ico" if os.path.exists("icon.ico") else None
    )
