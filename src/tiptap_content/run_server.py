"""Executable entry point for launching the content API.

Process managers can import the stable ``app`` object from
``tiptap_content.app``; ``python -m tiptap_content.run_server`` starts a
development server directly.

Environment Variables:
    HOST (str): Bind address (default 127.0.0.1).
    PORT (int): Override listening port (default 8000).

Example:
    $ python -m tiptap_content.run_server
    $ PORT=9000 python -m tiptap_content.run_server
"""

from __future__ import annotations

import os

import uvicorn

from .app import app


def main() -> None:
    """Launch uvicorn with development-friendly defaults."""
    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
