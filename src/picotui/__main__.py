"""Allow running picotui with ``python -m picotui``."""

from picotui.cli.main import app

if __name__ == "__main__":
    app(prog_name="picotui")
