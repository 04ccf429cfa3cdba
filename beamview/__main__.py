"""Run the beam GeoJSON viewer from the bundled dist folder.

Why this exists:
- Opening the built files via file:// breaks ES module loading and fetch.
- Serving them over local HTTP keeps everything same-origin and works offline.

This script:
- serves the bundle on http://0.0.0.0:8765/
- opens the default browser on the best reachable address
- keeps running until you press Ctrl+C
"""

import logging
from typing import Optional

from .assets import AssetTreeMissing, load_asset_tree
from .config import ServerConfig
from .launcher import BrowserLauncher, open_in_browser, resolve_url, select_launcher
from .server import bind_socket, create_app, serve

logger = logging.getLogger("beamview")


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(levelname)s:     %(message)s")


def run(config: ServerConfig, launcher: Optional[BrowserLauncher] = None) -> int:
    """Start the viewer. Returns the process exit status."""
    try:
        tree = load_asset_tree(config.asset_root)
    except AssetTreeMissing as e:
        logger.error("embedded dist not found: %s", e)
        return 1

    app = create_app(tree)

    if launcher is None:
        launcher = select_launcher()
    open_in_browser(resolve_url(config.port), launcher)

    try:
        sock = bind_socket(config)
    except OSError as e:
        logger.error("Could not bind %s:%d: %s", config.host, config.port, e)
        return 1

    try:
        serve(app, sock, config)
    except KeyboardInterrupt:
        pass
    finally:
        sock.close()

    return 0


def main() -> int:
    configure_logging()
    return run(ServerConfig())


if __name__ == "__main__":
    raise SystemExit(main())
