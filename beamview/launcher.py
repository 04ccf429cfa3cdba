"""
Launcher - works out a URL the user's browser can reach and opens it.

Everything here is best-effort. A browser that fails to open is not an
error: the URL is in the log and the user can open it by hand.
"""

import ipaddress
import logging
import socket
import subprocess
import sys
import threading
from typing import List, Mapping, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"


def _first_non_loopback_ipv4(interfaces: Mapping[str, Sequence]) -> Optional[str]:
    for addrs in interfaces.values():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.ip_address(addr.address)
            except ValueError:
                continue
            if not ip.is_loopback:
                return str(ip)
    return None


def resolve_url(port: int, interfaces: Optional[Mapping[str, Sequence]] = None) -> str:
    """Return http://<first non-loopback IPv4>:<port>, or the loopback URL.

    127.0.0.1 inside a VM or WSL is not always reachable from the host's
    browser, so a real interface address wins when there is one. Interfaces
    are taken in the order the OS reports them.
    """
    if interfaces is None:
        try:
            interfaces = psutil.net_if_addrs()
        except (OSError, psutil.Error) as e:
            logger.debug("Could not enumerate network interfaces: %s", e)
            interfaces = {}

    host = _first_non_loopback_ipv4(interfaces) or LOOPBACK_HOST
    return f"http://{host}:{port}"


class BrowserLauncher:
    """Opens a URL in the default browser with a platform command."""

    def command(self, url: str) -> Optional[List[str]]:
        return None

    def launch(self, url: str) -> None:
        argv = self.command(url)
        if argv is None:
            return
        try:
            proc = subprocess.Popen(argv, stdout=subprocess.DEVNULL)
        except OSError as e:
            logger.debug("Could not launch %s: %s", argv[0], e)
            return
        # Reap the child; its exit status does not matter.
        proc.wait()


class NullLauncher(BrowserLauncher):
    pass


class XdgOpenLauncher(BrowserLauncher):
    def command(self, url: str) -> Optional[List[str]]:
        return ["xdg-open", url]


class WindowsStartLauncher(BrowserLauncher):
    def command(self, url: str) -> Optional[List[str]]:
        return ["cmd", "/c", "start", url]


class MacOpenLauncher(BrowserLauncher):
    def command(self, url: str) -> Optional[List[str]]:
        return ["open", url]


def select_launcher(platform: Optional[str] = None) -> BrowserLauncher:
    """Pick the launcher for a sys.platform value. Unknown platforms get a no-op."""
    platform = sys.platform if platform is None else platform
    if platform.startswith("linux"):
        return XdgOpenLauncher()
    if platform == "win32":
        return WindowsStartLauncher()
    if platform == "darwin":
        return MacOpenLauncher()
    return NullLauncher()


def open_in_browser(url: str, launcher: BrowserLauncher) -> threading.Thread:
    """Launch the browser in a background thread and return without waiting.

    The thread is fire-and-forget on purpose: nothing joins it and its
    outcome is discarded, so a slow or broken browser command can never
    hold up or take down the server.
    """
    thread = threading.Thread(
        target=launcher.launch,
        args=(url,),
        name="open-browser",
        daemon=True,
    )
    thread.start()
    return thread
